from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from broadcast import Broadcaster
from connection import WebSocketConnection
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, PRUNE_EMPTY_ROOMS, SEND_TIMEOUT_SECONDS, WS_PATH
from logging_config import get_logger, setup_logging
from registry import RoomRegistry
from routers.rooms import rooms_router
from schemas.messages import MalformedMessageError
from signaling import SignalingRelay

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def build_relay() -> SignalingRelay:
    registry = RoomRegistry(prune_empty_rooms=PRUNE_EMPTY_ROOMS)
    broadcaster = Broadcaster(registry, send_timeout=SEND_TIMEOUT_SECONDS)
    return SignalingRelay(registry, broadcaster)


def create_app(relay: Optional[SignalingRelay] = None, ws_path: str = WS_PATH) -> FastAPI:
    app = FastAPI(title="Signaling Relay")
    app.state.relay = relay if relay is not None else build_relay()

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.websocket(ws_path)
    async def signaling_endpoint(websocket: WebSocket):
        """One task per connected participant: feed each text frame to the relay."""
        await websocket.accept()
        connection = WebSocketConnection(websocket)
        relay: SignalingRelay = app.state.relay
        client_host = websocket.client.host if websocket.client else "unknown"
        logger.info(f"WebSocket connection {connection.id} accepted from {client_host}")

        close_reason = None
        try:
            while True:
                data = await websocket.receive_text()
                try:
                    await relay.handle_message(connection, data)
                except MalformedMessageError as e:
                    logger.warning(f"Dropping malformed message from connection {connection.id}: {e}")
                except Exception as e:
                    # Failures stay scoped to the one message; the socket stays open
                    logger.error(f"Error handling message from connection {connection.id}: {e}", exc_info=True)
        except WebSocketDisconnect as e:
            close_reason = f"code={e.code}"
            logger.info(f"WebSocket disconnected normally for connection {connection.id}")
        except Exception as e:
            close_reason = f"error: {e}"
            logger.error(f"WebSocket error for connection {connection.id}: {e}", exc_info=True)
            try:
                await websocket.close(code=1011)
            except Exception as close_error:
                logger.debug(f"Error closing WebSocket {connection.id}: {close_error}")
        finally:
            await relay.connection_closed(connection, close_reason)

    logger.info(f"FastAPI application initialized (signaling endpoint at {ws_path})")
    return app


app = create_app()
