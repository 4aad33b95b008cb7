import uuid
from typing import Optional, Protocol

from fastapi import WebSocket
from fastapi.websockets import WebSocketState


class Connection(Protocol):
    """What the relay needs from one participant's channel."""

    id: str

    @property
    def is_open(self) -> bool:
        ...

    async def send(self, text: str) -> None:
        ...


class WebSocketConnection:
    """Connection handle backed by an accepted FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.id = connection_id or str(uuid.uuid4())

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, text: str) -> None:
        await self.websocket.send_text(text)

    def __repr__(self) -> str:
        return f"WebSocketConnection(id={self.id!r})"
