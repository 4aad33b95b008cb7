from typing import Any, Awaitable, Callable, Dict, Optional

from broadcast import Broadcaster
from connection import Connection
from logging_config import get_logger
from registry import RoomRegistry
from schemas.messages import Envelope, MessageType, PeerJoinedMessage, RELAYED_TYPES, parse_envelope

logger = get_logger(__name__)

Handler = Callable[[Connection, Envelope, str], Awaitable[None]]


class SignalingRelay:
    """Routes inbound signaling frames to the other members of a room.

    Every frame with a non-empty ``roomId`` (re)joins its sender to that room before
    dispatch, whatever its type. ``join`` is announced to the room as ``peer-joined``;
    offers, answers, ICE candidates and chat are relayed verbatim; anything else is
    dropped. Nothing is ever sent back to the sender.
    """

    def __init__(self, registry: Optional[RoomRegistry] = None, broadcaster: Optional[Broadcaster] = None):
        self.registry = registry if registry is not None else RoomRegistry()
        self.broadcaster = broadcaster if broadcaster is not None else Broadcaster(self.registry)
        self._handlers: Dict[MessageType, Handler] = {
            MessageType.JOIN: self._announce_join,
            MessageType.UNKNOWN: self._drop_unknown,
        }
        for message_type in RELAYED_TYPES:
            self._handlers[message_type] = self._relay
        missing = set(MessageType) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler registered for message types: {sorted(t.value for t in missing)}")

    async def handle_message(self, sender: Connection, raw: str) -> None:
        """Process one inbound text frame from ``sender``.

        Raises MalformedMessageError if the frame can't be parsed; the caller decides
        what to do with the connection (the WebSocket endpoint keeps it open).
        """
        logger.debug(f"Received message from connection {sender.id}: {raw}")
        envelope = parse_envelope(raw)

        room_id = envelope.room_id
        if not room_id:
            logger.warning(f"Received message with empty roomId from connection {sender.id}, ignoring")
            return

        await self.registry.ensure_member(room_id, sender)

        kind = envelope.kind
        await self._handlers[kind](sender, envelope, raw)

    async def connection_closed(self, connection: Connection, reason: Any = None) -> None:
        """Forget a connection in every room. Only called when the transport reports a close."""
        logger.info(f"Connection closed for {connection.id} (reason: {reason})")
        rooms = await self.registry.remove_everywhere(connection)
        if rooms:
            logger.info(f"Connection {connection.id} left rooms {rooms}")

    async def _announce_join(self, sender: Connection, envelope: Envelope, raw: str) -> None:
        logger.info(f"Connection {sender.id} joined room {envelope.room_id}")
        notice = PeerJoinedMessage(room_id=envelope.room_id).to_wire()
        await self.broadcaster.broadcast(envelope.room_id, sender, notice)

    async def _relay(self, sender: Connection, envelope: Envelope, raw: str) -> None:
        logger.info(f"Relaying {envelope.kind.value} from connection {sender.id} in room {envelope.room_id}")
        await self.broadcaster.broadcast(envelope.room_id, sender, raw)

    async def _drop_unknown(self, sender: Connection, envelope: Envelope, raw: str) -> None:
        logger.warning(f"Unknown message type '{envelope.type}' from connection {sender.id}, ignoring")
