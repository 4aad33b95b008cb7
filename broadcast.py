import asyncio
from typing import Optional

from connection import Connection
from logging_config import get_logger
from registry import RoomRegistry

logger = get_logger(__name__)


class Broadcaster:
    """Fans a payload out to every other open connection in a room."""

    def __init__(self, registry: RoomRegistry, send_timeout: Optional[float] = None):
        self.registry = registry
        # None or 0 means sends are awaited without a deadline
        self.send_timeout = send_timeout or None

    async def broadcast(self, room_id: str, sender: Connection, payload: str) -> int:
        """Send ``payload`` to all members of ``room_id`` except ``sender``.

        Closed members are skipped, never removed here. A failed send is logged and
        does not affect the other recipients. Returns how many sends succeeded.
        """
        members = await self.registry.members_of(room_id)
        if not members:
            logger.warning(f"No active connections in room {room_id} to broadcast to")
            return 0

        recipients = [member for member in members if member.id != sender.id and member.is_open]
        if not recipients:
            logger.debug(f"No other open connections in room {room_id}, nothing to send")
            return 0

        logger.debug(f"Broadcasting to {len(recipients)} connections in room {room_id}")
        results = await asyncio.gather(
            *(self._send(room_id, recipient, payload) for recipient in recipients)
        )
        delivered = sum(1 for ok in results if ok)
        logger.debug(f"Delivered to {delivered}/{len(recipients)} connections in room {room_id}")
        return delivered

    async def _send(self, room_id: str, recipient: Connection, payload: str) -> bool:
        try:
            if self.send_timeout:
                await asyncio.wait_for(recipient.send(payload), timeout=self.send_timeout)
            else:
                await recipient.send(payload)
        except asyncio.TimeoutError:
            logger.warning(
                f"Send to connection {recipient.id} in room {room_id} timed out after {self.send_timeout}s"
            )
            return False
        except Exception as e:
            logger.warning(f"Error sending to connection {recipient.id} in room {room_id}: {e}")
            return False
        logger.debug(f"Sent message to connection {recipient.id} in room {room_id}")
        return True
