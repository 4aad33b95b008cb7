import asyncio
from typing import Dict, List

from connection import Connection
from logging_config import get_logger

logger = get_logger(__name__)


class Room:
    """Members of one room, guarded by the room's own lock."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        self.members: Dict[str, Connection] = {}
        self.lock = asyncio.Lock()
        # Set once the room has been pruned from the registry
        self.retired = False


class RoomRegistry:
    """In-memory mapping of room id -> connections currently in that room.

    Each room carries its own lock, so joins, leaves and snapshots on different
    rooms never wait on each other. Rooms are created lazily on first join and,
    unless ``prune_empty_rooms`` is set, stay registered after they empty out.
    """

    def __init__(self, prune_empty_rooms: bool = False):
        self.prune_empty_rooms = prune_empty_rooms
        self._rooms: Dict[str, Room] = {}
        logger.info(f"Initializing RoomRegistry (prune_empty_rooms={prune_empty_rooms})")

    async def ensure_member(self, room_id: str, connection: Connection) -> bool:
        """Add a connection to a room, creating the room if needed.

        Returns True if the connection was newly added, False if it was already a member.
        """
        if not room_id:
            raise ValueError("room_id must be a non-empty string")

        while True:
            room = self._rooms.get(room_id)
            if room is None:
                room = self._rooms[room_id] = Room(room_id)
                logger.info(f"Created room {room_id}")
            async with room.lock:
                if room.retired:
                    # Pruned while we waited for the lock; retry against the fresh entry
                    continue
                added = connection.id not in room.members
                room.members[connection.id] = connection

            if added:
                logger.debug(f"Connection {connection.id} added to room {room_id} (members: {len(room.members)})")
            else:
                logger.debug(f"Connection {connection.id} already in room {room_id}")
            return added

    async def members_of(self, room_id: str) -> List[Connection]:
        """Snapshot of a room's members. Unknown rooms have no members."""
        room = self._rooms.get(room_id)
        if room is None:
            return []
        async with room.lock:
            return list(room.members.values())

    async def remove_everywhere(self, connection: Connection) -> List[str]:
        """Remove a connection from every room it belongs to.

        Safe to call for a connection that is in no room. Returns the ids of the
        rooms it was removed from.
        """
        removed_from = []
        for room in list(self._rooms.values()):
            async with room.lock:
                if room.members.pop(connection.id, None) is None:
                    continue
                removed_from.append(room.room_id)
                if self.prune_empty_rooms and not room.members and not room.retired:
                    room.retired = True
                    if self._rooms.get(room.room_id) is room:
                        del self._rooms[room.room_id]
                    logger.debug(f"Pruned empty room {room.room_id}")

        logger.debug(f"Connection {connection.id} removed from rooms: {removed_from}")
        return removed_from

    def room_ids(self) -> List[str]:
        return list(self._rooms.keys())

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
