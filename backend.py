from dataclasses import dataclass
from typing import Dict, List, Optional

from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Member:
    connection_id: str
    room_id: str
    display_name: str

    def to_wire(self) -> dict:
        return {"connectionId": self.connection_id, "displayName": self.display_name}


class PresenceStore:
    """Room membership and display names.

    A room entry exists only while it has members: it is created by the first
    add_member and removed by the remove_member that empties it.
    """

    def __init__(self):
        # room_id -> ordered set of connection ids (dict keys keep join order)
        self._rooms: Dict[str, Dict[str, None]] = {}
        # connection_id -> member record
        self._members: Dict[str, Member] = {}

    def add_member(self, room_id: str, connection_id: str, display_name: str) -> Member:
        """Add a connection to a room. The caller removes it from any other room first."""
        if room_id not in self._rooms:
            self._rooms[room_id] = {}
            logger.info(f"Room {room_id} created")
        self._rooms[room_id][connection_id] = None
        member = Member(connection_id=connection_id, room_id=room_id, display_name=display_name)
        self._members[connection_id] = member
        logger.debug(f"Connection {connection_id} added to room {room_id} (members: {len(self._rooms[room_id])})")
        return member

    def remove_member(self, connection_id: str) -> Optional[Member]:
        """Remove a connection from its room. Returns None if it was not a member."""
        member = self._members.pop(connection_id, None)
        if member is None:
            return None
        room = self._rooms.get(member.room_id)
        if room is not None:
            room.pop(connection_id, None)
            if not room:
                del self._rooms[member.room_id]
                logger.info(f"Room {member.room_id} removed (no members left)")
        logger.debug(f"Connection {connection_id} removed from room {member.room_id}")
        return member

    def room_of(self, connection_id: str) -> Optional[str]:
        member = self._members.get(connection_id)
        return member.room_id if member else None

    def has_room(self, room_id: str) -> bool:
        return room_id in self._rooms

    def room_ids(self) -> List[str]:
        return list(self._rooms)

    def snapshot(self, room_id: str) -> List[Member]:
        """Current members of a room in join order."""
        return [self._members[conn_id] for conn_id in self._rooms.get(room_id, ())]


class CodeStore:
    """Latest code text per room. Entries outlive the room's membership."""

    def __init__(self, default_code: str):
        self.default_code = default_code
        self._code: Dict[str, str] = {}

    def get(self, room_id: str) -> str:
        return self._code.get(room_id, self.default_code)

    def set(self, room_id: str, code: str):
        self._code[room_id] = code

    def has(self, room_id: str) -> bool:
        return room_id in self._code
