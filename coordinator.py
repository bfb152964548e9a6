import asyncio
from dataclasses import dataclass
from typing import List, Optional

from actions import CODE_CHANGE, DISCONNECTED, JOINED, build_event
from backend import CodeStore, Member, PresenceStore
from constants import DEFAULT_CODE
from logging_config import get_logger
from registry import ConnectionRegistry

logger = get_logger(__name__)


@dataclass
class Departure:
    connection_id: str
    room_id: str
    display_name: str
    members: List[Member]


@dataclass
class RoomView:
    room_id: str
    members: List[Member]
    code: str


class RoomCoordinator:
    """Owns presence and shared code for every room in the process.

    All store mutations happen under one lock. Whatever a broadcast carries
    (snapshot, code) is captured while the lock is held and sent after it is
    released; sends only enqueue, so nothing awaits I/O under the lock.
    """

    def __init__(self, registry: ConnectionRegistry, default_code: str = DEFAULT_CODE):
        self.registry = registry
        self.presence = PresenceStore()
        self.code_store = CodeStore(default_code)
        self._lock = asyncio.Lock()

    async def join(self, connection_id: str, room_id: str, display_name: str):
        departure = None
        async with self._lock:
            previous_room = self.presence.room_of(connection_id)
            if previous_room is not None and previous_room != room_id:
                logger.info(f"Connection {connection_id} switching from room {previous_room} to {room_id}")
                departure = self._remove_member(connection_id)
            self.presence.add_member(room_id, connection_id, display_name)
            self.registry.subscribe(connection_id, room_id)
            code = self.code_store.get(room_id)
            members = self.presence.snapshot(room_id)

        logger.info(f"User {connection_id} ({display_name}) joined room {room_id} (members: {len(members)})")
        if departure is not None:
            self._announce_departure(departure)
        self.registry.send_to(connection_id, build_event(CODE_CHANGE, {"code": code}))
        self.registry.broadcast_to_group(
            room_id,
            build_event(JOINED, {
                "members": [member.to_wire() for member in members],
                "displayName": display_name,
                "connectionId": connection_id,
            }),
        )

    async def update_code(self, connection_id: str, room_id: str, code: str):
        async with self._lock:
            self.code_store.set(room_id, code)
        logger.debug(f"Code updated in room {room_id} by {connection_id} ({len(code)} chars)")
        self.registry.broadcast_to_group(room_id, build_event(CODE_CHANGE, {"code": code}), exclude=connection_id)

    async def disconnect(self, connection_id: str) -> bool:
        """Tear down a connection's membership. Safe to call more than once."""
        async with self._lock:
            departure = self._remove_member(connection_id)
        if departure is None:
            logger.debug(f"Disconnect for {connection_id}: not a member of any room")
            return False
        logger.info(f"User {connection_id} ({departure.display_name}) left room {departure.room_id}")
        self._announce_departure(departure)
        return True

    async def list_rooms(self) -> List[RoomView]:
        async with self._lock:
            return [self._view(room_id) for room_id in self.presence.room_ids()]

    async def room_details(self, room_id: str) -> Optional[RoomView]:
        async with self._lock:
            if not self.presence.has_room(room_id):
                return None
            return self._view(room_id)

    def _view(self, room_id: str) -> RoomView:
        return RoomView(
            room_id=room_id,
            members=self.presence.snapshot(room_id),
            code=self.code_store.get(room_id),
        )

    def _remove_member(self, connection_id: str) -> Optional[Departure]:
        # Caller holds the lock
        member = self.presence.remove_member(connection_id)
        if member is None:
            return None
        self.registry.unsubscribe(connection_id, member.room_id)
        return Departure(
            connection_id=connection_id,
            room_id=member.room_id,
            display_name=member.display_name,
            members=self.presence.snapshot(member.room_id),
        )

    def _announce_departure(self, departure: Departure):
        if not departure.members:
            return
        try:
            self.registry.broadcast_to_group(
                departure.room_id,
                build_event(DISCONNECTED, {
                    "connectionId": departure.connection_id,
                    "displayName": departure.display_name,
                    "members": [member.to_wire() for member in departure.members],
                }),
            )
        except Exception as e:
            logger.error(
                f"Error broadcasting departure of {departure.connection_id} to room {departure.room_id}: {e}",
                exc_info=True,
            )
