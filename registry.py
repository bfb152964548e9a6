import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional, Set

from fastapi import WebSocket

from logging_config import get_logger

logger = get_logger(__name__)

# Close code sent to a consumer that cannot keep up ("try again later")
SLOW_CONSUMER_CLOSE_CODE = 1013


class ConnectionRegistry(ABC):
    """Delivery capability the room coordinator depends on.

    Groups are named by room id. Every send is fire-and-forget.
    """

    @abstractmethod
    def subscribe(self, connection_id: str, group: str):
        ...

    @abstractmethod
    def unsubscribe(self, connection_id: str, group: str):
        ...

    @abstractmethod
    def send_to(self, connection_id: str, message: dict) -> bool:
        ...

    @abstractmethod
    def broadcast_to_group(self, group: str, message: dict, exclude: Optional[str] = None) -> int:
        ...


class Outbox:
    def __init__(self, connection_id: str, websocket: WebSocket, max_size: int):
        self.connection_id = connection_id
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self.writer: Optional[asyncio.Task] = None


class WebSocketRegistry(ConnectionRegistry):
    """Connection registry backed by FastAPI WebSockets.

    Each connection gets a bounded outbox drained by its own writer task, so a
    broadcast never waits on a socket. A connection whose outbox is full is
    evicted and its socket closed.
    """

    def __init__(self, max_outbox_size: int = 256):
        self.max_outbox_size = max_outbox_size
        self._outboxes: Dict[str, Outbox] = {}
        # group -> connection ids, connection id -> groups
        self._groups: Dict[str, Set[str]] = {}
        self._memberships: Dict[str, Set[str]] = {}
        self._closing: Set[asyncio.Task] = set()

    def register(self, connection_id: str, websocket: WebSocket):
        outbox = Outbox(connection_id, websocket, self.max_outbox_size)
        outbox.writer = asyncio.create_task(self._drain(outbox))
        self._outboxes[connection_id] = outbox
        logger.debug(f"Registered connection {connection_id} (connections: {len(self._outboxes)})")

    def unregister(self, connection_id: str):
        for group in list(self._memberships.get(connection_id, ())):
            self.unsubscribe(connection_id, group)
        outbox = self._outboxes.pop(connection_id, None)
        if outbox is None:
            return
        if outbox.writer and not outbox.writer.done():
            outbox.writer.cancel()
        logger.debug(f"Unregistered connection {connection_id} (connections: {len(self._outboxes)})")

    def subscribe(self, connection_id: str, group: str):
        self._groups.setdefault(group, set()).add(connection_id)
        self._memberships.setdefault(connection_id, set()).add(group)

    def unsubscribe(self, connection_id: str, group: str):
        members = self._groups.get(group)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._groups[group]
        groups = self._memberships.get(connection_id)
        if groups is not None:
            groups.discard(group)
            if not groups:
                del self._memberships[connection_id]

    def send_to(self, connection_id: str, message: dict) -> bool:
        outbox = self._outboxes.get(connection_id)
        if outbox is None:
            logger.debug(f"Dropping {message.get('type')} for unknown connection {connection_id}")
            return False
        try:
            outbox.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                f"Outbox full for connection {connection_id} ({self.max_outbox_size} messages), evicting slow consumer"
            )
            self._evict(outbox)
            return False
        return True

    def broadcast_to_group(self, group: str, message: dict, exclude: Optional[str] = None) -> int:
        delivered = 0
        for connection_id in list(self._groups.get(group, ())):
            if connection_id == exclude:
                continue
            if self.send_to(connection_id, message):
                delivered += 1
        logger.debug(f"Broadcast {message.get('type')} to {delivered} connections in group {group}")
        return delivered

    async def shutdown(self):
        """Cancel every writer task and wait for pending socket closes."""
        for connection_id in list(self._outboxes):
            self.unregister(connection_id)
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    def _evict(self, outbox: Outbox):
        # Group subscriptions stay until the receive loop runs the disconnect path
        if self._outboxes.get(outbox.connection_id) is outbox:
            del self._outboxes[outbox.connection_id]
        if outbox.writer and not outbox.writer.done():
            outbox.writer.cancel()
        task = asyncio.create_task(self._close(outbox))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close(self, outbox: Outbox):
        try:
            await outbox.websocket.close(code=SLOW_CONSUMER_CLOSE_CODE)
        except Exception as e:
            logger.debug(f"Error closing WebSocket for connection {outbox.connection_id}: {e}")

    async def _drain(self, outbox: Outbox):
        """Writer task: send queued messages to one socket in order."""
        while True:
            message = await outbox.queue.get()
            try:
                await outbox.websocket.send_json(message)
            except Exception as e:
                # The receive loop will see the disconnect and clean up
                logger.warning(f"Error sending to connection {outbox.connection_id}: {e}")
                return
