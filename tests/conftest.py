from typing import Dict, List, Optional, Set, Tuple

import pytest

from coordinator import RoomCoordinator
from registry import ConnectionRegistry
from relay import SignalingRelay

DEFAULT_CODE = 'console.log("Hello from JavaScript!");'


class RecordingRegistry(ConnectionRegistry):
    """In-memory registry that records every delivered message."""

    def __init__(self):
        self.groups: Dict[str, Set[str]] = {}
        self.sent: List[Tuple[str, dict]] = []

    def subscribe(self, connection_id, group):
        self.groups.setdefault(group, set()).add(connection_id)

    def unsubscribe(self, connection_id, group):
        members = self.groups.get(group)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self.groups[group]

    def send_to(self, connection_id, message):
        self.sent.append((connection_id, message))
        return True

    def broadcast_to_group(self, group, message, exclude: Optional[str] = None):
        recipients = sorted(c for c in self.groups.get(group, ()) if c != exclude)
        for connection_id in recipients:
            self.send_to(connection_id, message)
        return len(recipients)

    def received(self, connection_id, message_type=None):
        return [
            message for target, message in self.sent
            if target == connection_id and (message_type is None or message["type"] == message_type)
        ]

    def clear(self):
        self.sent.clear()


@pytest.fixture
def registry():
    return RecordingRegistry()


@pytest.fixture
def coordinator(registry):
    return RoomCoordinator(registry, default_code=DEFAULT_CODE)


@pytest.fixture
def relay(registry):
    return SignalingRelay(registry)
