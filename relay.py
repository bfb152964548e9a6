from actions import ANSWER, ICE_CANDIDATE, OFFER, build_event
from logging_config import get_logger
from registry import ConnectionRegistry

logger = get_logger(__name__)


class SignalingRelay:
    """Forwards WebRTC negotiation messages to the rest of a room.

    Payloads are opaque and passed through untouched. The sender is assumed to
    be a member of the room; delivery goes to whoever is in the group now.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def relay_offer(self, connection_id: str, room_id: str, payload: dict):
        self._forward(OFFER, connection_id, room_id, payload)

    def relay_answer(self, connection_id: str, room_id: str, payload: dict):
        self._forward(ANSWER, connection_id, room_id, payload)

    def relay_candidate(self, connection_id: str, room_id: str, payload: dict):
        self._forward(ICE_CANDIDATE, connection_id, room_id, payload)

    def _forward(self, action: str, connection_id: str, room_id: str, payload: dict):
        recipients = self.registry.broadcast_to_group(room_id, build_event(action, payload), exclude=connection_id)
        logger.debug(f"Relayed {action} from {connection_id} in room {room_id} to {recipients} peers")
