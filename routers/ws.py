from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
import json
import uuid

from actions import CODE_CHANGE, ICE_CANDIDATE, JOIN, LEAVE, OFFER, ANSWER
from coordinator import RoomCoordinator
from registry import WebSocketRegistry
from relay import SignalingRelay
from schemas.messages import CodeChangeMessage, JoinMessage, SignalingMessage
from logging_config import get_logger

logger = get_logger(__name__)

ws_router = APIRouter(tags=["ws"])


async def handle_message(coordinator: RoomCoordinator, relay: SignalingRelay, connection_id: str, message_type: str, data: dict):
    """Dispatch one decoded client event. Malformed payloads are logged and dropped."""
    try:
        if message_type == JOIN:
            join = JoinMessage.model_validate(data)
            await coordinator.join(connection_id, join.room_id or "", join.display_name or "")
        elif message_type == CODE_CHANGE:
            change = CodeChangeMessage.model_validate(data)
            await coordinator.update_code(connection_id, change.room_id or "", change.code or "")
        elif message_type == OFFER:
            relay.relay_offer(connection_id, SignalingMessage.model_validate(data).room_id or "", data)
        elif message_type == ANSWER:
            relay.relay_answer(connection_id, SignalingMessage.model_validate(data).room_id or "", data)
        elif message_type == ICE_CANDIDATE:
            relay.relay_candidate(connection_id, SignalingMessage.model_validate(data).room_id or "", data)
        else:
            logger.warning(f"Ignoring unknown message type {message_type!r} from connection {connection_id}")
    except ValidationError as e:
        logger.warning(f"Ignoring malformed {message_type} from connection {connection_id}: {e}")


async def end_session(coordinator: RoomCoordinator, registry: WebSocketRegistry, connection_id: str):
    """Teardown shared by every way a session ends, including slow-consumer eviction."""
    try:
        await coordinator.disconnect(connection_id)
    finally:
        registry.unregister(connection_id)


@ws_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """One session per connection: join a room, edit code, relay signaling.

    Every way out of the receive loop (client close, network error, leave)
    ends in the same teardown in the finally block.
    """
    coordinator: RoomCoordinator = websocket.app.state.coordinator
    relay: SignalingRelay = websocket.app.state.relay
    registry: WebSocketRegistry = websocket.app.state.registry

    connection_id = str(uuid.uuid4())
    await websocket.accept()
    registry.register(connection_id, websocket)
    logger.info(f"WebSocket connection {connection_id} accepted")

    try:
        message_count = 0
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection_id}")

            data = message.get("text")
            if data is None:
                logger.warning(f"Ignoring binary frame from connection {connection_id}")
                continue
            try:
                envelope = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring non-JSON frame from connection {connection_id}")
                continue
            if not isinstance(envelope, dict):
                logger.warning(f"Ignoring non-object frame from connection {connection_id}")
                continue

            message_type = envelope.get("type")
            payload = envelope.get("data")
            if not isinstance(payload, dict):
                payload = {}

            if message_type == LEAVE:
                logger.info(f"Connection {connection_id} asked to leave")
                break
            await handle_message(coordinator, relay, connection_id, message_type, payload)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection_id}")
    except Exception as e:
        logger.error(f"Error receiving message from connection {connection_id}: {e}", exc_info=True)
    finally:
        await end_session(coordinator, registry, connection_id)
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
