from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import OnlineUser, RoomDetailsResponse, RoomListResponse, RoomSummary
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/", response_model=RoomListResponse)
async def list_rooms(request: Request):
    coordinator = request.app.state.coordinator
    rooms = await coordinator.list_rooms()
    logger.debug(f"Listing {len(rooms)} live rooms")
    return RoomListResponse(
        rooms=[RoomSummary(room_id=room.room_id, online_users_count=len(room.members)) for room in rooms]
    )


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """Live members and current code of a room. A room without members does not exist."""
    coordinator = request.app.state.coordinator
    room = await coordinator.room_details(room_id)
    if room is None:
        logger.info(f"Room details requested for unknown room {room_id}")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room_id=room.room_id,
        online_users_count=len(room.members),
        online_users=[
            OnlineUser(connection_id=member.connection_id, display_name=member.display_name)
            for member in room.members
        ],
        code=room.code,
    )
