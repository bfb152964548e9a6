from pydantic import BaseModel
from typing import List


class OnlineUser(BaseModel):
    connection_id: str
    display_name: str

class RoomSummary(BaseModel):
    room_id: str
    online_users_count: int

class RoomListResponse(BaseModel):
    rooms: List[RoomSummary]

class RoomDetailsResponse(BaseModel):
    room_id: str
    online_users_count: int
    online_users: List[OnlineUser]
    code: str
