from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class JoinMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: Optional[str] = Field(default=None, alias="roomId")
    display_name: Optional[str] = Field(default=None, alias="displayName")

class CodeChangeMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: Optional[str] = Field(default=None, alias="roomId")
    code: Optional[str] = None

class SignalingMessage(BaseModel):
    # description / candidate blobs are opaque and forwarded as received
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    room_id: Optional[str] = Field(default=None, alias="roomId")
