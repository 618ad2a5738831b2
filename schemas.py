"""
Pydantic Schemas：Request 驗證與 Response 序列化

所有 JSON 欄位使用 camelCase（前端直接使用），Python 端使用 snake_case
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from models import Gender

NAME_PATTERN = r"^[a-zA-ZÀ-ÿĀ-ſƀ-ɏḀ-ỿ\s'-]+$"
ROOM_NAME_PATTERN = r"^[a-zA-Z0-9\s\-_().,&]+$"
SHEET_NAME_PATTERN = r"^[a-zA-Z0-9\s\-_&()]+$"
ID_PATTERN = r"^[a-zA-Z0-9_-]+$"

PersonName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50, pattern=NAME_PATTERN)
]
RoomName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100, pattern=ROOM_NAME_PATTERN)
]
SheetName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100, pattern=SHEET_NAME_PATTERN)
]
EntityId = Annotated[str, StringConstraints(min_length=1, pattern=ID_PATTERN)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def to_payload(schema: type, obj: Any) -> Dict[str, Any]:
    """把 ORM 物件轉成廣播用的 JSON-ready dict（camelCase）"""
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


# ============ Requests ============

class JoinRoomRequest(CamelModel):
    firstname: PersonName
    lastname: PersonName


class MoveMemberRequest(CamelModel):
    destination_room_id: EntityId


class RoomCreate(CamelModel):
    name: RoomName
    capacity: int = Field(ge=1, le=20)
    gender: Gender
    sheet_id: EntityId


class RoomUpdate(CamelModel):
    name: Optional[RoomName] = None
    capacity: Optional[int] = Field(default=None, ge=1, le=20)
    gender: Optional[Gender] = None
    sheet_id: Optional[EntityId] = None


class SheetCreate(CamelModel):
    name: SheetName


class ValidateCodeRequest(CamelModel):
    code: Optional[str] = None


# ============ Responses ============

class UserResponse(CamelModel):
    id: str
    firstname: str
    lastname: str
    created_at: datetime


class SheetBrief(CamelModel):
    id: str
    name: str
    created_at: datetime


class MemberResponse(CamelModel):
    id: str
    room_id: str
    user_id: str
    joined_at: datetime
    user: UserResponse


class RoomBase(CamelModel):
    id: str
    name: str
    capacity: int
    gender: Gender
    is_full: bool
    sheet_id: str
    created_at: datetime


class RoomInSheet(RoomBase):
    members: List[MemberResponse] = []


class RoomResponse(RoomBase):
    sheet: Optional[SheetBrief] = None
    members: List[MemberResponse] = []


class RoomWithSheet(RoomBase):
    sheet: Optional[SheetBrief] = None


class MemberWithRoomResponse(MemberResponse):
    room: RoomWithSheet


class SheetResponse(CamelModel):
    id: str
    name: str
    created_at: datetime
    rooms: List[RoomInSheet] = []


class SheetWithCodeResponse(SheetResponse):
    code: str


class MoveMemberResponse(CamelModel):
    member: MemberResponse
    source_room: RoomResponse
    destination_room: RoomResponse


class ValidateCodeResponse(CamelModel):
    sheet_id: str


class MessageResponse(CamelModel):
    message: str


class GenderCount(CamelModel):
    gender: Gender
    count: int


class AnalyticsResponse(CamelModel):
    total_members: int
    total_rooms: int
    total_capacity: int
    occupancy_rate: float
    rooms_by_gender: List[GenderCount]
