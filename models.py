"""
SQLAlchemy Models

四個實體：
- Sheet：一棟建築／一個樓層，擁有多個 Room
- Room：有容量與性別限制的房間
- User：以 (firstname, lastname) 辨識的使用者
- RoomMember：使用者在某房間的成員資格
"""
import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class Sheet(Base):
    __tablename__ = "sheets"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), unique=True, nullable=False)
    # 存取代碼只在 admin endpoint 顯示
    code = Column(String(16), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    rooms = relationship("Room", back_populates="sheet", order_by="Room.created_at")


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("sheet_id", "gender", "name", name="uq_room_sheet_gender_name"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    gender = Column(Enum(Gender), nullable=False)
    # 反正規化欄位：由 membership 操作維護，markFull 可強制設為 True
    is_full = Column(Boolean, default=False, nullable=False)
    sheet_id = Column(String(36), ForeignKey("sheets.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    sheet = relationship("Sheet", back_populates="rooms")
    members = relationship("RoomMember", back_populates="room", order_by="RoomMember.joined_at")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    firstname = Column(String(50), nullable=False)
    lastname = Column(String(50), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    memberships = relationship("RoomMember", back_populates="user")


class RoomMember(Base):
    __tablename__ = "room_members"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_room_member_room_user"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    room = relationship("Room", back_populates="members")
    user = relationship("User", back_populates="memberships")
