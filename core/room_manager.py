"""
Room Manager：管理 Room 的完整生命週期

職責：
1. 建立 / 修改 / 刪除 Room
2. 查詢 Room（含 sheet、成員、使用者）
3. markFull：管理員強制標記已滿

成員的加入、移除、移動由 MembershipManager 負責

原則：
- isFull 只在容量改變時重新推導（derive_is_full）
- markFull 是明確的管理員覆寫，不經過容量檢查
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from typing import List, Optional
import logging

from models import Room, RoomMember, Sheet, Gender
from schemas import RoomResponse, to_payload
from core.locks import with_room_lock
from core.notifier import Notifier, notify, ROOM_CREATED, ROOM_UPDATED, ROOM_DELETED
from core.exceptions import (
    RoomNotFound,
    SheetNotFound,
    CapacityExceeded,
    ConflictingUniqueField,
    HasDependents,
)
from services.occupancy_service import derive_is_full
from database import transactional

logger = logging.getLogger(__name__)


def hydrated_rooms(db: Session):
    """Room query，一次載入 sheet、成員與成員的使用者"""
    return db.query(Room).options(
        joinedload(Room.sheet),
        selectinload(Room.members).joinedload(RoomMember.user),
    )


class RoomManager:
    """Room 生命週期管理器"""

    @staticmethod
    def create_room(
        db: Session,
        name: str,
        capacity: int,
        gender: Gender,
        sheet_id: str,
        notifier: Optional[Notifier] = None,
    ) -> Room:
        """
        建立新房間

        流程：
        1. 確認 Sheet 存在
        2. 確認 (sheet, gender, name) 沒有重複
        3. 建立 Room，isFull 由 (0, capacity) 推導
        4. 廣播 room_created

        異常：
            SheetNotFound: Sheet 不存在
            ConflictingUniqueField: 同一個 Sheet 同性別已有同名房間
        """
        room_id = RoomManager._create_room(db, name, capacity, gender, sheet_id)
        room = RoomManager.get_room_by_id(db, room_id)
        notify(notifier, ROOM_CREATED, to_payload(RoomResponse, room))
        return room

    @staticmethod
    @transactional
    def _create_room(db: Session, name: str, capacity: int, gender: Gender, sheet_id: str) -> str:
        if not db.query(Sheet).filter(Sheet.id == sheet_id).first():
            raise SheetNotFound(sheet_id)

        RoomManager._ensure_name_available(db, name, gender, sheet_id)

        room = Room(
            name=name,
            capacity=capacity,
            gender=gender,
            sheet_id=sheet_id,
            is_full=derive_is_full(0, capacity),
        )
        db.add(room)
        RoomManager._flush_or_conflict(db)

        logger.info(f"Created room {room.id} ({name}, {gender.value}, capacity={capacity}) in sheet {sheet_id}")
        return room.id

    @staticmethod
    def update_room(
        db: Session,
        room_id: str,
        changes: dict,
        notifier: Optional[Notifier] = None,
    ) -> Room:
        """
        修改房間（名稱、容量、性別、所屬 Sheet）

        容量改變時：
        - 不可低於目前人數（CapacityExceeded）
        - isFull 依新容量重新推導

        容量沒變時 isFull 保持原狀（保留 markFull 的覆寫）

        參數：
            changes: 只包含要修改的欄位（snake_case）
        """
        RoomManager._update_room(db, room_id, changes)
        room = RoomManager.get_room_by_id(db, room_id)
        notify(notifier, ROOM_UPDATED, to_payload(RoomResponse, room))
        return room

    @staticmethod
    @transactional
    def _update_room(db: Session, room_id: str, changes: dict) -> None:
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

        sheet_id = changes.get("sheet_id", room.sheet_id)
        if sheet_id != room.sheet_id and not db.query(Sheet).filter(Sheet.id == sheet_id).first():
            raise SheetNotFound(sheet_id)

        name = changes.get("name", room.name)
        gender = changes.get("gender", room.gender)
        if (name, gender, sheet_id) != (room.name, room.gender, room.sheet_id):
            RoomManager._ensure_name_available(db, name, gender, sheet_id, exclude_id=room.id)

        capacity = changes.get("capacity", room.capacity)
        if capacity != room.capacity:
            member_count = RoomManager.get_member_count(db, room_id)
            if capacity < member_count:
                raise CapacityExceeded(
                    f"Capacity {capacity} is below current member count {member_count}"
                )
            room.is_full = derive_is_full(member_count, capacity)

        room.name = name
        room.gender = gender
        room.sheet_id = sheet_id
        room.capacity = capacity
        RoomManager._flush_or_conflict(db)

        logger.info(f"Updated room {room_id}: {sorted(changes)}")

    @staticmethod
    def delete_room(db: Session, room_id: str, notifier: Optional[Notifier] = None) -> dict:
        """
        刪除房間（必須沒有成員）

        異常：
            RoomNotFound: Room 不存在
            HasDependents: 房間還有成員
        """
        RoomManager._delete_room(db, room_id)
        notify(notifier, ROOM_DELETED, {"roomId": room_id})
        return {"message": "Room deleted successfully"}

    @staticmethod
    @transactional
    def _delete_room(db: Session, room_id: str) -> None:
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

        member_count = RoomManager.get_member_count(db, room_id)
        if member_count > 0:
            raise HasDependents(f"Cannot delete room with members ({member_count})")

        db.delete(room)
        logger.info(f"Deleted room {room_id}")

    @staticmethod
    def mark_full(db: Session, room_id: str, notifier: Optional[Notifier] = None) -> Room:
        """
        管理員覆寫：強制把房間標記為已滿

        注意：
            - 不檢查實際人數，isFull 可能與 (人數 >= 容量) 不一致
            - 之後移除成員時，isFull 會依一般規則被清除
        """
        RoomManager._mark_full(db, room_id)
        room = RoomManager.get_room_by_id(db, room_id)
        notify(notifier, ROOM_UPDATED, to_payload(RoomResponse, room))
        return room

    @staticmethod
    @transactional
    def _mark_full(db: Session, room_id: str) -> None:
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)
        room.is_full = True
        logger.info(f"Room {room_id} marked full by admin override")

    @staticmethod
    def get_room_by_id(db: Session, room_id: str) -> Room:
        """
        透過 id 取得 Room（含 sheet、成員、使用者）

        異常：
            RoomNotFound: Room 不存在
        """
        room = hydrated_rooms(db).filter(Room.id == room_id).first()
        if not room:
            raise RoomNotFound(room_id)
        return room

    @staticmethod
    def list_rooms(
        db: Session,
        gender: Optional[Gender] = None,
        sheet_id: Optional[str] = None,
    ) -> List[Room]:
        query = hydrated_rooms(db)
        if gender is not None:
            query = query.filter(Room.gender == gender)
        if sheet_id is not None:
            query = query.filter(Room.sheet_id == sheet_id)
        return query.order_by(Room.created_at).all()

    @staticmethod
    def get_members(db: Session, room_id: str) -> List[RoomMember]:
        return RoomManager.get_room_by_id(db, room_id).members

    @staticmethod
    def get_member_count(db: Session, room_id: str) -> int:
        """取得房間內目前的成員數量"""
        return db.query(RoomMember).filter(RoomMember.room_id == room_id).count()

    @staticmethod
    def _ensure_name_available(
        db: Session,
        name: str,
        gender: Gender,
        sheet_id: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        query = db.query(Room).filter(
            Room.sheet_id == sheet_id,
            Room.gender == gender,
            Room.name == name,
        )
        if exclude_id is not None:
            query = query.filter(Room.id != exclude_id)
        if query.first():
            raise ConflictingUniqueField("Room name already exists for this gender and sheet")

    @staticmethod
    def _flush_or_conflict(db: Session) -> None:
        # 與其他請求競爭時，唯一索引是最後一道防線
        try:
            db.flush()
        except IntegrityError as e:
            raise ConflictingUniqueField("Room name already exists for this gender and sheet") from e
