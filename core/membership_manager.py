"""
Membership Manager：房間成員的狀態轉換

職責：
1. joinRoom：加入房間（找不到使用者就建立）
2. removeMember：移除成員
3. moveMember：在同一個 Sheet、同性別的房間之間移動成員
4. 查詢可移動的目標房間

一致性規則：
- 每個操作都在單一 transaction 內完成（@transactional）
- 檢查之前先鎖定 Room（SELECT ... FOR UPDATE），同一個房間的請求會被序列化
- 所有驗證都在第一個寫入之前完成
- 操作結束時 isFull == (人數 >= 容量)
  - 加入只會把 isFull 設為 True
  - 移除只會把 isFull 清為 False
- commit 之後才廣播事件，廣播失敗不影響結果
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
import logging

from models import Room, RoomMember, User
from schemas import MemberResponse, RoomResponse, to_payload
from core.locks import with_room_lock, with_membership_lock, lock_rooms
from core.notifier import Notifier, notify, MEMBER_JOINED, MEMBER_LEFT, ROOM_UPDATED
from core.room_manager import RoomManager, hydrated_rooms
from core.exceptions import (
    RoomNotFound,
    MembershipNotFound,
    CapacityExceeded,
    DuplicateMembership,
    CrossSheetMove,
    GenderMismatch,
    ConcurrentUpdate,
)
from services.occupancy_service import is_at_capacity, should_mark_full, should_clear_full
from database import transactional

logger = logging.getLogger(__name__)


class MembershipManager:
    """房間成員狀態轉換"""

    # ============ joinRoom ============

    @staticmethod
    def join_room(
        db: Session,
        room_id: str,
        firstname: str,
        lastname: str,
        notifier: Optional[Notifier] = None,
    ) -> Room:
        """
        加入房間

        流程：
        1. 鎖定 Room，檢查容量
        2. 依 (firstname, lastname) 找使用者，找不到就建立
        3. 檢查是否已在此房間
        4. 建立成員資格，必要時標記已滿
        5. commit 後廣播 member_joined、room_updated

        返回：
            更新後的 Room（含 sheet、成員、使用者）

        異常：
            RoomNotFound: Room 不存在
            CapacityExceeded: 房間已滿
            DuplicateMembership: 使用者已在此房間
        """
        membership = MembershipManager._join_room(db, room_id, firstname, lastname)

        room = RoomManager.get_room_by_id(db, room_id)
        notify(notifier, MEMBER_JOINED, {
            "roomId": room_id,
            "member": to_payload(MemberResponse, membership),
        })
        notify(notifier, ROOM_UPDATED, to_payload(RoomResponse, room))
        return room

    @staticmethod
    @transactional
    def _join_room(db: Session, room_id: str, firstname: str, lastname: str) -> RoomMember:
        # 1. 取得並鎖定 Room
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

        # 2. 容量檢查
        member_count = RoomManager.get_member_count(db, room_id)
        if is_at_capacity(member_count, room.capacity):
            raise CapacityExceeded(f"Room {room.name} is full ({member_count}/{room.capacity})")

        # 3. 找或建立使用者
        user = MembershipManager._find_or_create_user(db, firstname, lastname)

        # 4. 重複檢查
        if MembershipManager._find_membership(db, room_id, user.id):
            raise DuplicateMembership(f"{firstname} {lastname} is already in room {room.name}")

        # 5. 建立成員資格
        membership = RoomMember(room_id=room_id, user_id=user.id)
        db.add(membership)
        MembershipManager._flush_or_duplicate(db, f"{firstname} {lastname} is already in room {room.name}")

        # 6. 只會設為已滿
        new_count = member_count + 1
        if should_mark_full(new_count, room.capacity):
            room.is_full = True

        logger.info(
            f"User {user.id} joined room {room_id} as member {membership.id} "
            f"({new_count}/{room.capacity})"
        )
        return membership

    # ============ removeMember ============

    @staticmethod
    def remove_member(
        db: Session,
        room_id: str,
        membership_id: str,
        notifier: Optional[Notifier] = None,
    ) -> dict:
        """
        從房間移除成員

        前置條件：
        - 成員資格必須存在，且屬於 room_id 這個房間

        異常：
            MembershipNotFound: 不存在或不屬於此房間
            ConcurrentUpdate: 成員在鎖定前被移到別的房間
        """
        MembershipManager._remove_member(db, room_id, membership_id)

        room = RoomManager.get_room_by_id(db, room_id)
        notify(notifier, MEMBER_LEFT, {"roomId": room_id, "memberId": membership_id})
        notify(notifier, ROOM_UPDATED, to_payload(RoomResponse, room))
        return {"message": "Member removed successfully"}

    @staticmethod
    @transactional
    def _remove_member(db: Session, room_id: str, membership_id: str) -> None:
        membership = db.query(RoomMember).filter(RoomMember.id == membership_id).first()
        if not membership or membership.room_id != room_id:
            raise MembershipNotFound(membership_id)

        # 先鎖 Room 再鎖 RoomMember，然後重新確認
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)
        membership = with_membership_lock(membership_id, db).first()
        if not membership:
            raise MembershipNotFound(membership_id)
        if membership.room_id != room_id:
            raise ConcurrentUpdate(f"Member {membership_id} was moved to another room")

        db.delete(membership)
        db.flush()

        # 只會清除已滿
        new_count = RoomManager.get_member_count(db, room_id)
        if should_clear_full(room.is_full, new_count, room.capacity):
            room.is_full = False

        logger.info(f"Member {membership_id} left room {room_id} ({new_count}/{room.capacity})")

    # ============ moveMember ============

    @staticmethod
    def move_member(
        db: Session,
        membership_id: str,
        destination_room_id: str,
        notifier: Optional[Notifier] = None,
    ) -> dict:
        """
        把成員移到同一個 Sheet、同性別的另一個房間

        joined_at 保留不變（原地修改 room_id）

        返回：
            {"member", "source_room", "destination_room"}（ORM 物件）

        異常：
            MembershipNotFound / RoomNotFound: 不存在
            CrossSheetMove: 不同 Sheet
            GenderMismatch: 不同性別
            CapacityExceeded: 目標房間已滿
            DuplicateMembership: 使用者已在目標房間
            ConcurrentUpdate: 成員或原房間在鎖定前被修改
        """
        source_room_id = MembershipManager._move_member(db, membership_id, destination_room_id)

        membership = MembershipManager.get_membership(db, membership_id)
        source_room = RoomManager.get_room_by_id(db, source_room_id)
        destination_room = RoomManager.get_room_by_id(db, destination_room_id)

        notify(notifier, MEMBER_LEFT, {"roomId": source_room_id, "memberId": membership_id})
        notify(notifier, MEMBER_JOINED, {
            "roomId": destination_room_id,
            "member": to_payload(MemberResponse, membership),
        })
        notify(notifier, ROOM_UPDATED, to_payload(RoomResponse, source_room))
        notify(notifier, ROOM_UPDATED, to_payload(RoomResponse, destination_room))

        return {
            "member": membership,
            "source_room": source_room,
            "destination_room": destination_room,
        }

    @staticmethod
    @transactional
    def _move_member(db: Session, membership_id: str, destination_room_id: str) -> str:
        # 1. 找到成員資格（尚未鎖定）
        membership = db.query(RoomMember).filter(RoomMember.id == membership_id).first()
        if not membership:
            raise MembershipNotFound(membership_id)
        source_room_id = membership.room_id

        # 2. 依 id 順序鎖定兩個 Room，再鎖成員資格
        locked = {room.id: room for room in lock_rooms([source_room_id, destination_room_id], db)}
        destination = locked.get(destination_room_id)
        if destination is None:
            raise RoomNotFound(destination_room_id)
        source = locked.get(source_room_id)
        if source is None:
            raise ConcurrentUpdate(f"Room {source_room_id} was removed by another request")

        membership = with_membership_lock(membership_id, db).first()
        if not membership:
            raise MembershipNotFound(membership_id)
        if membership.room_id != source_room_id:
            raise ConcurrentUpdate(f"Member {membership_id} was moved by another request")

        # 3-6. 驗證
        if source.sheet_id != destination.sheet_id:
            raise CrossSheetMove("Cannot move a member to a room in another sheet")
        if source.gender != destination.gender:
            raise GenderMismatch(
                f"Cannot move a member from a {source.gender.value} room to a {destination.gender.value} room"
            )
        destination_count = RoomManager.get_member_count(db, destination.id)
        if is_at_capacity(destination_count, destination.capacity):
            raise CapacityExceeded(
                f"Room {destination.name} is full ({destination_count}/{destination.capacity})"
            )
        if MembershipManager._find_membership(db, destination.id, membership.user_id):
            raise DuplicateMembership(f"User is already in room {destination.name}")

        # 7. 原地修改（joined_at 不變）
        membership.room_id = destination.id
        MembershipManager._flush_or_duplicate(db, f"User is already in room {destination.name}")

        # 8. 兩個房間各自修正 isFull
        source_count = RoomManager.get_member_count(db, source.id)
        if should_clear_full(source.is_full, source_count, source.capacity):
            source.is_full = False
        if should_mark_full(destination_count + 1, destination.capacity):
            destination.is_full = True

        logger.info(
            f"Moved member {membership_id} from room {source.id} ({source_count}/{source.capacity}) "
            f"to room {destination.id} ({destination_count + 1}/{destination.capacity})"
        )
        return source_room_id

    # ============ 查詢 ============

    @staticmethod
    def get_available_rooms(db: Session, membership_id: str) -> List[Room]:
        """
        成員可以移動過去的房間

        條件：同一個 Sheet、同性別、未滿、不是目前的房間
        """
        membership = db.query(RoomMember).options(
            joinedload(RoomMember.room)
        ).filter(RoomMember.id == membership_id).first()
        if not membership:
            raise MembershipNotFound(membership_id)

        current = membership.room
        candidates = hydrated_rooms(db).filter(
            Room.sheet_id == current.sheet_id,
            Room.gender == current.gender,
            Room.id != current.id,
            Room.is_full == False,
        ).order_by(Room.name).all()

        return [room for room in candidates if not is_at_capacity(len(room.members), room.capacity)]

    @staticmethod
    def get_membership(db: Session, membership_id: str) -> RoomMember:
        membership = db.query(RoomMember).options(
            joinedload(RoomMember.user)
        ).filter(RoomMember.id == membership_id).first()
        if not membership:
            raise MembershipNotFound(membership_id)
        return membership

    @staticmethod
    def list_memberships(db: Session) -> List[RoomMember]:
        """所有成員資格（含使用者、房間、Sheet）"""
        return db.query(RoomMember).options(
            joinedload(RoomMember.user),
            joinedload(RoomMember.room).joinedload(Room.sheet),
        ).order_by(RoomMember.joined_at).all()

    # ============ 內部工具 ============

    @staticmethod
    def _find_or_create_user(db: Session, firstname: str, lastname: str) -> User:
        """
        依 (firstname, lastname) 完全相符找使用者，找不到就建立

        同名的多筆使用者取最早建立的那一筆
        """
        user = db.query(User).filter(
            User.firstname == firstname,
            User.lastname == lastname,
        ).order_by(User.created_at).first()

        if user is None:
            user = User(firstname=firstname, lastname=lastname)
            db.add(user)
            db.flush()
            logger.info(f"Created user {user.id} ({firstname} {lastname})")
        return user

    @staticmethod
    def _find_membership(db: Session, room_id: str, user_id: str) -> Optional[RoomMember]:
        return db.query(RoomMember).filter(
            RoomMember.room_id == room_id,
            RoomMember.user_id == user_id,
        ).first()

    @staticmethod
    def _flush_or_duplicate(db: Session, message: str) -> None:
        # 並發的重複加入由唯一索引擋下，轉成與預先檢查相同的異常
        try:
            db.flush()
        except IntegrityError as e:
            raise DuplicateMembership(message) from e
