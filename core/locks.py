"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）
SQLite 不支援 FOR UPDATE（SQLAlchemy 會直接忽略），改由 database.configure_sqlite_locking
以 BEGIN IMMEDIATE 序列化 transaction

鎖定順序（避免 deadlock）：
1. Room（多個 Room 時依 id 由小到大）
2. RoomMember
"""
from typing import List

from sqlalchemy.orm import Session, Query

from models import Room, RoomMember


def with_room_lock(room_id: str, db: Session) -> Query:
    """
    鎖定一個 Room（行級鎖）

    使用場景：
    - 加入成員前檢查容量（check-then-insert）
    - 移除成員後更新 isFull

    範例：
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

    參數：
        room_id: Room id
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - populate_existing 確保拿到的是鎖定後重新讀取的資料
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Room).filter(
        Room.id == room_id
    ).populate_existing().with_for_update(nowait=False)


def lock_rooms(room_ids: List[str], db: Session) -> List[Room]:
    """
    依 id 排序鎖定多個 Rooms（用於移動成員）

    兩個請求即使以相反方向移動成員，也會用同樣的順序取得鎖

    參數：
        room_ids: Room id 列表（可以重複）
        db: SQLAlchemy Session

    返回：
        已鎖定的 Room 列表（依 id 排序，不存在的 id 不會出現）
    """
    rooms = []
    for room_id in sorted(set(room_ids)):
        room = with_room_lock(room_id, db).first()
        if room is not None:
            rooms.append(room)
    return rooms


def with_membership_lock(membership_id: str, db: Session) -> Query:
    """
    鎖定一個 RoomMember（行級鎖）

    必須在鎖定所屬 Room 之後呼叫
    """
    return db.query(RoomMember).filter(
        RoomMember.id == membership_id
    ).populate_existing().with_for_update(nowait=False)
