"""
統計服務：管理後台的佔用率統計

只做簡單的加總與計數
"""
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Gender, Room, RoomMember


def occupancy_rate(total_members: int, total_capacity: int) -> float:
    """
    佔用率百分比（小數兩位）

    範例：
        occupancy_rate(1, 3) -> 33.33
        occupancy_rate(0, 0) -> 0.0（沒有任何容量）
    """
    if not total_capacity:
        return 0.0
    return round(total_members / total_capacity * 100, 2)


def get_member_analytics(db: Session) -> Dict[str, Any]:
    """
    成員與房間的統計資料

    流程：
    1. 計算成員總數、房間總數、總容量
    2. 依性別分組計算房間數

    返回：
        dict（total_members, total_rooms, total_capacity,
        occupancy_rate, rooms_by_gender）
    """
    total_members = db.query(RoomMember).count()
    total_rooms = db.query(Room).count()
    total_capacity = db.query(func.coalesce(func.sum(Room.capacity), 0)).scalar() or 0

    rows = (
        db.query(Room.gender, func.count(Room.id))
        .group_by(Room.gender)
        .all()
    )
    counts = {gender: count for gender, count in rows}

    return {
        "total_members": total_members,
        "total_rooms": total_rooms,
        "total_capacity": int(total_capacity),
        "occupancy_rate": occupancy_rate(total_members, int(total_capacity)),
        "rooms_by_gender": [
            {"gender": gender, "count": counts[gender]}
            for gender in Gender
            if gender in counts
        ],
    }
