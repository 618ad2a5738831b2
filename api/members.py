"""
Member API Endpoints

職責：
1. 列出所有成員資格（含使用者、房間、Sheet）
2. 簡單的佔用率統計
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from schemas import MemberWithRoomResponse, AnalyticsResponse
from core.membership_manager import MembershipManager
from services.analytics_service import get_member_analytics

router = APIRouter(prefix="/members", tags=["members"])


@router.get("", response_model=List[MemberWithRoomResponse])
def list_members(db: Session = Depends(get_db)):
    return MembershipManager.list_memberships(db)


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(db: Session = Depends(get_db)):
    """
    佔用率統計

    返回：
        - totalMembers / totalRooms / totalCapacity
        - occupancyRate: 百分比（小數兩位）
        - roomsByGender: 各性別的房間數
    """
    return AnalyticsResponse(**get_member_analytics(db))
