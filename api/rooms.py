"""
Room API Endpoints

職責：
1. Room 的 CRUD（管理端）
2. 加入、移除、移動成員
3. markFull 管理員覆寫

所有狀態變更都交給 RoomManager / MembershipManager，
這裡只負責把業務異常轉成 HTTP status code
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from models import Gender
from schemas import (
    RoomCreate,
    RoomUpdate,
    RoomResponse,
    JoinRoomRequest,
    MoveMemberRequest,
    MoveMemberResponse,
    MemberResponse,
    MessageResponse,
)
from core.room_manager import RoomManager
from core.membership_manager import MembershipManager
from core.notifier import Notifier
from core.exceptions import (
    NotFound,
    CapacityExceeded,
    DuplicateMembership,
    CrossSheetMove,
    GenderMismatch,
    ConcurrentUpdate,
    ConflictingUniqueField,
    HasDependents,
)
from api.websocket import get_notifier

router = APIRouter(prefix="/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.post("", response_model=RoomResponse, status_code=201)
def create_room(
    room_data: RoomCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """建立房間（管理端）"""
    try:
        return RoomManager.create_room(
            db,
            room_data.name,
            room_data.capacity,
            room_data.gender,
            room_data.sheet_id,
            notifier=notifier,
        )

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictingUniqueField as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    gender: Optional[Gender] = Query(None),
    sheet_id: Optional[str] = Query(None, alias="sheetId"),
    db: Session = Depends(get_db),
):
    """
    列出房間

    參數：
        gender: 只列出某性別（query parameter）
        sheetId: 只列出某 Sheet（query parameter）
    """
    return RoomManager.list_rooms(db, gender=gender, sheet_id=sheet_id)


@router.get("/members/{member_id}/available-rooms", response_model=List[RoomResponse])
def get_available_rooms(member_id: str, db: Session = Depends(get_db)):
    """
    取得成員可以移動過去的房間

    條件：同一個 Sheet、同性別、未滿、排除目前的房間
    """
    try:
        return MembershipManager.get_available_rooms(db, member_id)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get available rooms: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/members/{member_id}/move", response_model=MoveMemberResponse)
def move_member(
    member_id: str,
    move_data: MoveMemberRequest,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    移動成員到另一個房間

    前置條件：
    - 目標房間與來源房間在同一個 Sheet、同性別
    - 目標房間未滿，且使用者不在目標房間

    返回：
        - member: 更新後的成員資格
        - sourceRoom / destinationRoom: 兩個房間的最新狀態
    """
    try:
        result = MembershipManager.move_member(
            db, member_id, move_data.destination_room_id, notifier=notifier
        )
        return MoveMemberResponse(
            member=MemberResponse.model_validate(result["member"]),
            source_room=RoomResponse.model_validate(result["source_room"]),
            destination_room=RoomResponse.model_validate(result["destination_room"]),
        )

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (CrossSheetMove, GenderMismatch, CapacityExceeded) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DuplicateMembership, ConcurrentUpdate) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to move member: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: str, db: Session = Depends(get_db)):
    try:
        return RoomManager.get_room_by_id(db, room_id)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: str,
    room_data: RoomUpdate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    修改房間

    只修改 request 中有提供的欄位；容量改變時 isFull 會重新計算
    """
    try:
        changes = room_data.model_dump(exclude_unset=True, exclude_none=True)
        return RoomManager.update_room(db, room_id, changes, notifier=notifier)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CapacityExceeded as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConflictingUniqueField as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{room_id}", response_model=MessageResponse)
def delete_room(
    room_id: str,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """刪除房間（必須沒有成員）"""
    try:
        return RoomManager.delete_room(db, room_id, notifier=notifier)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HasDependents as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to delete room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/join", response_model=RoomResponse)
def join_room(
    room_id: str,
    join_data: JoinRoomRequest,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    加入房間

    前置條件：
    - 房間必須存在且未滿
    - 同名使用者不可重複加入同一個房間

    返回：
        更新後的房間（含所有成員）
    """
    try:
        return MembershipManager.join_room(
            db, room_id, join_data.firstname, join_data.lastname, notifier=notifier
        )

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CapacityExceeded as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateMembership as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{room_id}/members", response_model=List[MemberResponse])
def get_room_members(room_id: str, db: Session = Depends(get_db)):
    try:
        return RoomManager.get_members(db, room_id)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{room_id}/members/{member_id}", response_model=MessageResponse)
def remove_member(
    room_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """從房間移除成員"""
    try:
        return MembershipManager.remove_member(db, room_id, member_id, notifier=notifier)

    except NotFound:
        raise HTTPException(status_code=404, detail="Member not found in this room")
    except ConcurrentUpdate as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to remove member: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.patch("/{room_id}/mark-full", response_model=RoomResponse)
def mark_room_full(
    room_id: str,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    管理員覆寫：強制標記房間已滿

    注意：不檢查實際人數
    """
    try:
        return RoomManager.mark_full(db, room_id, notifier=notifier)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to mark room full: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
