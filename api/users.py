"""
User API Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging

from database import get_db
from schemas import UserResponse, MessageResponse
from core.user_manager import UserManager
from core.exceptions import NotFound, HasDependents

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[UserResponse])
def list_users(db: Session = Depends(get_db)):
    return UserManager.list_users(db)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    try:
        return UserManager.get_user_by_id(db, user_id)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: str, db: Session = Depends(get_db)):
    """刪除使用者（必須先從所有房間移除）"""
    try:
        return UserManager.delete_user(db, user_id)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HasDependents as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to delete user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
