"""
Sheet API Endpoints

一般 endpoint 不會回傳存取代碼；admin/ 開頭的 endpoint 才會
（admin endpoint 目前沒有驗證）
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging

from database import get_db
from schemas import (
    SheetCreate,
    SheetResponse,
    SheetWithCodeResponse,
    ValidateCodeRequest,
    ValidateCodeResponse,
    MessageResponse,
)
from core.sheet_manager import SheetManager
from core.notifier import Notifier
from core.exceptions import NotFound, ConflictingUniqueField, HasDependents, InvalidAccessCode
from api.websocket import get_notifier

router = APIRouter(prefix="/sheets", tags=["sheets"])
logger = logging.getLogger(__name__)


@router.post("", response_model=SheetResponse, status_code=201)
def create_sheet(
    sheet_data: SheetCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """建立 Sheet（存取代碼由伺服器生成）"""
    try:
        return SheetManager.create_sheet(db, sheet_data.name, notifier=notifier)

    except ConflictingUniqueField as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create sheet: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=List[SheetResponse])
def list_sheets(db: Session = Depends(get_db)):
    return SheetManager.list_sheets(db)


@router.post("/validate-code", response_model=ValidateCodeResponse)
def validate_code(body: ValidateCodeRequest, db: Session = Depends(get_db)):
    """
    驗證 Sheet 存取代碼

    返回：
        - sheetId: 代碼對應的 Sheet
    """
    try:
        sheet_id = SheetManager.validate_code(db, body.code)
        return ValidateCodeResponse(sheet_id=sheet_id)

    except InvalidAccessCode as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/admin/with-codes", response_model=List[SheetWithCodeResponse])
def list_sheets_with_codes(db: Session = Depends(get_db)):
    return SheetManager.list_sheets(db)


@router.get("/admin/{sheet_id}/with-code", response_model=SheetWithCodeResponse)
def get_sheet_with_code(sheet_id: str, db: Session = Depends(get_db)):
    try:
        return SheetManager.get_sheet_by_id(db, sheet_id)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{sheet_id}", response_model=SheetResponse)
def get_sheet(sheet_id: str, db: Session = Depends(get_db)):
    try:
        return SheetManager.get_sheet_by_id(db, sheet_id)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{sheet_id}", response_model=SheetResponse)
def update_sheet(sheet_id: str, sheet_data: SheetCreate, db: Session = Depends(get_db)):
    try:
        return SheetManager.update_sheet(db, sheet_id, sheet_data.name)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictingUniqueField as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update sheet: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{sheet_id}", response_model=MessageResponse)
def delete_sheet(
    sheet_id: str,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """刪除 Sheet（必須沒有房間）"""
    try:
        return SheetManager.delete_sheet(db, sheet_id, notifier=notifier)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HasDependents as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to delete sheet: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
