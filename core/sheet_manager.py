"""
Sheet Manager：管理 Sheet（建築／樓層）

職責：
1. 建立 Sheet（生成唯一的存取代碼）
2. 修改名稱、刪除（必須沒有房間）
3. 驗證存取代碼
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
import logging

from models import Sheet, Room, RoomMember
from schemas import SheetResponse, to_payload
from core.notifier import Notifier, notify, SHEET_CREATED, SHEET_DELETED
from core.exceptions import (
    SheetNotFound,
    ConflictingUniqueField,
    HasDependents,
    InvalidAccessCode,
)
from services.naming_service import generate_sheet_code, normalize_code
from database import transactional

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 50


def hydrated_sheets(db: Session):
    """Sheet query，一次載入房間、成員與使用者"""
    return db.query(Sheet).options(
        selectinload(Sheet.rooms).selectinload(Room.members).selectinload(RoomMember.user)
    )


class SheetManager:
    """Sheet 管理器"""

    @staticmethod
    def create_sheet(db: Session, name: str, notifier: Optional[Notifier] = None) -> Sheet:
        """
        建立新 Sheet

        流程：
        1. 檢查名稱唯一
        2. 生成唯一的存取代碼（SDC-NNNN）
        3. 廣播 sheet_created（不含代碼）

        異常：
            ConflictingUniqueField: 名稱重複
        """
        sheet_id = SheetManager._create_sheet(db, name)
        sheet = SheetManager.get_sheet_by_id(db, sheet_id)
        notify(notifier, SHEET_CREATED, to_payload(SheetResponse, sheet))
        return sheet

    @staticmethod
    @transactional
    def _create_sheet(db: Session, name: str) -> str:
        SheetManager._ensure_name_available(db, name)

        code = SheetManager._generate_unique_code(db)
        sheet = Sheet(name=name, code=code)
        db.add(sheet)
        SheetManager._flush_or_conflict(db)

        logger.info(f"Created sheet {sheet.id} ({name})")
        return sheet.id

    @staticmethod
    @transactional
    def update_sheet(db: Session, sheet_id: str, name: str) -> Sheet:
        """
        修改 Sheet 名稱

        異常：
            SheetNotFound: Sheet 不存在
            ConflictingUniqueField: 名稱重複
        """
        sheet = db.query(Sheet).filter(Sheet.id == sheet_id).first()
        if not sheet:
            raise SheetNotFound(sheet_id)

        if name != sheet.name:
            SheetManager._ensure_name_available(db, name)
            sheet.name = name
            SheetManager._flush_or_conflict(db)

        logger.info(f"Updated sheet {sheet_id}")
        return sheet

    @staticmethod
    def delete_sheet(db: Session, sheet_id: str, notifier: Optional[Notifier] = None) -> dict:
        """
        刪除 Sheet（必須沒有房間）

        異常：
            SheetNotFound: Sheet 不存在
            HasDependents: 還有房間
        """
        SheetManager._delete_sheet(db, sheet_id)
        notify(notifier, SHEET_DELETED, {"sheetId": sheet_id})
        return {"message": "Sheet deleted successfully"}

    @staticmethod
    @transactional
    def _delete_sheet(db: Session, sheet_id: str) -> None:
        sheet = db.query(Sheet).filter(Sheet.id == sheet_id).with_for_update().first()
        if not sheet:
            raise SheetNotFound(sheet_id)

        room_count = db.query(Room).filter(Room.sheet_id == sheet_id).count()
        if room_count > 0:
            raise HasDependents(f"Cannot delete sheet with rooms ({room_count})")

        db.delete(sheet)
        logger.info(f"Deleted sheet {sheet_id}")

    @staticmethod
    def validate_code(db: Session, code: Optional[str]) -> str:
        """
        驗證存取代碼

        返回：
            對應的 Sheet id

        異常：
            InvalidAccessCode: 未提供或找不到
        """
        if not code or not code.strip():
            raise InvalidAccessCode("Access code is required")

        sheet = db.query(Sheet).filter(Sheet.code == normalize_code(code)).first()
        if not sheet:
            logger.info("Rejected invalid sheet access code")
            raise InvalidAccessCode("Invalid access code")
        return sheet.id

    @staticmethod
    def get_sheet_by_id(db: Session, sheet_id: str) -> Sheet:
        sheet = hydrated_sheets(db).filter(Sheet.id == sheet_id).first()
        if not sheet:
            raise SheetNotFound(sheet_id)
        return sheet

    @staticmethod
    def list_sheets(db: Session) -> List[Sheet]:
        return hydrated_sheets(db).order_by(Sheet.created_at).all()

    @staticmethod
    def _generate_unique_code(db: Session) -> str:
        # 代碼空間只有 10^4，碰撞時重新生成
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_sheet_code()
            if not db.query(Sheet).filter(Sheet.code == code).first():
                return code
            logger.warning(f"Sheet code collision detected, regenerating: {code}")
        raise ConflictingUniqueField("Could not generate a unique sheet access code")

    @staticmethod
    def _ensure_name_available(db: Session, name: str) -> None:
        if db.query(Sheet).filter(Sheet.name == name).first():
            raise ConflictingUniqueField("Sheet name already exists")

    @staticmethod
    def _flush_or_conflict(db: Session) -> None:
        try:
            db.flush()
        except IntegrityError as e:
            raise ConflictingUniqueField("Sheet name already exists") from e
