"""
User Manager：使用者查詢與刪除

使用者由 MembershipManager.join_room 依名字自動建立，這裡只負責管理端操作
"""
from sqlalchemy.orm import Session
from typing import List
import logging

from models import User, RoomMember
from core.exceptions import UserNotFound, HasDependents
from database import transactional

logger = logging.getLogger(__name__)


class UserManager:

    @staticmethod
    def list_users(db: Session) -> List[User]:
        return db.query(User).order_by(User.lastname, User.firstname).all()

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise UserNotFound(user_id)
        return user

    @staticmethod
    @transactional
    def delete_user(db: Session, user_id: str) -> dict:
        """
        刪除使用者

        還有成員資格時拒絕刪除（先從房間移除，才能維持 isFull 一致）
        """
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise UserNotFound(user_id)

        membership_count = db.query(RoomMember).filter(RoomMember.user_id == user_id).count()
        if membership_count > 0:
            raise HasDependents(f"Cannot delete user with room memberships ({membership_count})")

        db.delete(user)
        logger.info(f"Deleted user {user_id}")
        return {"message": "User deleted successfully"}
