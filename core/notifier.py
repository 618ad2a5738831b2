"""
Notifier：變更事件的廣播介面

Manager 只依賴 broadcast(event, payload) 這個能力，不知道底層是 Socket.IO
還是其他傳輸方式。廣播一律在 transaction commit 之後呼叫，
失敗只記錄 log，不影響已經 commit 的資料。
"""
import logging
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

# 事件名稱（前端訂閱用）
ROOM_CREATED = "room_created"
ROOM_UPDATED = "room_updated"
ROOM_DELETED = "room_deleted"
MEMBER_JOINED = "member_joined"
MEMBER_LEFT = "member_left"
SHEET_CREATED = "sheet_created"
SHEET_DELETED = "sheet_deleted"


class Notifier(Protocol):
    def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        ...


def notify(notifier: Optional[Notifier], event: str, payload: Dict[str, Any]) -> None:
    """
    Best-effort 廣播

    notifier 拋出的任何異常都只會被記錄，不會往上拋
    """
    if notifier is None:
        return
    try:
        notifier.broadcast(event, payload)
    except Exception:
        logger.warning(f"Failed to broadcast {event}", exc_info=True)
