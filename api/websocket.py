"""
Realtime 廣播（Socket.IO）

前端透過 socket.io-client 連線到預設 namespace，訂閱：
room_created / room_updated / room_deleted / member_joined / member_left /
sheet_created / sheet_deleted

SocketIONotifier 把 emit 排進 FastAPI BackgroundTasks：
- 只在 response 產生之後執行（一定在 transaction commit 之後）
- emit 失敗只記錄 log
"""
import logging
from typing import Any, Dict

import socketio
from fastapi import BackgroundTasks

from database import settings

logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=[settings.frontend_url],
)


@sio.event
async def connect(sid, environ, auth=None):
    logger.info(f"Client connected: {sid}")


@sio.event
async def disconnect(sid):
    logger.info(f"Client disconnected: {sid}")


async def emit_event(event: str, payload: Dict[str, Any]) -> None:
    try:
        await sio.emit(event, payload)
    except Exception:
        logger.warning(f"Failed to emit {event}", exc_info=True)


class SocketIONotifier:
    """Request-scoped notifier：事件在 response 之後才送出"""

    def __init__(self, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks

    def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        logger.debug(f"Queue event {event}")
        self.background_tasks.add_task(emit_event, event, payload)


def get_notifier(background_tasks: BackgroundTasks) -> SocketIONotifier:
    """FastAPI dependency：提供 Notifier"""
    return SocketIONotifier(background_tasks)
