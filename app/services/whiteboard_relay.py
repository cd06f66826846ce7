"""
app.services.whiteboard_relay
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

白板转发 —— 笔画发给除作者外的所有人，清屏发给包括作者在内的所有人。

服务端不保存白板状态，中途加入的成员只能看到之后的笔画。
"""
from __future__ import annotations

from typing import Any

from app.core.logging import get_logger
from app.schemas.classroom_events import CLEAR_BOARD, DRAW
from app.services.connection_registry import ConnectionId
from app.services.room_broadcaster import RoomBroadcaster

logger = get_logger(__name__)


class WhiteboardRelay:
    def __init__(self, broadcaster: RoomBroadcaster) -> None:
        self._broadcaster = broadcaster

    def broadcast_stroke(
        self, sender: ConnectionId, room_id: str | None, line: Any,
    ) -> int:
        """转发一段笔画，作者本地已经画过，不回显。"""
        if not room_id or not line:
            logger.debug("丢弃不完整的笔画 | conn=%s", sender)
            return 0
        return self._broadcaster.broadcast(room_id, DRAW, {"line": line}, exclude=sender)

    def broadcast_clear(self, room_id: str | None) -> int:
        """清空课堂白板。"""
        if not room_id:
            return 0
        logger.info("白板已清空 | class=%s", room_id)
        return self._broadcaster.broadcast(room_id, CLEAR_BOARD)
