"""
app.services.room_broadcaster
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

课堂广播器 —— 把一帧消息扇出给课堂内的成员。

广播是「先拷贝成员快照再遍历」，且只做非阻塞入队，
不会在发送途中让出事件循环，因此与加入/离开操作天然串行。
"""
from __future__ import annotations

from typing import Any

from app.core.logging import get_logger
from app.schemas.classroom_events import encode_frame
from app.services.connection_registry import ConnectionId, ConnectionRegistry
from app.services.room_directory import RoomDirectory

logger = get_logger(__name__)


class RoomBroadcaster:
    """按课堂扇出消息。"""

    def __init__(self, registry: ConnectionRegistry, directory: RoomDirectory) -> None:
        self._registry = registry
        self._directory = directory

    def broadcast(
        self,
        room_id: str,
        event: str,
        payload: Any = None,
        exclude: ConnectionId | None = None,
    ) -> int:
        """向课堂内所有成员（可排除一个连接）发送事件。

        Returns:
            成功入队的接收方数量。
        """
        frame = encode_frame(event, payload)
        delivered = 0
        for member in self._directory.members_of(room_id):
            if member.connection_id == exclude:
                continue
            if self._registry.send(member.connection_id, frame):
                delivered += 1
        logger.debug("广播 %s | class=%s | 接收方: %d", event, room_id, delivered)
        return delivered

    def send_to(self, connection_id: ConnectionId, event: str, payload: Any = None) -> bool:
        """只向单个连接发送事件。"""
        return self._registry.send(connection_id, encode_frame(event, payload))
