"""
app.services.presence_broadcaster
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

在线列表广播 —— 每次加入/离开后，向课堂全员推送完整的成员快照和一条系统通知。

推送的是全量快照而非增量，客户端直接整体替换本地列表即可。
"""
from __future__ import annotations

from app.core.logging import get_logger
from app.schemas.classroom_events import (
    CHAT_MESSAGE,
    PARTICIPANTS_UPDATE,
    ChatMessageData,
    Participant,
)
from app.services.room_broadcaster import RoomBroadcaster
from app.services.room_directory import RoomDirectory

logger = get_logger(__name__)


class PresenceBroadcaster:
    """成员变动通知。

    Attributes:
        system_sender: 系统通知使用的发送者名称。
    """

    def __init__(
        self,
        directory: RoomDirectory,
        broadcaster: RoomBroadcaster,
        system_sender: str = "System",
    ) -> None:
        self._directory = directory
        self._broadcaster = broadcaster
        self.system_sender = system_sender

    def announce_join(self, participant: Participant) -> None:
        """广播「xxx joined」。"""
        self._announce(participant.class_id, f"{participant.name} joined")

    def announce_leave(self, participant: Participant) -> None:
        """广播「xxx left」。"""
        self._announce(participant.class_id, f"{participant.name} left")

    def _announce(self, room_id: str, notice: str) -> None:
        members = self._directory.members_of(room_id)
        if not members:
            # 最后一人离开，课堂已不存在
            return

        self._broadcaster.broadcast(room_id, PARTICIPANTS_UPDATE, members)
        self._broadcaster.broadcast(
            room_id,
            CHAT_MESSAGE,
            ChatMessageData(from_=self.system_sender, text=notice),
        )
        logger.info("%s | class=%s | 在线: %d", notice, room_id, len(members))
