"""
app.services.chat_relay
~~~~~~~~~~~~~~~~~~~~~~~

课堂聊天转发 —— 消息发给课堂全员（包括发送者），时间戳由服务端统一生成。

聊天记录只在投递途中存在，不做持久化。
"""
from __future__ import annotations

from app.core.logging import get_logger
from app.core.rate_limit import WebSocketRateLimiter
from app.schemas.classroom_events import CHAT_MESSAGE, ChatMessageData
from app.services.connection_registry import ConnectionId
from app.services.room_broadcaster import RoomBroadcaster

logger = get_logger(__name__)

THROTTLED_NOTICE = "You are sending messages too quickly, please slow down."


class ChatRelay:
    """聊天转发器。

    Attributes:
        limiter: 可选的按连接限流器，为 None 时不限流。
        system_sender: 限流提示使用的发送者名称。
    """

    def __init__(
        self,
        broadcaster: RoomBroadcaster,
        limiter: WebSocketRateLimiter | None = None,
        system_sender: str = "System",
    ) -> None:
        self._broadcaster = broadcaster
        self.limiter = limiter
        self.system_sender = system_sender

    def broadcast_chat(
        self,
        room_id: str | None,
        from_: str | None,
        text: str | None,
        sender: ConnectionId | None = None,
    ) -> ChatMessageData | None:
        """向课堂全员广播一条聊天消息。

        Args:
            room_id: 课堂 ID。
            from_: 发送者显示名。
            text: 消息文本，空白文本会被丢弃。
            sender: 发送方连接 ID，仅用于限流。

        Returns:
            实际广播的消息；被丢弃或被限流时返回 None。
        """
        if not room_id or not text or not text.strip():
            logger.debug("丢弃空聊天消息 | conn=%s", sender)
            return None

        if sender is not None and self.limiter is not None and not self.limiter.is_allowed(sender):
            # 只提醒发送者本人
            self._broadcaster.send_to(
                sender,
                CHAT_MESSAGE,
                ChatMessageData(from_=self.system_sender, text=THROTTLED_NOTICE),
            )
            logger.warning("聊天发送过快，已拦截 | conn=%s | class=%s", sender, room_id)
            return None

        message = ChatMessageData(from_=from_, text=text)
        self._broadcaster.broadcast(room_id, CHAT_MESSAGE, message)
        return message
