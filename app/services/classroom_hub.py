"""
app.services.classroom_hub
~~~~~~~~~~~~~~~~~~~~~~~~~~

课堂协调中心 —— 持有全部课堂状态，并按事件名分发入站消息。

组件依赖关系（叶子在前）:
  - ``ConnectionRegistry``   在线连接
  - ``RoomDirectory``        课堂 → 参与者
  - ``RoomBroadcaster``      按课堂扇出
  - ``SignalingRouter`` / ``WhiteboardRelay`` / ``ChatRelay`` / ``PresenceBroadcaster``

所有分发逻辑都是同步代码，在单个事件循环内执行时与其他连接的事件天然串行，
不需要额外加锁。应用启动时在 lifespan 中创建一个实例并挂载到 ``app.state``。
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from app.core.logging import get_logger
from app.core.rate_limit import WebSocketRateLimiter
from app.core.settings import settings
from app.schemas.classroom_events import (
    CHAT_MESSAGE,
    CLEAR_BOARD,
    DRAW,
    JOIN_CLASS,
    WEBRTC_ANSWER,
    WEBRTC_ICE_CANDIDATE,
    WEBRTC_OFFER,
    ChatMessageRequest,
    ClearBoardRequest,
    DrawRequest,
    EventFrame,
    IceCandidateRequest,
    JoinClassRequest,
    Participant,
    SessionDescriptionRequest,
)
from app.services.chat_relay import ChatRelay
from app.services.connection_registry import Connection, ConnectionId, ConnectionRegistry
from app.services.presence_broadcaster import PresenceBroadcaster
from app.services.room_broadcaster import RoomBroadcaster
from app.services.room_directory import RoomDirectory
from app.services.signaling_router import SignalingRouter
from app.services.whiteboard_relay import WhiteboardRelay

logger = get_logger(__name__)

Handler = Callable[[ConnectionId, Any], None]


class ClassroomHub:
    """课堂协调中心。

    - ``connect()`` / ``disconnect()``  → 连接生命周期
    - ``dispatch(connection_id, raw)``  → 解析一帧入站消息并交给对应组件
    - ``join()``                        → 加入课堂并广播在线列表

    Attributes:
        registry: 在线连接注册表。
        directory: 课堂成员目录。
        presence: 在线列表广播器。
        signaling: WebRTC 信令转发器。
        whiteboard: 白板转发器。
        chat: 聊天转发器。
    """

    def __init__(
        self,
        outbox_size: int | None = None,
        chat_rate_limit_interval: float | None = None,
        default_name: str | None = None,
        default_role: str | None = None,
        system_sender: str | None = None,
    ) -> None:
        self.default_name = default_name or settings.DEFAULT_NAME
        self.default_role = default_role or settings.DEFAULT_ROLE
        sender = system_sender or settings.SYSTEM_SENDER
        interval = (
            settings.CHAT_RATE_LIMIT_INTERVAL
            if chat_rate_limit_interval is None
            else chat_rate_limit_interval
        )

        self.registry = ConnectionRegistry(outbox_size=outbox_size or settings.OUTBOX_MAX_SIZE)
        self.directory = RoomDirectory(self.registry)
        self._broadcaster = RoomBroadcaster(self.registry, self.directory)
        self.presence = PresenceBroadcaster(self.directory, self._broadcaster, system_sender=sender)
        self.signaling = SignalingRouter(self._broadcaster)
        self.whiteboard = WhiteboardRelay(self._broadcaster)
        self.chat = ChatRelay(
            self._broadcaster,
            limiter=WebSocketRateLimiter(interval_seconds=interval),
            system_sender=sender,
        )

        self.registry.add_disconnect_listener(self._on_connection_closed)

        self._handlers: dict[str, tuple[type[BaseModel], Handler]] = {
            JOIN_CLASS: (JoinClassRequest, self._handle_join),
            WEBRTC_OFFER: (SessionDescriptionRequest, self._handle_offer),
            WEBRTC_ANSWER: (SessionDescriptionRequest, self._handle_answer),
            WEBRTC_ICE_CANDIDATE: (IceCandidateRequest, self._handle_ice_candidate),
            DRAW: (DrawRequest, self._handle_draw),
            CLEAR_BOARD: (ClearBoardRequest, self._handle_clear),
            CHAT_MESSAGE: (ChatMessageRequest, self._handle_chat),
        }

    # ── 连接生命周期 ──────────────────────────────────────────────────

    def connect(self) -> Connection:
        """登记新连接并返回连接对象（端点需要读取其待发送队列）。"""
        return self.registry.on_connect()

    def disconnect(self, connection_id: ConnectionId) -> None:
        """注销连接；若连接在课堂中，会向剩余成员广播离开。"""
        self.registry.on_disconnect(connection_id)

    def _on_connection_closed(self, connection: Connection) -> None:
        if self.chat.limiter is not None:
            self.chat.limiter.remove_client(connection.id)
        participant = self.directory.leave(connection.id)
        if participant is not None:
            self.presence.announce_leave(participant)

    # ── 课堂操作 ──────────────────────────────────────────────────────

    def join(
        self,
        connection_id: ConnectionId,
        room_id: str,
        display_name: str | None = None,
        role: str | None = None,
    ) -> Participant:
        """加入课堂，并向新旧课堂广播在线列表。

        同一连接换到另一个课堂时，旧课堂会收到离开通知；
        在同一课堂内重复加入只会刷新新课堂的在线列表。
        """
        previous = self.registry.get_participant(connection_id)
        participant = self.directory.join(
            connection_id,
            room_id,
            display_name or self.default_name,
            role or self.default_role,
        )
        logger.info(
            "%s 加入课堂 %s | role=%s", participant.name, room_id, participant.role,
        )

        if previous is not None and previous.class_id != room_id:
            self.presence.announce_leave(previous)
        self.presence.announce_join(participant)
        return participant

    # ── 入站分发 ──────────────────────────────────────────────────────

    def dispatch(self, connection_id: ConnectionId, raw: str | bytes) -> bool:
        """解析并处理一帧入站消息。

        格式错误、未知事件或字段类型不对的消息都只记录 debug 日志后丢弃，
        不会影响连接上的后续消息。

        Returns:
            消息是否被交给了处理函数。
        """
        if connection_id not in self.registry:
            return False

        try:
            frame = EventFrame.model_validate_json(raw)
        except ValidationError:
            logger.debug("丢弃无法解析的消息 | conn=%s", connection_id)
            return False

        entry = self._handlers.get(frame.event)
        if entry is None:
            logger.debug("丢弃未知事件 %s | conn=%s", frame.event, connection_id)
            return False

        schema, handler = entry
        try:
            payload = schema.model_validate(frame.data if frame.data is not None else {})
        except ValidationError as e:
            logger.debug(
                "丢弃格式错误的 %s | conn=%s | errors=%d", frame.event, connection_id, e.error_count(),
            )
            return False

        handler(connection_id, payload)
        return True

    def _handle_join(self, connection_id: ConnectionId, payload: JoinClassRequest) -> None:
        if not payload.class_id:
            logger.debug("丢弃缺少 classId 的 join-class | conn=%s", connection_id)
            return
        self.join(connection_id, payload.class_id, payload.name, payload.role)

    def _handle_offer(self, connection_id: ConnectionId, payload: SessionDescriptionRequest) -> None:
        self.signaling.relay_offer(connection_id, payload.class_id, payload.sdp)

    def _handle_answer(self, connection_id: ConnectionId, payload: SessionDescriptionRequest) -> None:
        self.signaling.relay_answer(connection_id, payload.class_id, payload.sdp)

    def _handle_ice_candidate(self, connection_id: ConnectionId, payload: IceCandidateRequest) -> None:
        self.signaling.relay_ice_candidate(connection_id, payload.class_id, payload.candidate)

    def _handle_draw(self, connection_id: ConnectionId, payload: DrawRequest) -> None:
        self.whiteboard.broadcast_stroke(connection_id, payload.class_id, payload.line)

    def _handle_clear(self, connection_id: ConnectionId, payload: ClearBoardRequest) -> None:
        self.whiteboard.broadcast_clear(payload.class_id)

    def _handle_chat(self, connection_id: ConnectionId, payload: ChatMessageRequest) -> None:
        from_ = payload.from_
        if not from_:
            participant = self.registry.get_participant(connection_id)
            from_ = participant.name if participant is not None else self.default_name
        self.chat.broadcast_chat(payload.class_id, from_, payload.text, sender=connection_id)

    # ── 查询 ──────────────────────────────────────────────────────────

    @property
    def connection_count(self) -> int:
        """当前在线连接数。"""
        return len(self.registry)
