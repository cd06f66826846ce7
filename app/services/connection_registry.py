"""
app.services.connection_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

连接注册表 —— 记录所有在线的 WebSocket 连接及其当前的课堂身份。

注册表本身不关心房间，它只负责连接的生命周期：
``on_connect()`` 登记新连接，``on_disconnect()`` 通知所有断开监听器后移除连接。
``RoomDirectory`` 和 ``ClassroomHub`` 通过监听器挂接离开课堂、广播在线列表等逻辑。
"""
from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable

from app.core.logging import get_logger
from app.schemas.classroom_events import Participant

logger = get_logger(__name__)

ConnectionId = str
DisconnectListener = Callable[["Connection"], None]


class Connection:
    """一个在线的双向连接。

    出站消息先进入 ``outbox`` 队列，由 WebSocket 端点的发送协程按顺序写出，
    因此同一发送方发往同一接收方的消息保持先后顺序。

    Attributes:
        id: 连接唯一标识。
        participant: 当前绑定的参与者（未加入课堂时为 None）。
        outbox: 待发送的 JSON 文本队列。
    """

    def __init__(self, connection_id: ConnectionId, outbox_size: int) -> None:
        self.id: ConnectionId = connection_id
        self.participant: Participant | None = None
        self.outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=outbox_size)

    def push(self, frame: str) -> bool:
        """非阻塞地把一帧放入待发送队列，队列已满时丢弃。"""
        try:
            self.outbox.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("待发送队列已满，丢弃消息 | conn=%s", self.id)
            return False
        return True


class ConnectionRegistry:
    """在线连接注册表。

    Attributes:
        outbox_size: 新连接待发送队列的容量。
    """

    def __init__(self, outbox_size: int = 256) -> None:
        self.outbox_size = outbox_size
        self._connections: dict[ConnectionId, Connection] = {}
        self._disconnect_listeners: list[DisconnectListener] = []

    def add_disconnect_listener(self, listener: DisconnectListener) -> None:
        """注册连接断开时的回调，回调在连接移除前按注册顺序执行。"""
        self._disconnect_listeners.append(listener)

    def on_connect(self) -> Connection:
        """登记一个新连接并返回连接对象，连接 ID 为 ``connection.id``。"""
        connection = Connection(uuid.uuid4().hex, self.outbox_size)
        self._connections[connection.id] = connection
        logger.info("客户端已连接 | conn=%s | 在线: %d", connection.id, len(self._connections))
        return connection

    def on_disconnect(self, connection_id: ConnectionId) -> None:
        """注销连接。未知连接直接忽略。"""
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        try:
            for listener in self._disconnect_listeners:
                listener(connection)
        finally:
            del self._connections[connection_id]
            logger.info(
                "客户端已断开 | conn=%s | 在线: %d", connection_id, len(self._connections),
            )

    def get(self, connection_id: ConnectionId) -> Connection | None:
        """按 ID 查找连接。"""
        return self._connections.get(connection_id)

    def get_participant(self, connection_id: ConnectionId) -> Participant | None:
        """返回连接当前绑定的参与者，未加入课堂或连接未知时返回 None。"""
        connection = self._connections.get(connection_id)
        return connection.participant if connection is not None else None

    def send(self, connection_id: ConnectionId, frame: str) -> bool:
        """向指定连接投递一帧（尽力而为），连接不存在或队列已满时返回 False。"""
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        return connection.push(frame)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)
