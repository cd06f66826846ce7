"""
app.services.room_directory
~~~~~~~~~~~~~~~~~~~~~~~~~~~

课堂目录 —— 维护 课堂 ID → 参与者 的映射。

课堂没有独立的创建/销毁步骤：第一位参与者加入时惰性创建映射项，
最后一位离开时删除，避免长时间运行后积累空房间。
每个连接同一时间至多绑定一位参与者，重复加入会先移除旧身份。
"""
from __future__ import annotations

import time
import uuid

from app.core.logging import get_logger
from app.schemas.classroom_events import ClassInfoData, Participant
from app.services.connection_registry import Connection, ConnectionId, ConnectionRegistry

logger = get_logger(__name__)


def _new_participant_id(connection_id: ConnectionId) -> str:
    """连接 ID + 毫秒时间戳 + 随机后缀，保证进程生命周期内唯一。"""
    return f"{connection_id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class RoomDirectory:
    """课堂成员目录。

    成员按加入顺序保存（最近加入的排在最后），``members_of()`` 每次都返回新的列表，
    调用方可以放心地边遍历边发送。
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry
        self._rooms: dict[str, dict[ConnectionId, Participant]] = {}

    def join(
        self,
        connection_id: ConnectionId,
        room_id: str,
        display_name: str,
        role: str,
    ) -> Participant:
        """把连接加入课堂并返回新的参与者。

        Raises:
            KeyError: 连接未在注册表中登记。
        """
        connection = self._registry.get(connection_id)
        if connection is None:
            raise KeyError(connection_id)

        self._remove(connection)

        participant = Participant(
            id=_new_participant_id(connection_id),
            connection_id=connection_id,
            class_id=room_id,
            name=display_name,
            role=role,
        )
        self._rooms.setdefault(room_id, {})[connection_id] = participant
        connection.participant = participant
        return participant

    def leave(self, connection_id: ConnectionId) -> Participant | None:
        """移除连接绑定的参与者，返回被移除的参与者；没有可移除的则返回 None。"""
        connection = self._registry.get(connection_id)
        if connection is None:
            return None
        return self._remove(connection)

    def members_of(self, room_id: str) -> list[Participant]:
        """课堂当前成员快照（按加入顺序）。"""
        return list(self._rooms.get(room_id, {}).values())

    def room_ids(self) -> list[str]:
        """当前有成员的课堂 ID 列表。"""
        return list(self._rooms)

    def room_info(self, room_id: str) -> ClassInfoData:
        """课堂摘要，未知课堂返回零计数。"""
        members = self._rooms.get(room_id, {})
        return ClassInfoData(
            class_id=room_id,
            participant_count=len(members),
            teacher_count=sum(1 for p in members.values() if p.role == "teacher"),
        )

    def list_rooms(self) -> list[ClassInfoData]:
        """所有活跃课堂的摘要。"""
        return [self.room_info(room_id) for room_id in self._rooms]

    def _remove(self, connection: Connection) -> Participant | None:
        participant = connection.participant
        if participant is None:
            return None

        members = self._rooms.get(participant.class_id)
        if members is not None:
            members.pop(connection.id, None)
            if not members:
                del self._rooms[participant.class_id]
                logger.debug("课堂已清空 | class=%s", participant.class_id)

        connection.participant = None
        return participant
