"""
app.schemas.classroom_events
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

课堂 WebSocket 协议的 Pydantic 模型。

每一帧都是 ``{"event": <事件名>, "data": <负载>}`` 形式的 JSON 文本。
入站负载只校验结构（类型），必填字段是否为空由各个转发组件自行判断，
不合法的消息直接丢弃，不会向客户端返回错误。

对外字段统一使用 camelCase（``classId`` / ``connectionId``），
Python 侧保持 snake_case。
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ── 事件名 ────────────────────────────────────────────────────────────

JOIN_CLASS = "join-class"
WEBRTC_OFFER = "webrtc-offer"
WEBRTC_ANSWER = "webrtc-answer"
WEBRTC_ICE_CANDIDATE = "webrtc-ice-candidate"
DRAW = "draw"
CLEAR_BOARD = "clear-board"
CHAT_MESSAGE = "chat-message"
PARTICIPANTS_UPDATE = "participants-update"


def utc_timestamp() -> str:
    """返回毫秒精度、以 ``Z`` 结尾的 ISO-8601 UTC 时间戳。"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ── 帧 ────────────────────────────────────────────────────────────────

class EventFrame(BaseModel):
    """一帧 WebSocket 消息。"""

    event: str = Field(..., min_length=1, description="事件名")
    data: Any = Field(default=None, description="事件负载")


def encode_frame(event: str, payload: Any = None) -> str:
    """把事件和负载编码为待发送的 JSON 文本。

    负载可以是 Pydantic 模型、模型列表或任意可 JSON 序列化的值。
    """
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True)
    elif isinstance(payload, list):
        payload = [
            item.model_dump(mode="json", by_alias=True) if isinstance(item, BaseModel) else item
            for item in payload
        ]
    return json.dumps({"event": event, "data": payload}, ensure_ascii=False)


# ── 入站负载 ──────────────────────────────────────────────────────────

class _ClassScopedRequest(BaseModel):
    """所有以 ``classId`` 定位房间的入站负载。"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    class_id: str | None = Field(default=None, alias="classId", description="课堂（房间）ID")


class JoinClassRequest(_ClassScopedRequest):
    """``join-class`` 负载。"""

    name: str | None = Field(default=None, description="显示名")
    role: str | None = Field(default=None, description="角色，约定为 teacher / student")


class SessionDescriptionRequest(_ClassScopedRequest):
    """``webrtc-offer`` / ``webrtc-answer`` 负载，``sdp`` 原样转发。"""

    sdp: Any = Field(default=None, description="会话描述（不透明）")


class IceCandidateRequest(_ClassScopedRequest):
    """``webrtc-ice-candidate`` 负载，``candidate`` 原样转发。"""

    candidate: Any = Field(default=None, description="ICE 候选（不透明）")


class DrawRequest(_ClassScopedRequest):
    """``draw`` 负载。"""

    line: Any = Field(
        default=None,
        description="笔画 {x0, y0, x1, y1, color}，坐标由发送端归一化，服务端原样转发",
    )


class ClearBoardRequest(_ClassScopedRequest):
    """``clear-board`` 负载。"""


class ChatMessageRequest(_ClassScopedRequest):
    """``chat-message`` 入站负载。"""

    from_: str | None = Field(default=None, alias="from", description="发送者显示名")
    text: str | None = Field(default=None, description="消息文本")


# ── 出站负载 ──────────────────────────────────────────────────────────

class Participant(BaseModel):
    """课堂中的一位参与者，一个连接同一时间至多对应一位参与者。"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., description="参与者唯一标识（进程生命周期内唯一）")
    connection_id: str = Field(..., alias="connectionId", description="所属连接 ID")
    class_id: str = Field(..., alias="classId", description="所在课堂 ID")
    name: str = Field(..., description="显示名")
    role: str = Field(..., description="角色")


class ChatMessageData(BaseModel):
    """``chat-message`` 出站负载（不持久化）。"""

    model_config = ConfigDict(populate_by_name=True)

    from_: str | None = Field(default=None, alias="from", description="发送者显示名")
    text: str = Field(..., description="消息文本")
    time: str = Field(default_factory=utc_timestamp, description="服务端时间（ISO 格式）")


# ── REST 响应数据 ─────────────────────────────────────────────────────

class ClassInfoData(BaseModel):
    """课堂摘要信息。"""

    class_id: str = Field(..., description="课堂 ID")
    participant_count: int = Field(..., description="当前在线人数")
    teacher_count: int = Field(..., description="当前在线老师人数")
