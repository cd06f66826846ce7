"""
app.services.signaling_router
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

WebRTC 信令转发 —— offer / answer / ICE candidate 原样转发给同课堂的其他成员。

服务端不解析 SDP / ICE 内容，也不维护协商状态机，协商完全由客户端的
``RTCPeerConnection`` 完成。缺少课堂 ID 或负载为空的消息静默丢弃。
"""
from __future__ import annotations

from typing import Any

from app.core.logging import get_logger
from app.schemas.classroom_events import WEBRTC_ANSWER, WEBRTC_ICE_CANDIDATE, WEBRTC_OFFER
from app.services.connection_registry import ConnectionId
from app.services.room_broadcaster import RoomBroadcaster

logger = get_logger(__name__)


def is_empty_payload(value: Any) -> bool:
    """None、空字符串、空对象/数组都视为缺失。"""
    if value is None:
        return True
    if isinstance(value, (str, dict, list)):
        return len(value) == 0
    return False


class SignalingRouter:
    """无状态的信令转发器。"""

    def __init__(self, broadcaster: RoomBroadcaster) -> None:
        self._broadcaster = broadcaster

    def relay_offer(self, sender: ConnectionId, room_id: str | None, sdp: Any) -> int:
        """把 offer 转发给课堂内除发送方外的所有成员。"""
        return self._relay(WEBRTC_OFFER, sender, room_id, "sdp", sdp)

    def relay_answer(self, sender: ConnectionId, room_id: str | None, sdp: Any) -> int:
        """把 answer 转发给课堂内除发送方外的所有成员。"""
        return self._relay(WEBRTC_ANSWER, sender, room_id, "sdp", sdp)

    def relay_ice_candidate(
        self, sender: ConnectionId, room_id: str | None, candidate: Any,
    ) -> int:
        """把 ICE candidate 转发给课堂内除发送方外的所有成员。"""
        return self._relay(WEBRTC_ICE_CANDIDATE, sender, room_id, "candidate", candidate)

    def _relay(
        self,
        event: str,
        sender: ConnectionId,
        room_id: str | None,
        key: str,
        value: Any,
    ) -> int:
        if not room_id or is_empty_payload(value):
            logger.debug("丢弃不完整的 %s | conn=%s", event, sender)
            return 0
        logger.info("转发 %s | class=%s", event, room_id)
        return self._broadcaster.broadcast(room_id, event, {key: value}, exclude=sender)
