"""
app.api.classroom_ws
~~~~~~~~~~~~~~~~~~~~

WebSocket 课堂端点 —— 信令、白板、聊天、在线列表共用一条连接。

每个连接运行两个协程:
  - 接收协程：逐帧读取并交给 ``ClassroomHub.dispatch()``，单帧出错不影响后续消息
  - 发送协程：按顺序写出该连接待发送队列里的消息

接收协程结束（客户端断开或异常）或发送失败时注销连接，剩余成员会收到离开通知。
"""
from __future__ import annotations

import asyncio
import uuid

from fastapi import APIRouter, WebSocket

from app.core.logging import get_logger, request_id_ctx_var
from app.services.classroom_hub import ClassroomHub
from app.services.connection_registry import Connection

logger = get_logger(__name__)

router: APIRouter = APIRouter()


async def _send_loop(websocket: WebSocket, connection: Connection, hub: ClassroomHub) -> None:
    """把待发送队列中的消息依次写出。

    写失败时立即注销连接（不再接收广播），并关闭 socket 让接收协程退出。
    """
    while True:
        frame = await connection.outbox.get()
        try:
            await websocket.send_text(frame)
        except Exception as e:
            logger.warning("发送失败，注销连接: %s | conn=%s", e, connection.id)
            hub.disconnect(connection.id)
            try:
                await websocket.close()
            except Exception as close_error:
                logger.debug("关闭 socket 失败: %s | conn=%s", close_error, connection.id)
            return


@router.websocket("/ws/classroom")
async def classroom_endpoint(websocket: WebSocket) -> None:
    """WebSocket 课堂端点。

    消息协议: 每帧为 ``{"event": 事件名, "data": 负载}`` 的 JSON 文本，
    支持 ``join-class`` / ``webrtc-offer`` / ``webrtc-answer`` /
    ``webrtc-ice-candidate`` / ``draw`` / ``clear-board`` / ``chat-message``，
    服务端额外推送 ``participants-update``。

    Args:
        websocket: FastAPI WebSocket 连接对象。
    """
    token = request_id_ctx_var.set(f"ws-{uuid.uuid4().hex[:8]}")

    try:
        hub: ClassroomHub = websocket.app.state.classroom_hub
        await websocket.accept()
        connection = hub.connect()
        send_task = asyncio.create_task(_send_loop(websocket, connection, hub))

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text") or message.get("bytes")
                if raw:
                    hub.dispatch(connection.id, raw)
        except Exception as e:
            logger.error("WebSocket 接收异常: %s | conn=%s", e, connection.id, exc_info=True)
        finally:
            hub.disconnect(connection.id)
            send_task.cancel()
            try:
                await send_task
            except asyncio.CancelledError:
                pass

    finally:
        request_id_ctx_var.reset(token)
