"""
tests.test_classroom_ws
~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 端点发送协程的单元测试（使用 mock WebSocket）。
"""
from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import WebSocket

from app.api.classroom_ws import _send_loop
from app.services.classroom_hub import ClassroomHub


@pytest.mark.asyncio
async def test_send_loop_writes_in_order(hub: ClassroomHub) -> None:
    """待发送队列中的消息按入队顺序写出。"""
    mock_ws = AsyncMock(spec=WebSocket)
    connection = hub.connect()
    for frame in ("a", "b", "c"):
        connection.push(frame)

    task = asyncio.create_task(_send_loop(mock_ws, connection, hub))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert [call.args[0] for call in mock_ws.send_text.call_args_list] == ["a", "b", "c"]
    assert connection.id in hub.registry


@pytest.mark.asyncio
async def test_send_failure_unregisters_connection(hub: ClassroomHub) -> None:
    """写出失败后注销连接并关闭 socket，同课堂成员收到离开通知。"""
    mock_ws = AsyncMock(spec=WebSocket)
    mock_ws.send_text.side_effect = RuntimeError("socket closed")
    alice = hub.connect()
    bob = hub.connect()
    hub.join(alice.id, "R1", "Alice", "teacher")
    hub.join(bob.id, "R1", "Bob", "student")
    while not alice.outbox.empty():
        alice.outbox.get_nowait()

    await asyncio.wait_for(_send_loop(mock_ws, bob, hub), timeout=1)

    assert mock_ws.send_text.call_count == 1
    mock_ws.close.assert_awaited_once()
    assert bob.id not in hub.registry
    assert [p.name for p in hub.directory.members_of("R1")] == ["Alice"]

    notices = [json.loads(alice.outbox.get_nowait()) for _ in range(alice.outbox.qsize())]
    assert notices[-1]["data"]["text"] == "Bob left"

    # 之后的广播不再投递给已注销的连接
    assert hub.whiteboard.broadcast_clear("R1") == 1


@pytest.mark.asyncio
async def test_send_failure_tolerates_close_error(hub: ClassroomHub) -> None:
    mock_ws = AsyncMock(spec=WebSocket)
    mock_ws.send_text.side_effect = RuntimeError("socket closed")
    mock_ws.close.side_effect = RuntimeError("already closed")
    connection = hub.connect()
    connection.push("a")

    await asyncio.wait_for(_send_loop(mock_ws, connection, hub), timeout=1)

    assert connection.id not in hub.registry
