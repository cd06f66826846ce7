"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 提供独立的 ``ClassroomHub`` 实例和读取连接待发送队列的工具，
单元测试无需真实的 WebSocket 连接即可运行。
"""
from __future__ import annotations

import json
import os
from collections.abc import Callable
from typing import Any

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")  # 激活 .env.test 配置

from app.services.classroom_hub import ClassroomHub  # noqa: E402


Frames = list[dict[str, Any]]


@pytest.fixture()
def hub() -> ClassroomHub:
    """一个不限流、使用固定默认值的课堂协调中心。"""
    return ClassroomHub(
        outbox_size=64,
        chat_rate_limit_interval=0.0,
        default_name="Guest",
        default_role="student",
        system_sender="System",
    )


@pytest.fixture()
def drain(hub: ClassroomHub) -> Callable[[str], Frames]:
    """返回一个函数：取出某连接待发送队列中的全部帧（解析为 dict）。"""

    def _drain(connection_id: str) -> Frames:
        connection = hub.registry.get(connection_id)
        assert connection is not None, f"未知连接 {connection_id}"
        frames: Frames = []
        while not connection.outbox.empty():
            frames.append(json.loads(connection.outbox.get_nowait()))
        return frames

    return _drain
