"""
tests.test_whiteboard_and_chat
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

WhiteboardRelay / ChatRelay 转发测试。
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from app.core.rate_limit import WebSocketRateLimiter
from app.services.chat_relay import THROTTLED_NOTICE
from app.services.classroom_hub import ClassroomHub

LINE = {"x0": 0.1, "y0": 0.2, "x1": 0.3, "y1": 0.4, "color": "#ff0000"}


class _Classroom:
    @pytest.fixture(autouse=True)
    def _classroom(self, hub: ClassroomHub, drain: Callable[[str], list[dict[str, Any]]]) -> None:
        self.hub = hub
        self.drain = drain
        self.alice = hub.connect().id
        self.bob = hub.connect().id
        self.carol = hub.connect().id
        hub.join(self.alice, "R1", "Alice", "teacher")
        hub.join(self.bob, "R1", "Bob", "student")
        hub.join(self.carol, "R1", "Carol", "student")
        for conn in (self.alice, self.bob, self.carol):
            drain(conn)


class TestWhiteboardRelay(_Classroom):
    """笔画不回显给作者，清屏发给所有人。"""

    def test_stroke_excludes_sender(self) -> None:
        delivered = self.hub.whiteboard.broadcast_stroke(self.alice, "R1", LINE)

        assert delivered == 2
        assert self.drain(self.alice) == []
        assert self.drain(self.bob) == [{"event": "draw", "data": {"line": LINE}}]
        assert self.drain(self.carol) == [{"event": "draw", "data": {"line": LINE}}]

    def test_strokes_keep_send_order(self) -> None:
        lines = [dict(LINE, x0=i / 10) for i in range(5)]
        for line in lines:
            self.hub.whiteboard.broadcast_stroke(self.alice, "R1", line)

        received = [f["data"]["line"] for f in self.drain(self.bob)]

        assert received == lines

    def test_clear_includes_sender(self) -> None:
        delivered = self.hub.whiteboard.broadcast_clear("R1")

        assert delivered == 3
        for conn in (self.alice, self.bob, self.carol):
            assert self.drain(conn) == [{"event": "clear-board", "data": None}]

    def test_stroke_without_line_dropped(self) -> None:
        assert self.hub.whiteboard.broadcast_stroke(self.alice, "R1", None) == 0
        assert self.hub.whiteboard.broadcast_stroke(self.alice, "", LINE) == 0
        assert self.drain(self.bob) == []

    def test_clear_without_room_dropped(self) -> None:
        assert self.hub.whiteboard.broadcast_clear(None) == 0


class TestChatRelay(_Classroom):
    """聊天发给所有人（包括发送者），附带服务端时间戳。"""

    def test_chat_reaches_everyone_including_sender(self) -> None:
        message = self.hub.chat.broadcast_chat("R1", "Alice", "hi", sender=self.alice)

        assert message is not None
        for conn in (self.alice, self.bob, self.carol):
            frames = self.drain(conn)
            assert frames == [{
                "event": "chat-message",
                "data": {"from": "Alice", "text": "hi", "time": message.time},
            }]

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_blank_text_dropped(self, text: str | None) -> None:
        assert self.hub.chat.broadcast_chat("R1", "Alice", text, sender=self.alice) is None
        for conn in (self.alice, self.bob, self.carol):
            assert self.drain(conn) == []

    def test_missing_room_dropped(self) -> None:
        assert self.hub.chat.broadcast_chat(None, "Alice", "hi") is None
        assert self.drain(self.bob) == []

    def test_text_forwarded_without_trimming(self) -> None:
        self.hub.chat.broadcast_chat("R1", "Bob", "  spaced  ")

        assert self.drain(self.alice)[0]["data"]["text"] == "  spaced  "

    def test_throttled_chat_only_warns_sender(self) -> None:
        self.hub.chat.limiter = WebSocketRateLimiter(interval_seconds=60)

        first = self.hub.chat.broadcast_chat("R1", "Bob", "one", sender=self.bob)
        second = self.hub.chat.broadcast_chat("R1", "Bob", "two", sender=self.bob)

        assert first is not None
        assert second is None
        assert [f["data"]["text"] for f in self.drain(self.alice)] == ["one"]
        bob_texts = [f["data"]["text"] for f in self.drain(self.bob)]
        assert bob_texts == ["one", THROTTLED_NOTICE]
