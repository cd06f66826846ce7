"""
tests.test_connection_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

ConnectionRegistry 连接生命周期测试。
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from app.services.connection_registry import ConnectionRegistry


class TestConnectionRegistry:
    """测试连接的登记、注销与投递。"""

    def test_on_connect_assigns_unique_ids(self) -> None:
        registry = ConnectionRegistry()

        first = registry.on_connect().id
        second = registry.on_connect().id

        assert first != second
        assert first in registry and second in registry
        assert len(registry) == 2

    def test_on_connect_returns_registered_connection(self) -> None:
        registry = ConnectionRegistry(outbox_size=4)

        connection = registry.on_connect()

        assert registry.get(connection.id) is connection
        assert connection.participant is None
        assert connection.outbox.maxsize == 4

    def test_new_connection_has_no_participant(self) -> None:
        registry = ConnectionRegistry()
        connection_id = registry.on_connect().id

        assert registry.get_participant(connection_id) is None

    def test_disconnect_runs_listeners_before_removal(self) -> None:
        """监听器执行时连接仍可查到，执行后连接被移除。"""
        registry = ConnectionRegistry()
        connection_id = registry.on_connect().id
        seen: list[bool] = []
        registry.add_disconnect_listener(lambda conn: seen.append(conn.id in registry))

        registry.on_disconnect(connection_id)

        assert seen == [True]
        assert connection_id not in registry
        assert len(registry) == 0

    def test_disconnect_unknown_is_noop(self) -> None:
        registry = ConnectionRegistry()
        listener = MagicMock()
        registry.add_disconnect_listener(listener)

        registry.on_disconnect("no-such-connection")

        listener.assert_not_called()

    def test_connection_removed_even_if_listener_fails(self) -> None:
        registry = ConnectionRegistry()
        connection_id = registry.on_connect().id
        registry.add_disconnect_listener(MagicMock(side_effect=RuntimeError("boom")))

        with pytest.raises(RuntimeError):
            registry.on_disconnect(connection_id)

        assert connection_id not in registry

    def test_send_to_unknown_connection_returns_false(self) -> None:
        registry = ConnectionRegistry()

        assert registry.send("ghost", "{}") is False

    def test_send_drops_when_outbox_full(self) -> None:
        """待发送队列满了以后新消息直接丢弃，不阻塞。"""
        registry = ConnectionRegistry(outbox_size=2)
        connection_id = registry.on_connect().id

        assert registry.send(connection_id, "a") is True
        assert registry.send(connection_id, "b") is True
        assert registry.send(connection_id, "c") is False

        connection = registry.get(connection_id)
        assert connection is not None
        assert connection.outbox.qsize() == 2
        assert connection.outbox.get_nowait() == "a"
