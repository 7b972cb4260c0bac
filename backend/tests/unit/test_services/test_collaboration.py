"""
实时协作单元测试
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from ideaboard.services.collaboration import CollaborationHub
from tests.factories import TestDataBuilder


def _socket() -> AsyncMock:
    websocket = AsyncMock()
    websocket.sent = []
    websocket.send_json.side_effect = lambda message: websocket.sent.append(message)
    return websocket


def _slow_socket(slow_on: int, delay: float = 0.05) -> AsyncMock:
    """第slow_on次发送时变慢的连接"""
    websocket = AsyncMock()
    websocket.sent = []

    async def send_json(message):
        if len(websocket.sent) + 1 == slow_on:
            await asyncio.sleep(delay)
        websocket.sent.append(message)

    websocket.send_json.side_effect = send_json
    return websocket


def _types(websocket) -> list:
    return [message["type"] for message in websocket.sent]


@pytest.mark.unit
class TestCollaborationHub:
    """协作连接测试"""

    @pytest.fixture
    def hub(self, board):
        hub = CollaborationHub()
        hub.attach(board)
        return hub

    @pytest.mark.asyncio
    async def test_connect_announces_peer(self, hub, board):
        alice, bob = _socket(), _socket()

        await hub.connect(board.id, "alice", alice)
        await hub.connect(board.id, "bob", bob)
        await hub.flush(board.id)

        alice.accept.assert_awaited_once()
        assert alice.sent[0]["type"] == "connection_established"
        assert bob.sent[0]["peers"] == ["alice", "bob"]
        assert _types(alice)[-1] == "user_joined"

    @pytest.mark.asyncio
    async def test_store_events_are_broadcast(self, hub, board):
        """测试本地修改广播给所有协作者"""
        alice = _socket()
        await hub.connect(board.id, "alice", alice)

        board.store.add_node(TestDataBuilder.create_note(id="a"))
        await hub.flush(board.id)

        assert alice.sent[-1]["type"] == "node_created"
        assert alice.sent[-1]["data"]["node"]["id"] == "a"

    @pytest.mark.asyncio
    async def test_events_keep_board_order_with_slow_peer(self, hub, board):
        """测试某个协作者发送变慢时，所有协作者仍按修改顺序收到事件"""
        slow, fast = _slow_socket(slow_on=3), _socket()
        await hub.connect(board.id, "slow", slow)
        await hub.connect(board.id, "fast", fast)
        await hub.flush(board.id)
        slow.sent.clear()
        fast.sent.clear()

        board.store.add_node(TestDataBuilder.create_note(id="n1"))
        board.store.add_node(TestDataBuilder.create_note(id="n2"))
        board.store.group_nodes(["n1", "n2"])
        await hub.flush(board.id)

        expected = ["node_created", "node_created", "group_changed"]
        assert _types(fast) == expected
        assert _types(slow) == expected
        assert [m["data"]["node"]["id"] for m in fast.sent[:2]] == ["n1", "n2"]

    @pytest.mark.asyncio
    async def test_replies_share_outbox_with_broadcasts(self, hub, board):
        alice = _socket()
        await hub.connect(board.id, "alice", alice)

        board.store.add_node(TestDataBuilder.create_note(id="a"))
        hub.send_to(board.id, "alice", {"type": "pong"})
        await hub.flush(board.id)

        assert _types(alice)[-2:] == ["node_created", "pong"]

    @pytest.mark.asyncio
    async def test_remote_move_not_echoed_to_sender(self, hub, board):
        board.store.add_node(TestDataBuilder.create_note(id="a"))
        alice, bob = _socket(), _socket()
        await hub.connect(board.id, "alice", alice)
        await hub.connect(board.id, "bob", bob)
        await hub.flush(board.id)
        alice_count = len(alice.sent)

        reply = await hub.handle_message(board, "alice", {"type": "node_move", "node_id": "a", "x": 5, "y": 6})
        await hub.flush(board.id)

        assert reply is None
        assert board.store.get_node("a").position.x == 5
        assert len(alice.sent) == alice_count
        assert bob.sent[-1]["type"] == "node_moved"

    @pytest.mark.asyncio
    async def test_remote_update_goes_through_store(self, hub, board):
        board.store.add_node(TestDataBuilder.create_note(id="a"))

        await hub.handle_message(board, "alice", {"type": "node_update", "node_id": "a", "payload": "new"})

        assert board.store.get_node("a").payload == "new"

    @pytest.mark.asyncio
    async def test_remote_delete_of_missing_node_returns_error(self, hub, board):
        reply = await hub.handle_message(board, "alice", {"type": "node_delete", "node_id": "ghost"})

        assert reply["type"] == "error"

    @pytest.mark.asyncio
    async def test_ping_and_unknown_type(self, hub, board):
        assert await hub.handle_message(board, "alice", {"type": "ping"}) == {"type": "pong"}
        assert (await hub.handle_message(board, "alice", {"type": "dance"}))["type"] == "error"

    @pytest.mark.asyncio
    async def test_failed_send_drops_peer(self, hub, board):
        alice = _socket()
        await hub.connect(board.id, "alice", alice)
        alice.send_json.side_effect = RuntimeError("closed")

        hub.broadcast(board.id, {"type": "anything"})
        hub.broadcast(board.id, {"type": "another"})
        await hub.flush(board.id)

        assert hub.peers(board.id) == []

    @pytest.mark.asyncio
    async def test_full_outbox_drops_peer(self, hub, board):
        alice = _socket()
        await hub.connect(board.id, "alice", alice)
        hub._peers[board.id]["alice"].outbox = asyncio.Queue(maxsize=1)

        hub.broadcast(board.id, {"type": "first"})
        hub.broadcast(board.id, {"type": "second"})

        assert hub.peers(board.id) == []

    @pytest.mark.asyncio
    async def test_disconnect_announces_departure(self, hub, board):
        alice, bob = _socket(), _socket()
        await hub.connect(board.id, "alice", alice)
        await hub.connect(board.id, "bob", bob)

        await hub.disconnect(board.id, "bob")
        await hub.flush(board.id)

        assert hub.peers(board.id) == ["alice"]
        assert alice.sent[-1]["type"] == "user_left"

    def test_detach_stops_forwarding(self, hub, board):
        hub.detach(board.id)

        board.store.add_node(TestDataBuilder.create_note(id="a"))

        assert hub.peers(board.id) == []
