"""
白板流程集成测试

测试完整的白板操作流程：
- 拖放导入
- 上下文序列化
- 助手提问与动作应用
- 会话复用与失效
- 实时协作通道
"""
import asyncio
import base64

import pytest
from fastapi import status
from starlette.websockets import WebSocketDisconnect

from ideaboard.domain.constants import IngestionSource, NodeKind, ReplyStatus
from ideaboard.domain.models.context import InlinePart, TextPart
from ideaboard.domain.models.events import IngestionEvent
from ideaboard.domain.models.node import Position
from tests.factories import TestDataBuilder


def _drop_file(board, name: str, data: bytes, mime_type: str, x: float, y: float):
    return board.ingest(IngestionEvent(
        kind=IngestionSource.FILE, payload=data, mime_type=mime_type,
        file_name=name, drop_position=Position(x=x, y=y),
    ))


class TestBoardIntegrationFlow:
    """白板集成测试流程"""

    @pytest.mark.integration
    def test_drop_png_creates_centered_image(self, board):
        """拖放PNG文件：创建一个居中放置的图片节点"""
        result = _drop_file(board, "shot.png", b"\x89PNG\r\n\x1a\n image", "image/png", 200, 150)

        assert len(result.created) == 1
        node = result.created[0]
        assert node.kind == NodeKind.IMAGE
        assert node.position == Position(x=100, y=50)
        assert base64.b64decode(node.payload).startswith(b"\x89PNG")

    @pytest.mark.integration
    def test_drop_youtube_url(self, board):
        """拖放YouTube链接：创建嵌入视频节点"""
        url = "https://www.youtube.com/watch?v=abc123"
        result = board.ingest(IngestionEvent(
            kind=IngestionSource.URI, payload=url, drop_position=Position(x=400, y=400)
        ))

        node = result.created[0]
        assert node.kind == NodeKind.EMBEDDED_VIDEO
        assert node.payload == url
        assert "Youtube" in node.title

    @pytest.mark.integration
    def test_serialize_text_and_unsupported_file(self, board):
        """序列化：文本节点输出原文，不支持的文件只输出占位说明"""
        board.store.add_node(TestDataBuilder.create_note(id="n1", payload="Hello"))
        board.store.add_node(TestDataBuilder.create_file(
            id="n2", kind=NodeKind.IMAGE, mime_type="image/x-icon", file_name="fav.ico"
        ))

        parts = board.serializer.serialize().to_parts()

        assert TextPart(text="Hello") in parts
        assert not any(isinstance(part, InlinePart) for part in parts)
        assert "fav.ico" in parts[-1].text
        assert "not supported" in parts[-1].text

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_node_deleted_while_assistant_thinking(self, board, provider):
        """提问过程中删除节点：引用该节点的动作项被跳过，其余动作照常应用"""
        for node_id in ("n1", "n2", "n3"):
            board.store.add_node(TestDataBuilder.create_note(id=node_id))
        gate = asyncio.Event()
        provider.gate = gate
        provider.queue(text="Tidied up", tool_calls=[
            {"name": "organize_layout", "arguments": {"moves": [
                {"id": "n1", "x": 0, "y": 0},
                {"id": "n2", "x": 300, "y": 0},
            ]}},
            {"name": "create_notes", "arguments": {"notes": [{"content": "Summary"}]}},
        ])

        pending = asyncio.ensure_future(board.ask("summarize"))
        for _ in range(10):
            await asyncio.sleep(0)
        board.store.remove_node("n1")
        gate.set()

        result = await pending

        assert result.reply.status == ReplyStatus.OK
        assert result.report.applied == 2
        assert result.report.skipped[0].node_ids == ["n1"]
        assert board.store.get_node("n2").position == Position(x=300, y=0)
        assert len(board.store) == 3

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_sequential_asks_reuse_conversation(self, board, provider):
        """连续两次提问且白板未变化：复用同一个对话"""
        board.store.add_node(TestDataBuilder.create_note(id="n1", payload="Hello"))

        first = await board.ask("one")
        second = await board.ask("two")

        assert first.reply.reinitialized
        assert not second.reply.reinitialized
        assert provider.opened == 1
        assert provider.handles[0].sent[1] == [TextPart(text="two")]

    @pytest.mark.integration
    def test_http_flow(self, client, provider):
        """通过HTTP完成创建白板、导入、提问的完整流程"""
        board_id = client.post("/api/boards", json={"title": "Video plan"}).json()["data"]["id"]
        client.post(f"/api/boards/{board_id}/nodes/drop", json={
            "kind": "uri", "payload": "https://youtu.be/xyz", "x": 300, "y": 300,
        })
        note_id = client.post(f"/api/boards/{board_id}/nodes/note", json={"content": "Intro"}).json()["data"]["id"]
        video_id = client.get(f"/api/boards/{board_id}/state").json()["data"]["nodes"][0]["id"]
        provider.queue(text="Grouped", tool_calls=[
            {"name": "group_nodes", "arguments": {"nodeIds": [video_id, note_id]}},
            {"name": "connect_nodes", "arguments": {"connections": [{"fromId": video_id, "toId": note_id}]}},
        ])

        chat = client.post(f"/api/boards/{board_id}/chat", json={"message": "Group the video and intro"})

        assert chat.status_code == status.HTTP_200_OK
        assert chat.json()["data"]["report"]["applied"] == 2
        state = client.get(f"/api/boards/{board_id}/state").json()["data"]
        assert set(state["groups"][0]["member_ids"]) == {video_id, note_id}
        assert state["edges"][0]["from_id"] == video_id
        assert state["session_state"] == "stale"

    @pytest.mark.integration
    def test_websocket_channel(self, client):
        """协作通道：心跳、远端编辑和错误回复"""
        board_id = client.post("/api/boards", json={}).json()["data"]["id"]
        node_id = client.post(f"/api/boards/{board_id}/nodes/note", json={}).json()["data"]["id"]

        with client.websocket_connect(f"/api/boards/{board_id}/ws?user_id=alice") as websocket:
            welcome = websocket.receive_json()
            assert welcome["type"] == "connection_established"
            assert welcome["peers"] == ["alice"]

            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

            websocket.send_json({"type": "node_update", "node_id": node_id, "title": "Remote"})
            websocket.send_json({"type": "dance"})
            assert websocket.receive_json()["type"] == "error"

        node = client.get(f"/api/boards/{board_id}/nodes/{node_id}").json()["data"]
        assert node["title"] == "Remote"

    @pytest.mark.integration
    def test_websocket_unknown_board(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/api/boards/missing/ws"):
                pass

        assert exc_info.value.code == 4404

