"""
pytest配置文件 - 全局fixtures和测试配置
"""
import asyncio
from typing import Any, Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from ideaboard.domain.models.assistant import ProviderReply, ToolCall
from ideaboard.domain.models.context import ContextPart
from ideaboard.lib.providers.base import BaseProvider, ChatHandle
from ideaboard.main import create_app
from ideaboard.services.board import Board, BoardRegistry
from ideaboard.services.node_store import NodeStore


class FakeChatHandle(ChatHandle):
    """记录每一轮发送内容的假对话"""

    def __init__(self, provider: "FakeProvider", system_prompt: str, tools: List[Dict[str, Any]]):
        self.provider = provider
        self.system_prompt = system_prompt
        self.tools = tools
        self.sent: List[List[ContextPart]] = []

    async def send(self, parts: Sequence[ContextPart]) -> ProviderReply:
        self.sent.append(list(parts))
        return await self.provider.next_reply()


class FakeProvider(BaseProvider):
    """
    按脚本回复的假AI协作方

    replies中的异常会在对应轮次抛出；gate不为空时下一次发送会等待它被set。
    """

    def __init__(self, replies: Optional[List[Any]] = None):
        self.replies: List[Any] = list(replies or [])
        self.handles: List[FakeChatHandle] = []
        self.gate: Optional[asyncio.Event] = None

    def queue(self, text: str = "", tool_calls: Optional[List[Dict[str, Any]]] = None) -> None:
        """追加一轮回复，tool_calls为 {"name": ..., "arguments": {...}} 列表"""
        calls = [ToolCall(**call) for call in (tool_calls or [])]
        self.replies.append(ProviderReply(text=text, tool_calls=calls))

    def open_conversation(self, system_prompt: str, tools: List[Dict[str, Any]]) -> ChatHandle:
        handle = FakeChatHandle(self, system_prompt, tools)
        self.handles.append(handle)
        return handle

    @property
    def opened(self) -> int:
        return len(self.handles)

    async def next_reply(self) -> ProviderReply:
        gate, self.gate = self.gate, None
        if gate is not None:
            await gate.wait()
        if not self.replies:
            return ProviderReply(text="OK")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def provider() -> FakeProvider:
    """假AI协作方"""
    return FakeProvider()


@pytest.fixture
def store() -> NodeStore:
    """空的节点存储"""
    return NodeStore("board-test")


@pytest.fixture
def board(provider) -> Board:
    """使用假AI协作方的白板"""
    return Board(provider, title="Test Board")


@pytest.fixture
def registry(provider) -> BoardRegistry:
    """所有白板共用同一个假AI协作方的注册表"""
    return BoardRegistry(lambda: provider)


@pytest.fixture
def client(registry) -> TestClient:
    """测试客户端"""
    return TestClient(create_app(registry))


@pytest.fixture
def events(store) -> List:
    """记录存储发出的全部事件"""
    received = []
    store.subscribe(received.append)
    return received
