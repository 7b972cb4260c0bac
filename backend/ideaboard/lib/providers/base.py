from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from ...core.errors import AssistantUnavailableException
from ...domain.models.assistant import ProviderReply
from ...domain.models.context import ContextPart


class ChatHandle(ABC):
    """
    一次已打开的外部对话

    句柄内部保存对话历史，调用方只需要发送本轮新增的内容块。
    """

    @abstractmethod
    async def send(self, parts: Sequence[ContextPart]) -> ProviderReply:
        """
        发送一轮消息

        Args:
            parts: 按顺序排列的文本/内联二进制内容块

        Returns:
            回复文本和结构化工具调用

        Raises:
            AssistantUnavailableException: 网络、超时、配额等通信失败
        """
        pass


class BaseProvider(ABC):
    """AI协作方接口：每个白板会话通过它打开自己的对话"""

    @abstractmethod
    def open_conversation(self, system_prompt: str, tools: List[Dict[str, Any]]) -> ChatHandle:
        """
        打开一个新的对话

        Args:
            system_prompt: 系统提示（能力说明与当前白板概况）
            tools: JSON Schema格式的工具声明

        Returns:
            对话句柄
        """
        pass


class UnavailableProvider(BaseProvider):
    """LLM_PROVIDER=none 时使用，任何对话都会以不可用结束"""

    def open_conversation(self, system_prompt: str, tools: List[Dict[str, Any]]) -> ChatHandle:
        raise AssistantUnavailableException("未配置AI协作方", {"provider": "none"})
