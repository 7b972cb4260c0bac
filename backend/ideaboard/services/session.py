"""
对话会话 - 每个白板一个AI对话

会话在首次提问或白板内容变化后重新序列化完整上下文并打开新对话；
白板未变化时只发送本轮用户消息。会话本身从不修改节点存储。
"""
import asyncio
from typing import Any, Dict, List, Optional

from ..core.errors import (
    AssistantUnavailableException, ConfigurationException,
    ContextTooLargeException, MalformedAssistantResponseException,
)
from ..core.logging import get_logger, StructuredLogger
from ..core.messages import get_message, MessageKeys
from ..domain.constants import CONTEXT_CHANGING_EVENTS, ReplyStatus, SessionState
from ..domain.models.actions import parse_tool_calls
from ..domain.models.assistant import AssistantReply
from ..domain.models.context import TextPart
from ..domain.models.events import BoardEvent
from ..domain.schemas.tools import WHITEBOARD_TOOLS
from ..lib.providers.base import BaseProvider, ChatHandle
from .context import ContextSerializer, build_system_prompt
from .node_store import NodeStore

logger = get_logger(__name__)
structured_logger = StructuredLogger("services.session")


class ConversationSession:
    """单个白板的助手会话"""

    def __init__(
        self,
        store: NodeStore,
        provider: BaseProvider,
        serializer: Optional[ContextSerializer] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ):
        self.store = store
        self.provider = provider
        self.serializer = serializer or ContextSerializer(store)
        self.tools = tools if tools is not None else WHITEBOARD_TOOLS
        self._handle: Optional[ChatHandle] = None
        self.context_fingerprint: Optional[int] = None
        self._stale = False

    @property
    def state(self) -> SessionState:
        if self._handle is None:
            return SessionState.UNINITIALIZED
        if self._stale or self.context_fingerprint != self.store.revision:
            return SessionState.STALE
        return SessionState.READY

    def on_board_event(self, event: BoardEvent) -> None:
        """节点存储监听器：内容变化时标记会话过期"""
        if event.type in CONTEXT_CHANGING_EVENTS:
            self.invalidate()

    def invalidate(self) -> None:
        if self._handle is not None and not self._stale:
            logger.debug(f"白板 {self.store.board_id} 内容变化，助手会话已过期")
        self._stale = True

    def reset(self) -> None:
        """丢弃当前对话，下一次提问从头初始化"""
        self._handle = None
        self.context_fingerprint = None
        self._stale = False

    def _open(self, message: str):
        """序列化完整上下文并打开新对话"""
        question = TextPart(text=f"User Question: {message}")
        with self.store.lock:
            nodes = self.store.list_nodes()
            system_prompt = build_system_prompt(nodes)
            # 系统提示和问题同样计入上下文大小限制
            reserved = len(system_prompt.encode("utf-8")) + question.size
            context = self.serializer.serialize(reserved_bytes=reserved)
            fingerprint = self.store.revision
            self._stale = False

        handle = self.provider.open_conversation(system_prompt, self.tools)
        parts = context.to_parts() + [question]
        logger.info(
            f"初始化助手会话: board={self.store.board_id}, 节点数={len(nodes)}, "
            f"上下文大小={context.total_bytes} 字节"
        )
        return handle, fingerprint, parts

    async def ask(self, message: str) -> AssistantReply:
        """
        向助手提问

        Returns:
            助手回复文本和待应用的动作；通信失败、上下文过大或格式错误时
            返回对应状态的回复而不是抛出异常
        """
        reinitialized = self.state != SessionState.READY
        try:
            if reinitialized:
                handle, fingerprint, parts = self._open(message)
            else:
                handle, fingerprint, parts = self._handle, self.context_fingerprint, [TextPart(text=message)]

            provider_reply = await handle.send(parts)
        except ContextTooLargeException as e:
            logger.warning(f"白板上下文过大: {e.message}")
            self.reset()
            return AssistantReply(
                text=get_message(MessageKeys.ASSISTANT_CONTEXT_TOO_LARGE),
                status=ReplyStatus.CONTEXT_TOO_LARGE,
                reinitialized=reinitialized,
            )
        except (AssistantUnavailableException, ConfigurationException) as e:
            structured_logger.log_error(e, {"board_id": self.store.board_id})
            self.reset()
            return AssistantReply(
                text=get_message(MessageKeys.ASSISTANT_UNAVAILABLE),
                status=ReplyStatus.UNAVAILABLE,
                reinitialized=reinitialized,
            )
        except asyncio.CancelledError:
            logger.info(f"助手请求被取消: board={self.store.board_id}")
            self.reset()
            raise

        if reinitialized:
            self._handle = handle
            self.context_fingerprint = fingerprint

        try:
            actions = parse_tool_calls(provider_reply.tool_calls)
        except MalformedAssistantResponseException as e:
            logger.warning(f"助手动作格式错误，整批拒绝: {e.message}, 详情: {e.details}")
            return AssistantReply(
                text=provider_reply.text or get_message(MessageKeys.ASSISTANT_MALFORMED),
                status=ReplyStatus.MALFORMED,
                reinitialized=reinitialized,
            )

        text = provider_reply.text
        if not text and not actions:
            text = get_message(MessageKeys.ASSISTANT_NO_RESPONSE)
        return AssistantReply(text=text, actions=actions, reinitialized=reinitialized)
