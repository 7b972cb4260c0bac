"""
白板洞察 - 基于白板当前内容的一次性助手调用

- 摘要：读取前若干个文本节点，请助手概括主题和用途
- 连线建议：只向助手提供 connect_nodes 工具，返回的连线作为建议交给调用方，不写入存储

两者都不使用、也不影响白板的对话会话。
"""
from typing import List, Optional, Set, Tuple

from ..core.constants import WhiteboardConstants
from ..core.errors import (
    AssistantUnavailableException, ConfigurationException, MalformedAssistantResponseException,
)
from ..core.logging import get_logger, StructuredLogger
from ..core.messages import get_message, MessageKeys
from ..domain.constants import ActionType
from ..domain.models.actions import ConnectNodesAction, parse_tool_calls
from ..domain.models.context import ContextPart, TextPart
from ..domain.schemas.board import BoardInsightSummary, ConnectionSuggestion
from ..domain.schemas.tools import WHITEBOARD_TOOLS
from ..lib.providers.base import BaseProvider
from .context import ContextSerializer, describe_board
from .node_store import NodeStore

logger = get_logger(__name__)
structured_logger = StructuredLogger("services.insights")

SUMMARY_PROMPT = (
    "Provide a concise summary of this whiteboard's content. "
    "Identify main themes, key topics, and overall purpose."
)

SUGGESTION_PROMPT_TEMPLATE = """You are reviewing a whiteboard to find ideas that belong together.

**Context - Current Board State:**
{board_state}

Use 'connect_nodes' to propose connections between related nodes that are not connected yet.
Put a short reason for each connection in its label.
Always refer to nodes by their exact IDs."""

SUGGESTION_REQUEST = "Suggest connections between related nodes on this board."

CONNECT_TOOLS = [tool for tool in WHITEBOARD_TOOLS if tool["name"] == ActionType.CONNECT_NODES.value]


class BoardInsights:
    """白板摘要和连线建议"""

    def __init__(self, store: NodeStore, provider: BaseProvider, serializer: Optional[ContextSerializer] = None):
        self.store = store
        self.provider = provider
        self.serializer = serializer or ContextSerializer(store)

    def summary_lines(self) -> List[str]:
        """参与摘要的文本节点，每个节点一行"""
        preview_length = WhiteboardConstants.SUMMARY_PREVIEW_LENGTH
        nodes = [node for node in self.store.list_nodes() if node.is_textual and node.payload.strip()]
        return [
            f"[{node.kind.value}] {node.title}: {node.payload[:preview_length]}..."
            for node in nodes[:WhiteboardConstants.SUMMARY_NODE_LIMIT]
        ]

    async def summarize(self) -> BoardInsightSummary:
        """
        生成白板内容摘要

        没有文本内容时直接返回固定说明，不调用助手。

        Raises:
            AssistantUnavailableException: 助手不可用
        """
        lines = self.summary_lines()
        if not lines:
            return BoardInsightSummary(summary=get_message(MessageKeys.INSIGHT_SUMMARY_EMPTY))

        content = "Content:\n" + "\n\n".join(lines)
        reply = await self._ask_once(SUMMARY_PROMPT, [], [TextPart(text=content)])
        structured_logger.log_board_event("summary_generated", self.store.board_id, nodes=len(lines))
        return BoardInsightSummary(
            summary=reply.text or get_message(MessageKeys.ASSISTANT_NO_RESPONSE),
            node_count=len(lines),
        )

    async def suggest_connections(self) -> List[ConnectionSuggestion]:
        """
        请助手建议应当连接的节点

        只保留两端都存在、不是自连接、尚未连接且不重复的节点对（不区分方向）。
        助手返回的工具调用无法解析时没有建议。

        Raises:
            ContextTooLargeException: 白板内容超过上下文大小限制
            AssistantUnavailableException: 助手不可用
        """
        with self.store.lock:
            nodes = self.store.list_nodes()
            if len(nodes) < 2:
                return []
            system_prompt = SUGGESTION_PROMPT_TEMPLATE.format(board_state=describe_board(nodes))
            request = TextPart(text=SUGGESTION_REQUEST)
            reserved = len(system_prompt.encode("utf-8")) + request.size
            context = self.serializer.serialize(reserved_bytes=reserved)
            linked = {frozenset((edge.from_id, edge.to_id)) for edge in self.store.edges()}

        reply = await self._ask_once(system_prompt, CONNECT_TOOLS, context.to_parts() + [request])

        try:
            actions = parse_tool_calls(reply.tool_calls)
        except MalformedAssistantResponseException as e:
            logger.warning(f"连线建议格式错误，已忽略: {e.message}, 详情: {e.details}")
            return []

        suggestions = []
        seen: Set[frozenset] = set(linked)
        for action in actions:
            if not isinstance(action, ConnectNodesAction):
                continue
            for connection in action.connections:
                pair = self._pair(connection.from_id, connection.to_id)
                if pair is None or frozenset(pair) in seen:
                    continue
                seen.add(frozenset(pair))
                suggestions.append(ConnectionSuggestion(
                    source_node_id=pair[0],
                    target_node_id=pair[1],
                    reason=connection.label or "",
                ))

        structured_logger.log_board_event(
            "connections_suggested", self.store.board_id, suggestions=len(suggestions)
        )
        return suggestions

    def _pair(self, from_id: str, to_id: str) -> Optional[Tuple[str, str]]:
        if from_id == to_id:
            return None
        if not self.store.has_node(from_id) or not self.store.has_node(to_id):
            logger.info(f"忽略引用不存在节点的连线建议: {from_id} -> {to_id}")
            return None
        return from_id, to_id

    async def _ask_once(self, system_prompt: str, tools, parts: List[ContextPart]):
        try:
            handle = self.provider.open_conversation(system_prompt, tools)
        except ConfigurationException as e:
            raise AssistantUnavailableException(e.message, e.details) from e
        return await handle.send(parts)
