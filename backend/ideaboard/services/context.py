"""
上下文序列化 - 将白板节点投影为发送给AI协作方的有序内容块

输出只依赖存储的当前状态：相同状态的两次序列化结果完全一致。
"""
import math
from typing import Iterable, List, Optional, Sequence

from ..core.constants import WhiteboardConstants
from ..core.errors import ContextTooLargeException, NodeNotFoundException
from ..core.logging import get_logger
from ..domain.constants import SUPPORTED_MIME_TYPES
from ..domain.models.context import ContextBlock, InlinePart, SerializedContext, TextPart
from ..domain.models.node import ContentNode
from .node_store import NodeStore

logger = get_logger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are an advanced AI Creative Assistant integrated into a Whiteboard environment.

**Your Capabilities:**
1. **Multimodal Vision**: You can "see" images, "watch" videos and "listen" to audio uploaded to the board.
   - Files whose type you cannot open are still listed so you know they exist.
2. **Spatial Awareness**: You know the exact (x, y) coordinates and dimensions (w, h) of every node.
   - If items are far apart, they might be unrelated.
   - If items are overlapping, they are messy.
3. **Actionable Tools**:
   - **CREATE**: Use 'create_notes' to add new ideas.
   - **MOVE**: Use 'organize_layout' to cluster related ideas or stack cards.
   - **CONNECT**: Use 'connect_nodes' to draw lines for workflows.
   - **GROUP**: Use 'group_nodes' to bundle items together (e.g. a Video + a Summary Note) so they stay together.
   - **UNGROUP**: Use 'ungroup_nodes' to split a group apart.
   - **DELETE**: Use 'delete_nodes' to remove duplicates.

**Context - Current Board State:**
{board_state}

**Your Goal:**
Help the user brainstorm, organize, and structure their thoughts.
Always refer to nodes by their exact IDs when using tools.
If the user says "Analyze this video", find the video node, create a summary note next to it, then GROUP them."""


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _format_dimension(value: float):
    return int(value) if float(value).is_integer() else value


def format_header(node: ContentNode) -> str:
    """节点头部描述：ID、类型、分组、位置尺寸和标题"""
    dimensions = node.effective_dimensions()
    return (
        f"\n[Node ID: {node.id} | Type: {node.kind.value} | Group: {node.group_id or 'None'} | "
        f"Bounds: x={_round_half_up(node.position.x)}, y={_round_half_up(node.position.y)}, "
        f"w={_format_dimension(dimensions.width)}, h={_format_dimension(dimensions.height)} | "
        f"Title: {node.title}]\n"
    )


def unsupported_placeholder(node: ContentNode) -> TextPart:
    return TextPart(text=(
        f"[Attached file: {node.file_name or 'Unknown'}. Type {node.mime_type} "
        f"is not supported for visual analysis, but exists in context.]"
    ))


def omitted_placeholder(node: ContentNode) -> TextPart:
    return TextPart(text=(
        f"[Attached file: {node.file_name or 'Unknown'}. Type {node.mime_type} "
        f"was omitted from this request because the board is too large, but exists in context.]"
    ))


def empty_placeholder(node: ContentNode) -> TextPart:
    return TextPart(text=f"[Attached file: {node.file_name or 'Unknown'}. The file has no content.]")


def describe_board(nodes: Iterable[ContentNode]) -> str:
    """每个节点一行的白板概况，用于系统提示"""
    preview_length = WhiteboardConstants.CONTENT_PREVIEW_LENGTH
    lines = []
    for node in nodes:
        content = node.title or node.payload[:preview_length]
        lines.append(
            f"- ID: {node.id} | Group: {node.group_id or 'None'} | Type: {node.kind.value} | "
            f"Pos: ({_round_half_up(node.position.x)}, {_round_half_up(node.position.y)}) | "
            f"Content: \"{content}...\""
        )
    return "\n".join(lines) if lines else "(The board is empty.)"


def build_system_prompt(nodes: Iterable[ContentNode]) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(board_state=describe_board(nodes))


class ContextSerializer:
    """
    白板上下文序列化器

    - 顺序：存储的添加顺序
    - 文本类节点：头部 + 原始文本
    - 二进制节点：头部 + 内联数据（支持的MIME类型）或占位说明
    - 大小限制：max_bytes 覆盖一次请求的全部内容，调用方通过 reserved_bytes
      预留系统提示和用户问题所占字节；超限时从最早添加的节点开始将内联数据
      替换为占位说明，仅剩文本仍超限时抛出ContextTooLargeException
    """

    def __init__(self, store: NodeStore, max_bytes: Optional[int] = None):
        self.store = store
        self.max_bytes = max_bytes

    def _select_nodes(self, node_ids: Optional[Sequence[str]]) -> List[ContentNode]:
        nodes = self.store.list_nodes()
        if node_ids is None:
            return nodes
        wanted = set(node_ids)
        for node_id in wanted:
            if not self.store.has_node(node_id):
                raise NodeNotFoundException(node_id)
        return [node for node in nodes if node.id in wanted]

    def serialize_node(self, node: ContentNode) -> ContextBlock:
        header = format_header(node)
        if node.is_textual:
            body = TextPart(text=node.payload) if node.payload else None
        elif not node.payload:
            body = empty_placeholder(node)
        elif node.mime_type in SUPPORTED_MIME_TYPES:
            body = InlinePart(mime_type=node.mime_type, data=node.payload)
        else:
            body = unsupported_placeholder(node)
        return ContextBlock(node_id=node.id, header=header, body=body)

    def serialize(self, node_ids: Optional[Sequence[str]] = None, reserved_bytes: int = 0) -> SerializedContext:
        """
        序列化白板（或指定节点子集）

        Args:
            node_ids: 可选的节点ID子集，结果仍按存储顺序排列
            reserved_bytes: 同一请求中其他内容（系统提示、用户问题）占用的字节数

        Raises:
            NodeNotFoundException: 子集中包含不存在的节点
            ContextTooLargeException: 去掉全部内联数据后仍超过大小限制
        """
        with self.store.lock:
            nodes = self._select_nodes(node_ids)
        blocks = [self.serialize_node(node) for node in nodes]
        total = sum(block.size for block in blocks)
        omitted: List[str] = []

        limit = None if self.max_bytes is None else self.max_bytes - reserved_bytes
        if limit is not None and total > limit:
            nodes_by_id = {node.id: node for node in nodes}
            for index, block in enumerate(blocks):
                if total <= limit:
                    break
                if not isinstance(block.body, InlinePart):
                    continue
                replacement = block.model_copy(
                    update={"body": omitted_placeholder(nodes_by_id[block.node_id])}
                )
                total += replacement.size - block.size
                blocks[index] = replacement
                omitted.append(block.node_id)

            if omitted:
                logger.warning(f"白板上下文超过 {self.max_bytes} 字节，已省略 {len(omitted)} 个文件的内联内容")
            if total > limit:
                raise ContextTooLargeException(total + reserved_bytes, self.max_bytes)

        return SerializedContext(blocks=blocks, total_bytes=total, omitted_node_ids=omitted)
