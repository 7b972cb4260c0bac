"""
领域模型模块
"""

from .node import ContentNode, Position, Dimensions, Group, Edge, BoardState
from .events import BoardEvent, IngestionEvent
from .context import TextPart, InlinePart, ContextBlock, SerializedContext
from .actions import (
    AssistantAction, NoteSpec, NodeMove, NodeConnection,
    CreateNotesAction, OrganizeLayoutAction, ConnectNodesAction,
    DeleteNodesAction, GroupNodesAction, UngroupNodesAction,
)
from .assistant import ToolCall, ProviderReply, AssistantReply, Discrepancy, ApplyReport

__all__ = [
    "ContentNode",
    "Position",
    "Dimensions",
    "Group",
    "Edge",
    "BoardState",
    "BoardEvent",
    "IngestionEvent",
    "TextPart",
    "InlinePart",
    "ContextBlock",
    "SerializedContext",
    "AssistantAction",
    "NoteSpec",
    "NodeMove",
    "NodeConnection",
    "CreateNotesAction",
    "OrganizeLayoutAction",
    "ConnectNodesAction",
    "DeleteNodesAction",
    "GroupNodesAction",
    "UngroupNodesAction",
    "ToolCall",
    "ProviderReply",
    "AssistantReply",
    "Discrepancy",
    "ApplyReport",
]
