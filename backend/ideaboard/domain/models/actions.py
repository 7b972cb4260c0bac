"""
助手动作协议

每个工具调用对应一个带标签的变体，按 ``action`` 字段区分。
新增动作时需要同时扩展 ``AssistantAction`` 联合类型和 ``ActionApplier`` 的分派表。
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..constants import ActionType
from ...core.errors import MalformedAssistantResponseException


class _ActionModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class NoteSpec(_ActionModel):
    """待创建的便签"""
    title: Optional[str] = Field(default=None, description="便签标题")
    content: str = Field(..., min_length=1, description="便签正文")
    color: Optional[str] = Field(default=None, description="颜色十六进制值")
    x: Optional[float] = Field(default=None, description="X坐标")
    y: Optional[float] = Field(default=None, description="Y坐标")


class NodeMove(_ActionModel):
    """单个节点移动"""
    id: str = Field(..., description="节点ID")
    x: float = Field(..., description="新X坐标")
    y: float = Field(..., description="新Y坐标")


class NodeConnection(_ActionModel):
    """单条连线"""
    from_id: str = Field(..., alias="fromId", description="起点节点ID")
    to_id: str = Field(..., alias="toId", description="终点节点ID")
    label: Optional[str] = Field(default=None, description="连线标签")


class CreateNotesAction(_ActionModel):
    action: Literal["create_notes"] = ActionType.CREATE_NOTES.value
    notes: List[NoteSpec] = Field(..., min_length=1)


class OrganizeLayoutAction(_ActionModel):
    action: Literal["organize_layout"] = ActionType.ORGANIZE_LAYOUT.value
    moves: List[NodeMove] = Field(..., min_length=1)


class ConnectNodesAction(_ActionModel):
    action: Literal["connect_nodes"] = ActionType.CONNECT_NODES.value
    connections: List[NodeConnection] = Field(..., min_length=1)


class DeleteNodesAction(_ActionModel):
    action: Literal["delete_nodes"] = ActionType.DELETE_NODES.value
    node_ids: List[str] = Field(..., alias="nodeIds", min_length=1)


class GroupNodesAction(_ActionModel):
    action: Literal["group_nodes"] = ActionType.GROUP_NODES.value
    node_ids: List[str] = Field(..., alias="nodeIds", min_length=1)


class UngroupNodesAction(_ActionModel):
    action: Literal["ungroup_nodes"] = ActionType.UNGROUP_NODES.value
    node_ids: List[str] = Field(..., alias="nodeIds", min_length=1)


AssistantAction = Annotated[
    Union[
        CreateNotesAction,
        OrganizeLayoutAction,
        ConnectNodesAction,
        DeleteNodesAction,
        GroupNodesAction,
        UngroupNodesAction,
    ],
    Field(discriminator="action"),
]

_action_adapter = TypeAdapter(AssistantAction)


def parse_action(name: str, arguments: dict) -> AssistantAction:
    """将单个工具调用转换为动作，格式错误时抛出异常"""
    if name not in {action_type.value for action_type in ActionType}:
        raise MalformedAssistantResponseException(
            f"未知的助手动作: {name}", {"tool_name": name}
        )
    try:
        return _action_adapter.validate_python({**(arguments or {}), "action": name})
    except ValidationError as e:
        raise MalformedAssistantResponseException(
            f"助手动作 {name} 参数无效",
            {"tool_name": name, "errors": [err["msg"] for err in e.errors()]}
        ) from e


def parse_tool_calls(tool_calls) -> List[AssistantAction]:
    """
    解析一次回复中的全部工具调用

    全有或全无：任意一个调用格式错误，整批动作都会被拒绝。

    Args:
        tool_calls: ToolCall列表

    Returns:
        按助手指定顺序排列的动作列表
    """
    return [parse_action(call.name, call.arguments) for call in tool_calls]
