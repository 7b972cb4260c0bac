"""
助手对话相关模型
"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from .actions import AssistantAction
from ..constants import ReplyStatus


class ToolCall(BaseModel):
    """模型返回的结构化工具调用"""
    name: str = Field(..., description="工具名称")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="工具参数")


class ProviderReply(BaseModel):
    """AI协作方单轮回复的原始内容"""
    text: str = Field(default="", description="回复文本")
    tool_calls: List[ToolCall] = Field(default_factory=list, description="工具调用列表")


class AssistantReply(BaseModel):
    """会话层返回给调用方的回复"""
    text: str = Field(..., description="回复文本")
    actions: List[AssistantAction] = Field(default_factory=list, description="待应用的白板动作")
    status: ReplyStatus = Field(default=ReplyStatus.OK, description="回复状态")
    reinitialized: bool = Field(default=False, description="本轮是否重新序列化了完整上下文")

    @property
    def ok(self) -> bool:
        return self.status == ReplyStatus.OK


class Discrepancy(BaseModel):
    """因引用失效而被跳过的动作项"""
    action: str = Field(..., description="动作名称")
    node_ids: List[str] = Field(default_factory=list, description="缺失或无效的节点ID")
    reason: str = Field(..., description="跳过原因")


class ApplyReport(BaseModel):
    """动作应用结果"""
    applied: int = Field(default=0, description="成功应用的动作项数量")
    skipped: List[Discrepancy] = Field(default_factory=list, description="被跳过的动作项")
    created_node_ids: List[str] = Field(default_factory=list, description="新建节点ID")
    deleted_node_ids: List[str] = Field(default_factory=list, description="删除的节点ID")
