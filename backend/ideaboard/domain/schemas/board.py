"""
白板API的请求与响应模型
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import BaseSchema
from ..constants import IngestionSource, SessionState
from ..models.node import BoardState, ContentNode, Edge, Group, Position


class BoardCreate(BaseSchema):
    """创建白板请求"""
    title: Optional[str] = Field(None, max_length=200, description="白板标题")


class BoardUpdate(BaseSchema):
    """更新白板请求"""
    title: str = Field(..., min_length=1, max_length=200, description="白板标题")


class BoardSummary(BaseSchema):
    """白板概要"""
    id: str = Field(..., description="白板ID")
    title: str = Field(..., description="白板标题")
    created_at: datetime = Field(..., description="创建时间")
    updated_at: datetime = Field(..., description="更新时间")
    node_count: int = Field(0, description="节点数量")


class BoardDetail(BoardSummary):
    """白板完整状态"""
    nodes: List[ContentNode] = Field(default_factory=list, description="节点列表")
    groups: List[Group] = Field(default_factory=list, description="分组列表")
    edges: List[Edge] = Field(default_factory=list, description="连线列表")
    revision: int = Field(0, description="上下文版本号")
    is_recording: bool = Field(False, description="是否正在录音")
    session_state: SessionState = Field(SessionState.UNINITIALIZED, description="助手会话状态")


class NoteCreate(BaseSchema):
    """手动添加便签"""
    content: Optional[str] = Field(None, description="便签内容")
    title: Optional[str] = Field(None, description="便签标题")
    x: Optional[float] = Field(None, description="X坐标")
    y: Optional[float] = Field(None, description="Y坐标")


class LinkCreate(BaseSchema):
    """手动添加链接"""
    url: str = Field(..., min_length=1, description="链接地址")
    x: Optional[float] = Field(None, description="X坐标")
    y: Optional[float] = Field(None, description="Y坐标")


class DropRequest(BaseSchema):
    """拖放文本或URI"""
    kind: IngestionSource = Field(IngestionSource.TEXT, description="来源类型: text/uri")
    payload: str = Field(..., description="拖放的文本")
    mime_type: Optional[str] = Field(None, description="数据类型，如 text/uri-list")
    x: float = Field(..., description="拖放X坐标")
    y: float = Field(..., description="拖放Y坐标")


class NodeUpdate(BaseSchema):
    """修改节点标题或文本内容"""
    title: Optional[str] = Field(None, description="新标题")
    payload: Optional[str] = Field(None, description="新文本内容")


class PositionUpdate(BaseSchema):
    """移动节点"""
    x: float = Field(..., description="X坐标")
    y: float = Field(..., description="Y坐标")


class RecordingStart(BaseSchema):
    """开始录音"""
    mime_type: Optional[str] = Field(None, description="音频MIME类型")


class RecordingStatus(BaseSchema):
    """录音状态"""
    is_recording: bool = Field(..., description="是否正在录音")
    buffered_bytes: int = Field(0, description="已缓冲字节数")


class DragStart(BaseSchema):
    """开始拖动"""
    node_id: str = Field(..., description="节点ID")
    pointer: Position = Field(..., description="指针位置")
    canvas_origin: Position = Field(default_factory=lambda: Position(x=0, y=0), description="画布左上角位置")


class DragMove(BaseSchema):
    """拖动中"""
    pointer: Position = Field(..., description="指针位置")
    canvas_origin: Position = Field(default_factory=lambda: Position(x=0, y=0), description="画布左上角位置")


class DragState(BaseSchema):
    """拖动状态"""
    dragging: bool = Field(..., description="是否正在拖动")
    node_id: Optional[str] = Field(None, description="被拖动的节点ID")
    position: Optional[Position] = Field(None, description="节点当前位置")


class ChatRequest(BaseSchema):
    """向助手提问"""
    message: str = Field("", max_length=10000, description="用户消息")


class ContextBlockPreview(BaseSchema):
    """上下文块预览（不含内联数据）"""
    node_id: str
    header: str
    body_type: Optional[str] = Field(None, description="text / inline / None")
    text: Optional[str] = None
    mime_type: Optional[str] = None
    size: int = 0


class ContextPreview(BaseSchema):
    """序列化上下文预览"""
    blocks: List[ContextBlockPreview] = Field(default_factory=list)
    total_bytes: int = 0
    omitted_node_ids: List[str] = Field(default_factory=list)


class BoardInsightSummary(BaseSchema):
    """白板内容摘要"""
    summary: str = Field(..., description="摘要文本")
    node_count: int = Field(0, description="参与摘要的文本节点数")


class ConnectionSuggestion(BaseSchema):
    """建议连接的一对节点（不会自动应用）"""
    source_node_id: str = Field(..., description="起点节点ID")
    target_node_id: str = Field(..., description="终点节点ID")
    reason: str = Field("", description="建议理由")


class SnapshotCreate(BaseSchema):
    """创建快照请求"""
    created_by: Optional[str] = Field(None, max_length=200, description="创建者")


class BoardSnapshot(BaseSchema):
    """白板某一时刻的完整状态"""
    id: str = Field(..., description="快照ID")
    board_id: str = Field(..., description="白板ID")
    created_at: datetime = Field(..., description="创建时间")
    created_by: Optional[str] = Field(None, description="创建者")
    state: BoardState = Field(..., description="节点、分组和连线")
