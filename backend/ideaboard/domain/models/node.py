"""
白板节点、分组和连线模型
"""
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..constants import NodeKind, BINARY_KINDS, TEXTUAL_KINDS
from ...core.constants import WhiteboardConstants


def generate_id() -> str:
    """生成不透明的唯一ID"""
    return str(uuid.uuid4())


class Position(BaseModel):
    """画布坐标"""
    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="X坐标")
    y: float = Field(..., description="Y坐标")


class Dimensions(BaseModel):
    """节点尺寸"""
    model_config = ConfigDict(frozen=True)

    width: float = Field(..., gt=0, description="宽度")
    height: float = Field(..., gt=0, description="高度")


class ContentNode(BaseModel):
    """
    画布上的内容节点

    节点是不可变值对象：所有修改都通过NodeStore生成新实例，
    调用方拿到的节点永远不会被就地修改。
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id, description="节点ID")
    kind: NodeKind = Field(..., description="节点类型")
    title: str = Field(..., description="显示标题")
    payload: str = Field(default="", description="文本内容、URL或base64编码的二进制数据")
    mime_type: Optional[str] = Field(default=None, description="二进制内容的MIME类型")
    file_name: Optional[str] = Field(default=None, description="原始文件名")
    position: Position = Field(..., description="画布位置")
    dimensions: Optional[Dimensions] = Field(default=None, description="尺寸，为空时使用类型默认值")
    group_id: Optional[str] = Field(default=None, description="所属分组ID")
    color: Optional[str] = Field(default=None, description="便签颜色")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="创建时间")

    @property
    def is_binary(self) -> bool:
        return self.kind in BINARY_KINDS

    @property
    def is_textual(self) -> bool:
        return self.kind in TEXTUAL_KINDS

    def effective_dimensions(self) -> Dimensions:
        """获取节点尺寸，未设置时按类型返回默认值"""
        if self.dimensions is not None:
            return self.dimensions
        width, height = WhiteboardConstants.DEFAULT_DIMENSIONS.get(
            self.kind.value, WhiteboardConstants.FALLBACK_DIMENSIONS
        )
        return Dimensions(width=width, height=height)


class Group(BaseModel):
    """节点分组（弱引用，删除分组不会删除成员）"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id, description="分组ID")
    member_ids: Tuple[str, ...] = Field(default_factory=tuple, description="成员节点ID")


class Edge(BaseModel):
    """两个节点之间的连线"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id, description="连线ID")
    from_id: str = Field(..., description="起点节点ID")
    to_id: str = Field(..., description="终点节点ID")
    label: Optional[str] = Field(default=None, description="连线标签")


class BoardState(BaseModel):
    """白板快照"""
    nodes: List[ContentNode] = Field(default_factory=list, description="节点列表（按添加顺序）")
    groups: List[Group] = Field(default_factory=list, description="分组列表")
    edges: List[Edge] = Field(default_factory=list, description="连线列表")
    revision: int = Field(default=0, description="上下文版本号")
