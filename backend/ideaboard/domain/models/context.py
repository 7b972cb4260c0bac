"""
序列化上下文模型 - 发送给AI协作方的有序内容块
"""
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TextPart(BaseModel):
    """文本内容块"""
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str

    @property
    def size(self) -> int:
        return len(self.text.encode("utf-8"))


class InlinePart(BaseModel):
    """内联二进制内容块，data为base64字符串"""
    model_config = ConfigDict(frozen=True)

    type: Literal["inline"] = "inline"
    mime_type: str
    data: str

    @property
    def size(self) -> int:
        return len(self.data)


ContextPart = Union[TextPart, InlinePart]


class ContextBlock(BaseModel):
    """单个节点的序列化结果：头部描述 + 可选正文"""
    model_config = ConfigDict(frozen=True)

    node_id: str
    header: str
    body: Optional[ContextPart] = None

    @property
    def size(self) -> int:
        header_size = len(self.header.encode("utf-8"))
        return header_size + (self.body.size if self.body is not None else 0)

    def parts(self) -> List[ContextPart]:
        parts: List[ContextPart] = [TextPart(text=self.header)]
        if self.body is not None:
            parts.append(self.body)
        return parts


class SerializedContext(BaseModel):
    """白板上下文的完整序列化结果"""
    blocks: List[ContextBlock] = Field(default_factory=list)
    total_bytes: int = 0
    omitted_node_ids: List[str] = Field(default_factory=list, description="因大小限制未内联二进制内容的节点")

    def to_parts(self) -> List[ContextPart]:
        """展开为有序内容块列表"""
        parts: List[ContextPart] = []
        for block in self.blocks:
            parts.extend(block.parts())
        return parts

    def node_ids(self) -> List[str]:
        return [block.node_id for block in self.blocks]
