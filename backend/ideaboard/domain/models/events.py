"""
事件模型定义
"""
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from .node import Position
from ..constants import BoardEventType, IngestionSource


class BoardEvent(BaseModel):
    """白板事件，由NodeStore发出并广播给协作者"""
    type: BoardEventType
    data: Any = None
    origin: Optional[str] = None

    def __init__(self, event_type: BoardEventType = None, event_data: Any = None, **kwargs):
        """初始化方法，支持位置参数"""
        if event_type is not None:
            kwargs['type'] = event_type
        if event_data is not None:
            kwargs['data'] = event_data
        super().__init__(**kwargs)

    def to_message(self) -> dict:
        """转换为WebSocket消息"""
        return self.model_dump(mode="json", exclude_none=True)


class IngestionEvent(BaseModel):
    """外部导入事件（拖放、粘贴、录音）"""
    kind: IngestionSource = Field(..., description="来源类型: file/text/uri")
    payload: Union[bytes, str] = Field(..., description="文件字节或文本")
    mime_type: Optional[str] = Field(default=None, description="文件MIME类型")
    file_name: Optional[str] = Field(default=None, description="文件名")
    drop_position: Position = Field(..., description="放置位置（画布坐标）")
