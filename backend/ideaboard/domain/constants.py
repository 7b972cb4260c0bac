"""
系统常量和枚举定义
"""
from enum import Enum

class NodeKind(str, Enum):
    """节点类型枚举，创建后不可更改"""
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    LINK = "link"
    EMBEDDED_VIDEO = "embedded-video"

# 载荷为UTF-8文本（便签正文或URL）的类型
TEXTUAL_KINDS = frozenset({NodeKind.TEXT, NodeKind.LINK, NodeKind.EMBEDDED_VIDEO})

# 载荷为base64编码二进制数据的类型
BINARY_KINDS = frozenset({NodeKind.IMAGE, NodeKind.VIDEO, NodeKind.AUDIO, NodeKind.DOCUMENT})

# 可以作为内联数据直接发送给多模态模型的MIME类型
SUPPORTED_MIME_TYPES = frozenset({
    'image/png', 'image/jpeg', 'image/webp', 'image/heic', 'image/heif',
    'video/mp4', 'video/mpeg', 'video/mov', 'video/avi', 'video/x-flv', 'video/mpg', 'video/webm', 'video/wmv', 'video/3gpp',
    'audio/wav', 'audio/mp3', 'audio/aiff', 'audio/aac', 'audio/ogg', 'audio/flac',
    'application/pdf', 'text/plain', 'text/csv', 'text/html',
})

class IngestionSource(str, Enum):
    """导入事件来源"""
    FILE = "file"
    TEXT = "text"
    URI = "uri"

class ActionType(str, Enum):
    """助手可请求的白板修改动作"""
    CREATE_NOTES = "create_notes"
    ORGANIZE_LAYOUT = "organize_layout"
    CONNECT_NODES = "connect_nodes"
    DELETE_NODES = "delete_nodes"
    GROUP_NODES = "group_nodes"
    UNGROUP_NODES = "ungroup_nodes"

class SessionState(str, Enum):
    """会话状态"""
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    STALE = "stale"

class ReplyStatus(str, Enum):
    """助手回复状态"""
    OK = "ok"
    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"
    CONTEXT_TOO_LARGE = "context_too_large"
    SUPERSEDED = "superseded"

class BoardEventType(str, Enum):
    """实时协作事件类型"""
    NODE_CREATED = "node_created"
    NODE_UPDATED = "node_updated"
    NODE_MOVED = "node_moved"
    NODE_DELETED = "node_deleted"
    GROUP_CHANGED = "group_changed"
    EDGE_CREATED = "edge_created"
    CURSOR_MOVED = "cursor_moved"
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"

# 会改变白板信息内容、需要让助手会话失效的事件
CONTEXT_CHANGING_EVENTS = frozenset({
    BoardEventType.NODE_CREATED,
    BoardEventType.NODE_UPDATED,
    BoardEventType.NODE_DELETED,
    BoardEventType.GROUP_CHANGED,
    BoardEventType.EDGE_CREATED,
})
