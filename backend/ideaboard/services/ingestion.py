"""
导入适配器 - 将拖放的文件、粘贴的链接/文本和录音转换为白板节点

任何失败都不会产生残缺节点：校验全部在节点写入之前完成。
"""
import base64
import mimetypes
import re
import threading
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from ..core.constants import IngestionConstants, WhiteboardConstants
from ..core.errors import (
    BaseAppException, FileTooLargeException, IngestionException,
    MicrophonePermissionException, NoActiveRecordingException, RecordingInProgressException,
)
from ..core.logging import get_logger, StructuredLogger
from ..domain.constants import IngestionSource, NodeKind
from ..domain.models.events import IngestionEvent
from ..domain.models.node import ContentNode, Position
from .node_store import NodeStore

logger = get_logger(__name__)
structured_logger = StructuredLogger("services.ingestion")

_URI_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://\S+")

# (匹配子串, 节点类型, 标题)，按顺序匹配
_LINK_RULES = (
    (("youtube.com", "youtu.be"), NodeKind.EMBEDDED_VIDEO, "Youtube Video"),
    (("tiktok.com",), NodeKind.LINK, "TikTok Video"),
    (("instagram.com",), NodeKind.LINK, "IG Reel"),
)


class IngestionFailure(BaseModel):
    """单个文件导入失败的原因"""
    file_name: Optional[str] = Field(default=None, description="文件名")
    reason: str = Field(..., description="失败原因")


class IngestionResult(BaseModel):
    """一次批量导入的结果"""
    created: List[ContentNode] = Field(default_factory=list, description="新建节点")
    failures: List[IngestionFailure] = Field(default_factory=list, description="失败的文件")

    @property
    def ok(self) -> bool:
        return not self.failures


def classify_mime_type(mime_type: Optional[str], data: Optional[bytes] = None) -> NodeKind:
    """
    按MIME类型前缀判断节点类型

    text/* 且能按UTF-8解码的内容作为文本便签；
    其余未知类型作为document保留原MIME类型，序列化时输出占位说明。
    """
    mime = (mime_type or "").lower()
    if mime.startswith("image/"):
        return NodeKind.IMAGE
    if mime.startswith("video/"):
        return NodeKind.VIDEO
    if mime.startswith("audio/"):
        return NodeKind.AUDIO
    if mime == "application/pdf":
        return NodeKind.DOCUMENT
    if mime.startswith("text/"):
        if data is None:
            return NodeKind.TEXT
        try:
            data.decode("utf-8")
            return NodeKind.TEXT
        except UnicodeDecodeError:
            return NodeKind.DOCUMENT
    return NodeKind.DOCUMENT


def classify_link(text: str):
    """
    按已知站点子串识别链接类型

    Returns:
        (节点类型, 标题)；既不是已知站点也不是URI时返回 (TEXT, "Note")
    """
    for needles, kind, title in _LINK_RULES:
        if any(needle in text for needle in needles):
            return kind, title
    if _URI_SCHEME_PATTERN.match(text):
        return NodeKind.LINK, "Website"
    return NodeKind.TEXT, "Note"


def _drop_origin(drop_position: Position) -> Position:
    """拖放坐标减去居中偏移"""
    offset = IngestionConstants.DROP_CENTER_OFFSET
    return Position(x=drop_position.x - offset, y=drop_position.y - offset)


class FileAdapter:
    """文件导入适配器"""

    def __init__(self, store: NodeStore, max_file_size: int = IngestionConstants.MAX_FILE_SIZE_BYTES):
        self.store = store
        self.max_file_size = max_file_size

    def build_node(self, event: IngestionEvent, position: Position) -> ContentNode:
        """
        将单个文件事件转换为节点（不写入存储）

        Raises:
            IngestionException: 文件为空或无法读取
            FileTooLargeException: 文件超过大小限制
        """
        data = event.payload
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not data:
            raise IngestionException(f"文件为空或无法读取: {event.file_name or 'Unknown'}")
        if len(data) > self.max_file_size:
            raise FileTooLargeException(len(data), self.max_file_size)

        mime_type = event.mime_type
        if not mime_type and event.file_name:
            mime_type, _ = mimetypes.guess_type(event.file_name)
        mime_type = mime_type or "application/octet-stream"

        kind = classify_mime_type(mime_type, data)
        title = event.file_name or "Untitled"
        if kind == NodeKind.TEXT:
            payload = data.decode("utf-8")
        else:
            payload = base64.b64encode(data).decode("ascii")

        return ContentNode(
            kind=kind,
            title=title,
            payload=payload,
            mime_type=mime_type,
            file_name=event.file_name,
            position=position,
        )

    def ingest_batch(self, events: Sequence[IngestionEvent], centered: bool = True) -> IngestionResult:
        """
        导入一批文件

        同一批次的文件依次向下错位，单个文件失败不影响其余文件。

        Args:
            events: 文件事件列表（共用第一个事件的放置位置）
            centered: 是否从拖放位置减去居中偏移（文件选择器上传时为False）
        """
        result = IngestionResult()
        if not events:
            return result

        anchor = events[0].drop_position
        origin = _drop_origin(anchor) if centered else anchor
        step = IngestionConstants.BATCH_VERTICAL_STEP

        for index, event in enumerate(events):
            position = Position(x=origin.x, y=origin.y + index * step)
            try:
                node = self.build_node(event, position)
                self.store.add_node(node)
                result.created.append(node)
            except BaseAppException as e:
                logger.warning(f"文件导入失败: {event.file_name}, 原因: {e.message}")
                result.failures.append(IngestionFailure(file_name=event.file_name, reason=e.message))

        structured_logger.log_board_event(
            "files_ingested",
            self.store.board_id,
            created=len(result.created),
            failed=len(result.failures),
        )
        return result


class LinkTextAdapter:
    """链接和文本导入适配器"""

    def __init__(self, store: NodeStore):
        self.store = store

    @staticmethod
    def _extract_text(event: IngestionEvent) -> str:
        text = event.payload
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as e:
                raise IngestionException("拖放的文本不是有效的UTF-8") from e

        if event.kind == IngestionSource.URI or event.mime_type == "text/uri-list":
            # text/uri-list: 取第一条非注释行
            for line in text.splitlines():
                line = line.strip()
                if line and not line.startswith("#"):
                    return line
            return ""
        return text.strip()

    def ingest(self, event: IngestionEvent) -> ContentNode:
        """
        导入拖放/粘贴的文本或URI

        Raises:
            IngestionException: 内容为空
        """
        content = self._extract_text(event)
        if not content:
            raise IngestionException("拖放的内容为空")

        kind, title = classify_link(content)
        node = ContentNode(
            kind=kind,
            title=title,
            payload=content,
            position=_drop_origin(event.drop_position),
        )
        return self.store.add_node(node)


def create_note(store: NodeStore, content: Optional[str] = None, position: Optional[Position] = None,
                title: str = "Note", origin: Optional[str] = None) -> ContentNode:
    """手动添加文本便签"""
    if position is None:
        x, y = WhiteboardConstants.DEFAULT_NOTE_POSITION
        position = Position(x=x, y=y)
    node = ContentNode(
        kind=NodeKind.TEXT,
        title=title,
        payload=content if content is not None else WhiteboardConstants.DEFAULT_NOTE_CONTENT,
        position=position,
    )
    return store.add_node(node, origin=origin)


def add_link(store: NodeStore, url: str, position: Optional[Position] = None,
             origin: Optional[str] = None) -> ContentNode:
    """手动添加链接，YouTube链接作为嵌入视频"""
    url = (url or "").strip()
    if not url:
        raise IngestionException("链接不能为空")
    if position is None:
        x, y = WhiteboardConstants.DEFAULT_LINK_POSITION
        position = Position(x=x, y=y)

    kind, title = classify_link(url)
    if kind == NodeKind.TEXT:
        kind, title = NodeKind.LINK, "Link"
    node = ContentNode(kind=kind, title=title, payload=url, position=position)
    return store.add_node(node, origin=origin)


class AudioCaptureAdapter:
    """
    录音导入适配器

    每个白板同一时间只允许一个录音；停止时把缓冲的音频合并为一个节点。
    缓冲超过 max_bytes 时整段录音被丢弃，不会创建节点。
    """

    def __init__(self, store: NodeStore, max_bytes: int = IngestionConstants.MAX_FILE_SIZE_BYTES,
                 microphone: Optional[Callable[[], None]] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.max_bytes = max_bytes
        self.microphone = microphone
        self.clock = clock
        self._lock = threading.Lock()
        self._active = False
        self._chunks: List[bytes] = []
        self._buffered = 0
        self._mime_type = IngestionConstants.DEFAULT_AUDIO_MIME_TYPE

    @property
    def is_recording(self) -> bool:
        return self._active

    @property
    def buffered_bytes(self) -> int:
        return self._buffered

    def start(self, mime_type: Optional[str] = None) -> None:
        """
        开始录音

        Raises:
            RecordingInProgressException: 已有录音在进行
            MicrophonePermissionException: 麦克风访问被拒绝
        """
        with self._lock:
            if self._active:
                raise RecordingInProgressException(self.store.board_id)
            if self.microphone is not None:
                try:
                    self.microphone()
                except PermissionError as e:
                    logger.warning(f"麦克风访问被拒绝: {str(e)}")
                    raise MicrophonePermissionException() from e

            self._active = True
            self._chunks = []
            self._buffered = 0
            self._mime_type = mime_type or IngestionConstants.DEFAULT_AUDIO_MIME_TYPE
            logger.info(f"开始录音: board={self.store.board_id}, mime={self._mime_type}")

    def append_chunk(self, data: bytes) -> int:
        """
        追加一段音频数据，返回当前缓冲总字节数

        Raises:
            NoActiveRecordingException: 没有进行中的录音
            FileTooLargeException: 缓冲超过大小限制，录音已被丢弃
        """
        with self._lock:
            if not self._active:
                raise NoActiveRecordingException(self.store.board_id)
            total = self._buffered + len(data)
            if total > self.max_bytes:
                self._active = False
                self._chunks = []
                self._buffered = 0
                logger.warning(f"录音超过大小限制，已丢弃: board={self.store.board_id}, {total} > {self.max_bytes}")
                raise FileTooLargeException(total, self.max_bytes)
            if data:
                self._chunks.append(data)
                self._buffered = total
            return self._buffered

    def stop(self) -> ContentNode:
        """
        停止录音并创建音频节点

        Raises:
            NoActiveRecordingException: 没有进行中的录音
            IngestionException: 没有录到任何音频
        """
        with self._lock:
            if not self._active:
                raise NoActiveRecordingException(self.store.board_id)
            blob = b"".join(self._chunks)
            mime_type = self._mime_type
            self._active = False
            self._chunks = []
            self._buffered = 0

        if not blob:
            raise IngestionException("录音为空，未创建节点")

        title = self.clock().strftime(IngestionConstants.RECORDING_TITLE_FORMAT)
        x, y = WhiteboardConstants.DEFAULT_RECORDING_POSITION
        node = ContentNode(
            kind=NodeKind.AUDIO,
            title=title,
            payload=base64.b64encode(blob).decode("ascii"),
            mime_type=mime_type,
            file_name=title,
            position=Position(x=x, y=y),
        )
        logger.info(f"录音完成: {len(blob)} 字节")
        return self.store.add_node(node)

    def cancel(self) -> bool:
        """放弃当前录音，返回是否确实有录音被放弃"""
        with self._lock:
            was_active = self._active
            self._active = False
            self._chunks = []
            self._buffered = 0
            return was_active
