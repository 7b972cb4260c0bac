"""
白板服务 - 组合节点存储、导入适配器、画布控制器、上下文序列化器和助手会话
"""
import asyncio
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.constants import IngestionConstants
from ..core.errors import BoardNotFoundException, ValidationException
from ..core.logging import get_logger, StructuredLogger
from ..core.messages import get_message, MessageKeys
from ..domain.constants import IngestionSource, ReplyStatus
from ..domain.models.assistant import ApplyReport, AssistantReply
from ..domain.models.events import IngestionEvent
from ..domain.models.node import ContentNode, generate_id
from ..domain.schemas.board import BoardDetail, BoardSnapshot, BoardSummary
from ..lib.providers.base import BaseProvider
from .actions import ActionApplier
from .canvas import CanvasController
from .collaboration import CollaborationHub
from .context import ContextSerializer
from .ingestion import AudioCaptureAdapter, FileAdapter, IngestionResult, LinkTextAdapter
from .insights import BoardInsights
from .node_store import NodeStore
from .session import ConversationSession

logger = get_logger(__name__)
structured_logger = StructuredLogger("services.board")

DEFAULT_BOARD_TITLE = "Untitled Board"


class BoardChatResult(BaseModel):
    """一次提问的结果：助手回复和动作应用报告"""
    reply: AssistantReply
    report: ApplyReport = Field(default_factory=ApplyReport)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Board:
    """单个白板"""

    def __init__(
        self,
        provider: BaseProvider,
        title: Optional[str] = None,
        board_id: Optional[str] = None,
        max_context_bytes: Optional[int] = None,
        max_upload_bytes: Optional[int] = None,
        microphone: Optional[Callable[[], None]] = None,
    ):
        self.id = board_id or generate_id()
        self.title = title or DEFAULT_BOARD_TITLE
        self.created_at = _utcnow()
        self.updated_at = self.created_at

        self.store = NodeStore(self.id)
        upload_limit = max_upload_bytes or IngestionConstants.MAX_FILE_SIZE_BYTES
        self.files = FileAdapter(self.store, upload_limit)
        self.links = LinkTextAdapter(self.store)
        self.audio = AudioCaptureAdapter(self.store, upload_limit, microphone=microphone)
        self.canvas = CanvasController(self.store)
        self.serializer = ContextSerializer(self.store, max_context_bytes)
        self.session = ConversationSession(self.store, provider, self.serializer)
        self.applier = ActionApplier(self.store)
        self.insights = BoardInsights(self.store, provider, self.serializer)
        self.snapshots: List[BoardSnapshot] = []

        self.store.subscribe(self.session.on_board_event)
        self.store.subscribe(self._touch)
        self._pending: Optional[asyncio.Task] = None

    def _touch(self, event) -> None:
        self.updated_at = _utcnow()

    # ------------------------------------------------------------------
    # 导入与编辑
    # ------------------------------------------------------------------

    def ingest(self, event: IngestionEvent) -> IngestionResult:
        """按来源类型分派导入事件"""
        if event.kind == IngestionSource.FILE:
            return self.files.ingest_batch([event])
        return IngestionResult(created=[self.links.ingest(event)])

    def update_node(self, node_id: str, title: Optional[str] = None, payload: Optional[str] = None,
                    origin: Optional[str] = None) -> ContentNode:
        """修改节点标题和/或文本内容"""
        if title is None and payload is None:
            raise ValidationException("至少需要提供 title 或 payload")
        with self.store.lock:
            node = self.store.get_node(node_id)
            if payload is not None:
                node = self.store.update_node_content(node_id, payload, origin=origin)
            if title is not None:
                node = self.store.update_node_title(node_id, title, origin=origin)
            return node

    # ------------------------------------------------------------------
    # 助手
    # ------------------------------------------------------------------

    async def ask(self, message: str) -> BoardChatResult:
        """
        向助手提问并按顺序应用返回的动作

        新的提问会取消尚未完成的上一次提问，被取消的调用方得到superseded回复，
        其动作不会被应用。
        """
        message = (message or "").strip()
        if not message and len(self.store) == 0:
            raise ValidationException("消息不能为空", field="message")

        previous = self._pending
        if previous is not None and not previous.done():
            logger.info(f"取消白板 {self.id} 未完成的助手请求")
            self._pending = None
            previous.cancel()
            await asyncio.wait([previous])

        task = asyncio.ensure_future(self.session.ask(message))
        self._pending = task
        try:
            reply = await task
        except asyncio.CancelledError:
            if self._pending is task:
                raise
            return BoardChatResult(reply=AssistantReply(
                text=get_message(MessageKeys.ASSISTANT_SUPERSEDED),
                status=ReplyStatus.SUPERSEDED,
            ))
        finally:
            if self._pending is task:
                self._pending = None

        report = self.applier.apply(reply.actions) if reply.actions else ApplyReport()
        structured_logger.log_board_event(
            "assistant_turn",
            self.id,
            status=reply.status,
            reinitialized=reply.reinitialized,
            actions=len(reply.actions),
        )
        return BoardChatResult(reply=reply, report=report)

    def cancel_pending(self) -> bool:
        """取消未完成的助手请求"""
        task = self._pending
        if task is None or task.done():
            return False
        self._pending = None
        task.cancel()
        return True

    # ------------------------------------------------------------------
    # 快照
    # ------------------------------------------------------------------

    def create_snapshot(self, created_by: Optional[str] = None) -> BoardSnapshot:
        """保存白板当前的完整状态，之后的修改不影响已保存的快照"""
        snapshot = BoardSnapshot(
            id=generate_id(),
            board_id=self.id,
            created_at=_utcnow(),
            created_by=created_by,
            state=self.store.snapshot(),
        )
        self.snapshots.append(snapshot)
        structured_logger.log_board_event(
            "snapshot_created", self.id, snapshot_id=snapshot.id, nodes=len(snapshot.state.nodes)
        )
        return snapshot

    # ------------------------------------------------------------------
    # 视图
    # ------------------------------------------------------------------

    def summary(self) -> BoardSummary:
        return BoardSummary(
            id=self.id,
            title=self.title,
            created_at=self.created_at,
            updated_at=self.updated_at,
            node_count=len(self.store),
        )

    def detail(self) -> BoardDetail:
        state = self.store.snapshot()
        return BoardDetail(
            **self.summary().model_dump(),
            nodes=state.nodes,
            groups=state.groups,
            edges=state.edges,
            revision=state.revision,
            is_recording=self.audio.is_recording,
            session_state=self.session.state,
        )


class BoardRegistry:
    """
    白板注册表

    挂在 app.state 上，每个白板通过注入的工厂获得自己的AI协作方。
    """

    def __init__(
        self,
        provider_factory: Callable[[], BaseProvider],
        max_context_bytes: Optional[int] = None,
        max_upload_bytes: Optional[int] = None,
        hub: Optional[CollaborationHub] = None,
    ):
        self.provider_factory = provider_factory
        self.max_context_bytes = max_context_bytes
        self.max_upload_bytes = max_upload_bytes
        self.hub = hub or CollaborationHub()
        self._boards: Dict[str, Board] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, provider_factory: Callable[[], BaseProvider]) -> "BoardRegistry":
        return cls(
            provider_factory,
            max_context_bytes=settings.MAX_CONTEXT_BYTES,
            max_upload_bytes=settings.MAX_UPLOAD_BYTES,
        )

    def create(self, title: Optional[str] = None) -> Board:
        board = Board(
            self.provider_factory(),
            title=title,
            max_context_bytes=self.max_context_bytes,
            max_upload_bytes=self.max_upload_bytes,
        )
        with self._lock:
            self._boards[board.id] = board
        self.hub.attach(board)
        structured_logger.log_board_event("board_created", board.id, title=board.title)
        return board

    def get(self, board_id: str) -> Board:
        board = self._boards.get(board_id)
        if board is None:
            raise BoardNotFoundException(board_id)
        return board

    def list_boards(self) -> List[Board]:
        with self._lock:
            return sorted(self._boards.values(), key=lambda board: board.created_at)

    def rename(self, board_id: str, title: str) -> Board:
        board = self.get(board_id)
        board.title = title
        board.updated_at = _utcnow()
        return board

    def delete(self, board_id: str) -> Board:
        with self._lock:
            board = self._boards.pop(board_id, None)
        if board is None:
            raise BoardNotFoundException(board_id)
        board.cancel_pending()
        self.hub.detach(board_id)
        structured_logger.log_board_event("board_deleted", board_id)
        return board

    def __len__(self) -> int:
        return len(self._boards)
