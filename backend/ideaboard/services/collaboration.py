"""
实时协作 - 通过WebSocket在同一白板的协作者之间广播白板事件

远端协作者的修改同样经过NodeStore，分组/连线的一致性与本地修改相同，
同一字段的并发修改以最后写入为准。

每个协作者有一个有序发件箱，由单独的发送任务依次发出，
因此每个协作者收到的事件顺序与白板上的修改顺序一致，慢连接不会影响其他协作者。
"""
import asyncio
import contextlib
from typing import Any, Callable, Dict, List, Optional

from fastapi import WebSocket

from ..core.constants import WhiteboardConstants
from ..core.errors import BaseAppException, ValidationException
from ..core.logging import get_logger
from ..domain.constants import BoardEventType
from ..domain.models.events import BoardEvent

logger = get_logger(__name__)


class PeerConnection:
    """一个协作者连接及其有序发件箱"""

    def __init__(self, board_id: str, user_id: str, websocket: WebSocket,
                 limit: int = WhiteboardConstants.COLLABORATION_OUTBOX_LIMIT):
        self.board_id = board_id
        self.user_id = user_id
        self.websocket = websocket
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=limit)
        self.sender: Optional[asyncio.Task] = None

    def start(self, on_failure: Callable[["PeerConnection", Exception], None]) -> None:
        self.sender = asyncio.get_running_loop().create_task(self._drain(on_failure))

    def enqueue(self, message: Dict[str, Any]) -> None:
        """放入发件箱；发件箱已满时抛出asyncio.QueueFull"""
        self.outbox.put_nowait(message)

    async def _drain(self, on_failure) -> None:
        while True:
            message = await self.outbox.get()
            try:
                await self.websocket.send_json(message)
            except Exception as e:
                self.outbox.task_done()
                self.discard_pending()
                on_failure(self, e)
                return
            self.outbox.task_done()

    def discard_pending(self) -> None:
        while True:
            try:
                self.outbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            self.outbox.task_done()

    def cancel(self) -> None:
        if self.sender is not None and not self.sender.done():
            self.sender.cancel()
        self.discard_pending()

    async def close(self) -> None:
        sender = self.sender
        self.cancel()
        if sender is not None and sender is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await sender


class CollaborationHub:
    """白板协作连接管理"""

    def __init__(self):
        # board_id -> {user_id: PeerConnection}
        self._peers: Dict[str, Dict[str, PeerConnection]] = {}
        self._subscriptions: Dict[str, Callable[[], None]] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # 白板订阅
    # ------------------------------------------------------------------

    def attach(self, board) -> None:
        """订阅白板的存储事件并转发给协作者"""
        board_id = board.id

        def forward(event: BoardEvent):
            if not self._peers.get(board_id):
                return
            self._publish(board_id, event.to_message(), exclude=event.origin)

        self._subscriptions[board_id] = board.store.subscribe(forward)

    def detach(self, board_id: str) -> None:
        unsubscribe = self._subscriptions.pop(board_id, None)
        if unsubscribe is not None:
            unsubscribe()
        for peer in self._peers.pop(board_id, {}).values():
            peer.cancel()

    def _publish(self, board_id: str, message: Dict[str, Any], exclude: Optional[str] = None) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and running is self._loop:
            self.broadcast(board_id, message, exclude=exclude)
        elif self._loop is not None and not self._loop.is_closed():
            # 从工作线程发出的事件，按提交顺序交给事件循环
            self._loop.call_soon_threadsafe(self.broadcast, board_id, message, exclude)

    # ------------------------------------------------------------------
    # 连接管理
    # ------------------------------------------------------------------

    def peers(self, board_id: str) -> List[str]:
        return list(self._peers.get(board_id, {}))

    async def connect(self, board_id: str, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._loop = asyncio.get_running_loop()

        previous = self._peers.get(board_id, {}).pop(user_id, None)
        if previous is not None:
            await previous.close()

        # 欢迎消息先于任何广播发出
        await websocket.send_json({
            "type": "connection_established",
            "board_id": board_id,
            "user_id": user_id,
            "peers": self.peers(board_id) + [user_id],
        })

        peer = PeerConnection(board_id, user_id, websocket)
        self._peers.setdefault(board_id, {})[user_id] = peer
        peer.start(self._drop_peer)
        logger.info(f"协作者加入: board={board_id}, user={user_id}")

        self.broadcast(
            board_id,
            BoardEvent(BoardEventType.USER_JOINED, {"user_id": user_id}, origin=user_id).to_message(),
            exclude=user_id
        )

    async def disconnect(self, board_id: str, user_id: str) -> None:
        peer = self._peers.get(board_id, {}).pop(user_id, None)
        if peer is None:
            return
        await peer.close()
        logger.info(f"协作者离开: board={board_id}, user={user_id}")
        self.broadcast(
            board_id,
            BoardEvent(BoardEventType.USER_LEFT, {"user_id": user_id}, origin=user_id).to_message(),
            exclude=user_id
        )

    def _drop_peer(self, peer: PeerConnection, error: Exception) -> None:
        peers = self._peers.get(peer.board_id, {})
        if peers.get(peer.user_id) is peer:
            peers.pop(peer.user_id)
        logger.warning(f"协作者连接已断开: board={peer.board_id}, user={peer.user_id}, 错误: {str(error)}")

    def broadcast(self, board_id: str, message: Dict[str, Any], exclude: Optional[str] = None) -> None:
        """把消息放入白板上所有协作者的发件箱"""
        for user_id, peer in list(self._peers.get(board_id, {}).items()):
            if user_id != exclude:
                self._deliver(peer, message)

    def send_to(self, board_id: str, user_id: str, message: Dict[str, Any]) -> None:
        """只发给一个协作者，与广播共用同一发件箱以保持顺序"""
        peer = self._peers.get(board_id, {}).get(user_id)
        if peer is not None:
            self._deliver(peer, message)

    def _deliver(self, peer: PeerConnection, message: Dict[str, Any]) -> None:
        try:
            peer.enqueue(message)
        except asyncio.QueueFull:
            peer.cancel()
            self._drop_peer(peer, RuntimeError("待发送消息过多"))

    async def flush(self, board_id: str) -> None:
        """等待白板上所有协作者的发件箱发送完毕"""
        peers = list(self._peers.get(board_id, {}).values())
        await asyncio.gather(*(peer.outbox.join() for peer in peers))

    # ------------------------------------------------------------------
    # 入站消息
    # ------------------------------------------------------------------

    async def handle_message(self, board, user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        处理协作者发来的消息

        Returns:
            需要回复给发送者的消息（没有则为None）
        """
        message_type = data.get("type")
        try:
            if message_type == "ping":
                return {"type": "pong"}

            if message_type == "cursor_move":
                event = BoardEvent(
                    BoardEventType.CURSOR_MOVED,
                    {"user_id": user_id, "x": data.get("x"), "y": data.get("y")},
                    origin=user_id
                )
                self.broadcast(board.id, event.to_message(), exclude=user_id)
                return None

            if message_type == "node_move":
                board.store.update_node_position(
                    self._require(data, "node_id"), float(self._require(data, "x")),
                    float(self._require(data, "y")), origin=user_id
                )
                return None

            if message_type == "node_update":
                board.update_node(
                    self._require(data, "node_id"),
                    title=data.get("title"),
                    payload=data.get("payload"),
                    origin=user_id
                )
                return None

            if message_type == "node_delete":
                board.store.remove_node(self._require(data, "node_id"), origin=user_id)
                return None

            raise ValidationException(f"未知的消息类型: {message_type}", field="type")
        except (TypeError, ValueError) as e:
            return {"type": "error", "message": f"消息参数无效: {str(e)}"}
        except BaseAppException as e:
            logger.info(f"协作消息处理失败: {message_type}, 原因: {e.message}")
            return {"type": "error", "message": e.message, "details": e.details}

    @staticmethod
    def _require(data: Dict[str, Any], key: str) -> Any:
        if data.get(key) is None:
            raise ValidationException(f"缺少字段: {key}", field=key)
        return data[key]
