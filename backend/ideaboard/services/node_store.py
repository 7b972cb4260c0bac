"""
节点存储 - 白板节点、分组和连线的唯一可信来源

所有修改都经过这里：本地拖动、远端协作者和助手动作共用同一组原语，
从而保证分组成员和连线端点始终指向存活的节点。
"""
import threading
from typing import Callable, Dict, Iterable, List, Optional

from ..core.errors import ConflictException, NodeNotFoundException, ValidationException
from ..core.logging import get_logger
from ..domain.constants import BoardEventType, CONTEXT_CHANGING_EVENTS
from ..domain.models.events import BoardEvent
from ..domain.models.node import BoardState, ContentNode, Edge, Group, Position

logger = get_logger(__name__)

BoardListener = Callable[[BoardEvent], None]


class NodeStore:
    """白板的内存节点存储"""

    def __init__(self, board_id: Optional[str] = None):
        self.board_id = board_id
        self._nodes: Dict[str, ContentNode] = {}
        self._groups: Dict[str, Group] = {}
        self._edges: Dict[str, Edge] = {}
        self._revision = 0
        self._listeners: List[BoardListener] = []
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # 订阅
    # ------------------------------------------------------------------

    def subscribe(self, listener: BoardListener) -> Callable[[], None]:
        """注册事件监听器，返回取消订阅函数"""
        with self.lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self.lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: BoardEvent) -> None:
        if event.type in CONTEXT_CHANGING_EVENTS:
            self._revision += 1
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"白板事件监听器执行失败: {event.type.value}, 错误: {str(e)}", exc_info=True)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    @property
    def revision(self) -> int:
        """上下文版本号，每次改变信息内容的修改都会递增"""
        return self._revision

    def get_node(self, node_id: str) -> ContentNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundException(node_id)
        return node

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def list_nodes(self) -> List[ContentNode]:
        """按添加顺序返回全部节点"""
        with self.lock:
            return list(self._nodes.values())

    def groups(self) -> List[Group]:
        with self.lock:
            return list(self._groups.values())

    def edges(self) -> List[Edge]:
        with self.lock:
            return list(self._edges.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def snapshot(self) -> BoardState:
        """获取可序列化的白板快照"""
        with self.lock:
            return BoardState(
                nodes=list(self._nodes.values()),
                groups=list(self._groups.values()),
                edges=list(self._edges.values()),
                revision=self._revision,
            )

    # ------------------------------------------------------------------
    # 节点修改
    # ------------------------------------------------------------------

    def add_node(self, node: ContentNode, origin: Optional[str] = None) -> ContentNode:
        """
        添加一个完整的节点

        Raises:
            ConflictException: 节点ID已存在
            ValidationException: 节点引用了不存在的分组
        """
        with self.lock:
            if node.id in self._nodes:
                raise ConflictException(f"节点已存在: {node.id}", {"node_id": node.id})
            if node.group_id is not None:
                group = self._groups.get(node.group_id)
                if group is None:
                    raise ValidationException(f"分组不存在: {node.group_id}", field="group_id")
                self._groups[group.id] = group.model_copy(
                    update={"member_ids": group.member_ids + (node.id,)}
                )

            self._nodes[node.id] = node
            logger.info(f"添加节点: {node.id}, 类型: {node.kind.value}, 标题: {node.title}")
            self._emit(BoardEvent(BoardEventType.NODE_CREATED, {"node": node.model_dump(mode="json")}, origin=origin))
            return node

    def remove_node(self, node_id: str, origin: Optional[str] = None) -> ContentNode:
        """删除节点，同时移除其分组成员关系和相关连线"""
        with self.lock:
            node = self.get_node(node_id)
            del self._nodes[node_id]

            if node.group_id is not None:
                self._detach_from_group(node_id, node.group_id)

            dropped_edges = [
                edge_id for edge_id, edge in self._edges.items()
                if edge.from_id == node_id or edge.to_id == node_id
            ]
            for edge_id in dropped_edges:
                del self._edges[edge_id]

            logger.info(f"删除节点: {node_id}, 同时移除连线 {len(dropped_edges)} 条")
            self._emit(BoardEvent(
                BoardEventType.NODE_DELETED,
                {"node_id": node_id, "edge_ids": dropped_edges},
                origin=origin
            ))
            return node

    def update_node_position(self, node_id: str, x: float, y: float, origin: Optional[str] = None) -> ContentNode:
        """移动节点；坐标不变时不做任何事，且永远不会使会话失效"""
        with self.lock:
            node = self.get_node(node_id)
            if node.position.x == x and node.position.y == y:
                return node

            updated = node.model_copy(update={"position": Position(x=x, y=y)})
            self._nodes[node_id] = updated
            self._emit(BoardEvent(
                BoardEventType.NODE_MOVED,
                {"node_id": node_id, "x": x, "y": y},
                origin=origin
            ))
            return updated

    def update_node_content(self, node_id: str, payload: str, origin: Optional[str] = None) -> ContentNode:
        """
        修改文本类节点的内容

        Raises:
            NodeNotFoundException: 节点不存在
            ValidationException: 二进制节点的内容不能直接编辑
        """
        with self.lock:
            node = self.get_node(node_id)
            if not node.is_textual:
                raise ValidationException(
                    f"{node.kind.value} 类型节点的内容不可编辑", field="payload"
                )
            if node.payload == payload:
                return node
            return self._replace(node, {"payload": payload}, origin)

    def update_node_title(self, node_id: str, title: str, origin: Optional[str] = None) -> ContentNode:
        with self.lock:
            node = self.get_node(node_id)
            if node.title == title:
                return node
            return self._replace(node, {"title": title}, origin)

    def _replace(self, node: ContentNode, changes: dict, origin: Optional[str]) -> ContentNode:
        updated = node.model_copy(update=changes)
        self._nodes[node.id] = updated
        logger.debug(f"更新节点: {node.id}, 字段: {list(changes)}")
        self._emit(BoardEvent(
            BoardEventType.NODE_UPDATED,
            {"node_id": node.id, "changes": changes},
            origin=origin
        ))
        return updated

    # ------------------------------------------------------------------
    # 分组与连线
    # ------------------------------------------------------------------

    def connect_nodes(self, from_id: str, to_id: str, label: Optional[str] = None,
                      origin: Optional[str] = None) -> Optional[Edge]:
        """
        连接两个节点

        Returns:
            新建的连线；自连接或重复连线返回None
        """
        with self.lock:
            self.get_node(from_id)
            self.get_node(to_id)
            if from_id == to_id:
                return None
            for edge in self._edges.values():
                if edge.from_id == from_id and edge.to_id == to_id:
                    return None

            edge = Edge(from_id=from_id, to_id=to_id, label=label)
            self._edges[edge.id] = edge
            self._emit(BoardEvent(BoardEventType.EDGE_CREATED, {"edge": edge.model_dump(mode="json")}, origin=origin))
            return edge

    def group_nodes(self, node_ids: Iterable[str], origin: Optional[str] = None) -> Group:
        """
        将节点合并为一个新分组

        每个节点最多属于一个分组，已有分组的节点会先从原分组移出，
        移空的分组随之删除。
        """
        with self.lock:
            member_ids = tuple(dict.fromkeys(node_ids))
            if not member_ids:
                raise ValidationException("分组至少需要一个节点", field="node_ids")
            nodes = [self.get_node(node_id) for node_id in member_ids]

            for node in nodes:
                if node.group_id is not None:
                    self._detach_from_group(node.id, node.group_id)

            group = Group(member_ids=member_ids)
            self._groups[group.id] = group
            for node in nodes:
                self._nodes[node.id] = node.model_copy(update={"group_id": group.id})

            logger.info(f"创建分组: {group.id}, 成员数: {len(member_ids)}")
            self._emit(BoardEvent(
                BoardEventType.GROUP_CHANGED,
                {"group_id": group.id, "member_ids": list(member_ids)},
                origin=origin
            ))
            return group

    def ungroup_nodes(self, node_ids: Iterable[str], origin: Optional[str] = None) -> List[str]:
        """
        将节点移出各自的分组

        Returns:
            实际被移出分组的节点ID
        """
        with self.lock:
            nodes = [self.get_node(node_id) for node_id in dict.fromkeys(node_ids)]
            released = []
            for node in nodes:
                if node.group_id is None:
                    continue
                self._detach_from_group(node.id, node.group_id)
                self._nodes[node.id] = node.model_copy(update={"group_id": None})
                released.append(node.id)

            if released:
                self._emit(BoardEvent(
                    BoardEventType.GROUP_CHANGED,
                    {"group_id": None, "member_ids": released},
                    origin=origin
                ))
            return released

    def _detach_from_group(self, node_id: str, group_id: str) -> None:
        group = self._groups.get(group_id)
        if group is None:
            return
        remaining = tuple(member for member in group.member_ids if member != node_id)
        if remaining:
            self._groups[group_id] = group.model_copy(update={"member_ids": remaining})
        else:
            del self._groups[group_id]
            logger.debug(f"分组已清空并删除: {group_id}")
