"""
画布交互控制器 - 将指针拖动转换为节点移动
"""
from typing import Optional

from ..core.errors import NodeNotFoundException
from ..core.logging import get_logger
from ..domain.models.node import Position
from .node_store import NodeStore

logger = get_logger(__name__)

_ZERO = Position(x=0, y=0)


class CanvasController:
    """
    单个白板的拖动状态

    同一时间最多拖动一个节点；拖动过程中经过其他节点不会打断当前拖动。
    所有方法都不会抛出异常。
    """

    def __init__(self, store: NodeStore):
        self.store = store
        self.dragged_node_id: Optional[str] = None
        self._offset: Optional[Position] = None

    @property
    def is_dragging(self) -> bool:
        return self.dragged_node_id is not None

    def drag_start(self, node_id: str, pointer: Position, canvas_origin: Position = _ZERO) -> bool:
        """
        开始拖动，记录指针相对节点位置的偏移

        Returns:
            是否开始了新的拖动
        """
        if self.is_dragging:
            return False
        try:
            node = self.store.get_node(node_id)
        except NodeNotFoundException:
            return False

        self.dragged_node_id = node_id
        self._offset = Position(
            x=pointer.x - canvas_origin.x - node.position.x,
            y=pointer.y - canvas_origin.y - node.position.y,
        )
        return True

    def drag_move(self, pointer: Position, canvas_origin: Position = _ZERO) -> Optional[Position]:
        """
        拖动中：新位置 = 指针画布坐标 - 偏移

        Returns:
            节点的新位置；没有拖动或节点已被删除时返回None
        """
        if not self.is_dragging:
            return None

        node_id = self.dragged_node_id
        new_x = pointer.x - canvas_origin.x - self._offset.x
        new_y = pointer.y - canvas_origin.y - self._offset.y
        try:
            return self.store.update_node_position(node_id, new_x, new_y).position
        except NodeNotFoundException:
            logger.debug(f"拖动中的节点已被删除: {node_id}")
            self.drag_end()
            return None

    def drag_end(self) -> None:
        """结束拖动（松开指针或指针离开画布）"""
        self.dragged_node_id = None
        self._offset = None
