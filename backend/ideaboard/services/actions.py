"""
助手动作应用 - 按助手给出的顺序把动作写入节点存储

引用了不存在节点的动作项只跳过该项并记录差异，同批次的其他动作照常应用。
"""
from typing import Callable, Dict, List, Sequence, Type

from ..core.constants import WhiteboardConstants
from ..core.logging import get_logger, StructuredLogger
from ..domain.constants import NodeKind
from ..domain.models.actions import (
    AssistantAction, ConnectNodesAction, CreateNotesAction, DeleteNodesAction,
    GroupNodesAction, OrganizeLayoutAction, UngroupNodesAction,
)
from ..domain.models.assistant import ApplyReport, Discrepancy
from ..domain.models.node import ContentNode, Position
from .node_store import NodeStore

logger = get_logger(__name__)
structured_logger = StructuredLogger("services.actions")

ASSISTANT_ORIGIN = "assistant"


class ActionApplier:
    """将解析后的助手动作应用到节点存储"""

    def __init__(self, store: NodeStore, origin: str = ASSISTANT_ORIGIN):
        self.store = store
        self.origin = origin
        self._placed = 0
        self._handlers: Dict[Type, Callable] = {
            CreateNotesAction: self._create_notes,
            OrganizeLayoutAction: self._organize_layout,
            ConnectNodesAction: self._connect_nodes,
            DeleteNodesAction: self._delete_nodes,
            GroupNodesAction: self._group_nodes,
            UngroupNodesAction: self._ungroup_nodes,
        }

    def apply(self, actions: Sequence[AssistantAction]) -> ApplyReport:
        """
        依次应用动作

        整个批次在存储锁内执行，其他修改不会穿插在同一批动作之间。
        """
        report = ApplyReport()
        self._placed = 0
        with self.store.lock:
            for action in actions:
                handler = self._handlers[type(action)]
                handler(action, report)

        if report.skipped:
            logger.warning(f"助手动作部分跳过: 应用 {report.applied} 项, 跳过 {len(report.skipped)} 项")
        structured_logger.log_board_event(
            "assistant_actions_applied",
            self.store.board_id,
            applied=report.applied,
            skipped=len(report.skipped),
        )
        return report

    def _missing(self, node_ids: Sequence[str]) -> List[str]:
        return [node_id for node_id in node_ids if not self.store.has_node(node_id)]

    def _skip(self, report: ApplyReport, action: str, node_ids: List[str], reason: str) -> None:
        logger.info(f"跳过助手动作 {action}: {reason}, 节点: {node_ids}")
        report.skipped.append(Discrepancy(action=action, node_ids=node_ids, reason=reason))

    def _next_default_position(self) -> Position:
        origin_x, origin_y = WhiteboardConstants.ASSISTANT_NOTE_ORIGIN
        step = WhiteboardConstants.ASSISTANT_NOTE_CASCADE * self._placed
        self._placed += 1
        return Position(x=origin_x + step, y=origin_y + step)

    def _create_notes(self, action: CreateNotesAction, report: ApplyReport) -> None:
        for note_spec in action.notes:
            if note_spec.x is not None and note_spec.y is not None:
                position = Position(x=note_spec.x, y=note_spec.y)
            else:
                position = self._next_default_position()
            node = ContentNode(
                kind=NodeKind.TEXT,
                title=note_spec.title or "Note",
                payload=note_spec.content,
                color=note_spec.color,
                position=position,
            )
            self.store.add_node(node, origin=self.origin)
            report.created_node_ids.append(node.id)
            report.applied += 1

    def _organize_layout(self, action: OrganizeLayoutAction, report: ApplyReport) -> None:
        for move in action.moves:
            if not self.store.has_node(move.id):
                self._skip(report, action.action, [move.id], "node_not_found")
                continue
            self.store.update_node_position(move.id, move.x, move.y, origin=self.origin)
            report.applied += 1

    def _connect_nodes(self, action: ConnectNodesAction, report: ApplyReport) -> None:
        for connection in action.connections:
            missing = self._missing([connection.from_id, connection.to_id])
            if missing:
                self._skip(report, action.action, missing, "node_not_found")
                continue
            edge = self.store.connect_nodes(
                connection.from_id, connection.to_id, connection.label, origin=self.origin
            )
            if edge is None:
                self._skip(report, action.action, [connection.from_id, connection.to_id], "duplicate_connection")
                continue
            report.applied += 1

    def _delete_nodes(self, action: DeleteNodesAction, report: ApplyReport) -> None:
        for node_id in dict.fromkeys(action.node_ids):
            if not self.store.has_node(node_id):
                self._skip(report, action.action, [node_id], "node_not_found")
                continue
            self.store.remove_node(node_id, origin=self.origin)
            report.deleted_node_ids.append(node_id)
            report.applied += 1

    def _group_nodes(self, action: GroupNodesAction, report: ApplyReport) -> None:
        node_ids = list(dict.fromkeys(action.node_ids))
        missing = self._missing(node_ids)
        if missing:
            self._skip(report, action.action, missing, "node_not_found")
        live_ids = [node_id for node_id in node_ids if node_id not in missing]
        if len(live_ids) < 2:
            if live_ids:
                self._skip(report, action.action, live_ids, "too_few_nodes")
            return
        self.store.group_nodes(live_ids, origin=self.origin)
        report.applied += 1

    def _ungroup_nodes(self, action: UngroupNodesAction, report: ApplyReport) -> None:
        node_ids = list(dict.fromkeys(action.node_ids))
        missing = self._missing(node_ids)
        if missing:
            self._skip(report, action.action, missing, "node_not_found")
        live_ids = [node_id for node_id in node_ids if node_id not in missing]
        if not live_ids:
            return
        self.store.ungroup_nodes(live_ids, origin=self.origin)
        report.applied += 1
