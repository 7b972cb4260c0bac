"""
画布拖动API路由
"""
from fastapi import APIRouter, Depends

from ...domain.schemas.base import ApiResponse
from ...domain.schemas.board import DragMove, DragStart, DragState
from ...services.board import Board
from ..deps import api_response, get_board

router = APIRouter(prefix="/api/boards/{board_id}/canvas", tags=["canvas"])


def _drag_state(board: Board, position=None) -> DragState:
    return DragState(
        dragging=board.canvas.is_dragging,
        node_id=board.canvas.dragged_node_id,
        position=position,
    )


@router.post("/drag-start", response_model=ApiResponse[DragState])
async def drag_start(drag: DragStart, board: Board = Depends(get_board)):
    board.canvas.drag_start(drag.node_id, drag.pointer, drag.canvas_origin)
    return api_response(_drag_state(board))


@router.post("/drag-move", response_model=ApiResponse[DragState])
async def drag_move(drag: DragMove, board: Board = Depends(get_board)):
    position = board.canvas.drag_move(drag.pointer, drag.canvas_origin)
    return api_response(_drag_state(board, position))


@router.post("/drag-end", response_model=ApiResponse[DragState])
async def drag_end(board: Board = Depends(get_board)):
    board.canvas.drag_end()
    return api_response(_drag_state(board))
