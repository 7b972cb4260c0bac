"""
白板API路由
"""
from typing import List

from fastapi import APIRouter, Depends, status

from ...core.constants import APIConstants
from ...core.logging import get_logger
from ...core.messages import get_message, MessageKeys
from ...domain.schemas.base import ApiResponse
from ...domain.schemas.board import BoardCreate, BoardDetail, BoardSummary, BoardUpdate
from ...services.board import Board, BoardRegistry
from ..deps import api_response, get_board, get_registry

logger = get_logger(__name__)

router = APIRouter(prefix="/api/boards", tags=["boards"])


@router.post("", response_model=ApiResponse[BoardSummary], status_code=status.HTTP_201_CREATED)
async def create_board(board_create: BoardCreate, registry: BoardRegistry = Depends(get_registry)):
    """创建白板"""
    board = registry.create(board_create.title)
    logger.info(f"创建白板: {board.id}, 标题: {board.title}")
    return api_response(board.summary(), APIConstants.HTTP_CREATED, get_message(MessageKeys.BOARD_CREATED))


@router.get("", response_model=ApiResponse[List[BoardSummary]])
async def list_boards(registry: BoardRegistry = Depends(get_registry)):
    """获取全部白板"""
    return api_response([board.summary() for board in registry.list_boards()])


@router.get("/{board_id}", response_model=ApiResponse[BoardSummary])
async def get_board_summary(board: Board = Depends(get_board)):
    return api_response(board.summary())


@router.patch("/{board_id}", response_model=ApiResponse[BoardSummary])
async def update_board(board_id: str, board_update: BoardUpdate, registry: BoardRegistry = Depends(get_registry)):
    """重命名白板"""
    board = registry.rename(board_id, board_update.title)
    return api_response(board.summary(), message=get_message(MessageKeys.BOARD_UPDATED))


@router.delete("/{board_id}", response_model=ApiResponse[None])
async def delete_board(board_id: str, registry: BoardRegistry = Depends(get_registry)):
    """删除白板及其全部节点"""
    registry.delete(board_id)
    logger.info(f"删除白板: {board_id}")
    return api_response(message=get_message(MessageKeys.BOARD_DELETED))


@router.get("/{board_id}/state", response_model=ApiResponse[BoardDetail])
async def get_board_state(board: Board = Depends(get_board)):
    """
    获取白板完整状态

    包含节点、分组、连线、上下文版本号、录音状态和助手会话状态。
    """
    return api_response(board.detail())
