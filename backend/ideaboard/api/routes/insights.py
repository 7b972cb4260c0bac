"""
白板摘要、连线建议和快照API路由
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from ...core.constants import APIConstants
from ...core.logging import get_logger
from ...core.messages import get_message, MessageKeys
from ...domain.schemas.base import ApiResponse
from ...domain.schemas.board import (
    BoardInsightSummary, BoardSnapshot, ConnectionSuggestion, SnapshotCreate,
)
from ...services.board import Board
from ..deps import api_response, get_board

logger = get_logger(__name__)

router = APIRouter(prefix="/api/boards/{board_id}", tags=["insights"])


@router.get("/summary", response_model=ApiResponse[BoardInsightSummary])
async def get_summary(board: Board = Depends(get_board)):
    """请助手概括白板内容"""
    return api_response(await board.insights.summarize())


@router.get("/suggestions/connections", response_model=ApiResponse[List[ConnectionSuggestion]])
async def suggest_connections(board: Board = Depends(get_board)):
    """获取连线建议，建议不会写入白板"""
    suggestions = await board.insights.suggest_connections()
    logger.info(f"连线建议: board={board.id}, 数量={len(suggestions)}")
    return api_response(suggestions)


@router.post("/snapshot", response_model=ApiResponse[BoardSnapshot], status_code=status.HTTP_201_CREATED)
async def create_snapshot(snapshot_create: Optional[SnapshotCreate] = None, board: Board = Depends(get_board)):
    """保存白板当前状态的快照"""
    created_by = snapshot_create.created_by if snapshot_create else None
    snapshot = board.create_snapshot(created_by)
    return api_response(snapshot, APIConstants.HTTP_CREATED, get_message(MessageKeys.SNAPSHOT_CREATED))


@router.get("/snapshots", response_model=ApiResponse[List[BoardSnapshot]])
async def list_snapshots(board: Board = Depends(get_board)):
    return api_response(list(board.snapshots))
