"""
录音API路由
"""
from fastapi import APIRouter, Depends, Request, status

from ...core.constants import APIConstants
from ...core.messages import get_message, MessageKeys
from ...domain.models.node import ContentNode
from ...domain.schemas.base import ApiResponse
from ...domain.schemas.board import RecordingStart, RecordingStatus
from ...services.board import Board
from ..deps import api_response, get_board

router = APIRouter(prefix="/api/boards/{board_id}/recording", tags=["recording"])


@router.post("/start", response_model=ApiResponse[RecordingStatus])
async def start_recording(recording: RecordingStart, board: Board = Depends(get_board)):
    """开始录音；同一白板已有录音时返回409"""
    board.audio.start(recording.mime_type)
    return api_response(
        RecordingStatus(is_recording=True, buffered_bytes=0),
        message=get_message(MessageKeys.RECORDING_STARTED)
    )


@router.post("/chunk", response_model=ApiResponse[RecordingStatus])
async def append_recording_chunk(request: Request, board: Board = Depends(get_board)):
    """追加音频数据（请求体为原始字节），超过上传限制时录音被丢弃"""
    buffered = board.audio.buffered_bytes
    async for piece in request.stream():
        buffered = board.audio.append_chunk(piece)
    return api_response(RecordingStatus(is_recording=True, buffered_bytes=buffered))


@router.post("/stop", response_model=ApiResponse[ContentNode], status_code=status.HTTP_201_CREATED)
async def stop_recording(board: Board = Depends(get_board)):
    """停止录音并创建音频节点"""
    node = board.audio.stop()
    return api_response(node, APIConstants.HTTP_CREATED, get_message(MessageKeys.RECORDING_SAVED))


@router.post("/cancel", response_model=ApiResponse[RecordingStatus])
async def cancel_recording(board: Board = Depends(get_board)):
    board.audio.cancel()
    return api_response(
        RecordingStatus(is_recording=False),
        message=get_message(MessageKeys.RECORDING_CANCELLED)
    )
