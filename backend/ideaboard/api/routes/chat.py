"""
助手对话API路由
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...core.logging import get_logger
from ...core.messages import get_message, MessageKeys
from ...domain.models.context import InlinePart, SerializedContext
from ...domain.schemas.base import ApiResponse
from ...domain.schemas.board import ChatRequest, ContextBlockPreview, ContextPreview
from ...services.board import Board, BoardChatResult
from ..deps import api_response, get_board

logger = get_logger(__name__)

router = APIRouter(prefix="/api/boards/{board_id}", tags=["chat"])


def _preview(context: SerializedContext) -> ContextPreview:
    """生成上下文预览，内联数据只保留类型和大小"""
    blocks = []
    for block in context.blocks:
        body = block.body
        if body is None:
            preview = ContextBlockPreview(node_id=block.node_id, header=block.header, size=block.size)
        elif isinstance(body, InlinePart):
            preview = ContextBlockPreview(
                node_id=block.node_id, header=block.header, body_type=body.type,
                mime_type=body.mime_type, size=block.size,
            )
        else:
            preview = ContextBlockPreview(
                node_id=block.node_id, header=block.header, body_type=body.type,
                text=body.text, size=block.size,
            )
        blocks.append(preview)
    return ContextPreview(
        blocks=blocks,
        total_bytes=context.total_bytes,
        omitted_node_ids=context.omitted_node_ids,
    )


@router.get("/context", response_model=ApiResponse[ContextPreview])
async def get_context(board: Board = Depends(get_board)):
    """预览下一次初始化会话时发送给助手的上下文"""
    return api_response(_preview(board.serializer.serialize()))


@router.get("/chat", response_model=ApiResponse[Dict[str, Any]])
async def get_chat_session(board: Board = Depends(get_board)):
    """获取助手会话状态和欢迎语"""
    return api_response({
        "state": board.session.state.value,
        "welcome": get_message(MessageKeys.ASSISTANT_WELCOME),
    })


@router.post("/chat", response_model=ApiResponse[BoardChatResult])
async def chat(chat_request: ChatRequest, board: Board = Depends(get_board)):
    """
    向助手提问

    助手返回的动作按顺序应用到白板；引用已删除节点的动作项会被跳过并在report中列出。
    通信失败、上下文过大等情况通过 reply.status 区分，而不是HTTP错误。
    """
    result = await board.ask(chat_request.message)
    logger.info(
        f"助手回复: board={board.id}, status={result.reply.status}, "
        f"动作={len(result.reply.actions)}, 跳过={len(result.report.skipped)}"
    )
    return api_response(result, message=get_message(MessageKeys.SUCCESS))
