"""
API依赖 - 定义API路由需要的依赖
"""
from typing import Optional, TypeVar

from fastapi import Depends, Request

from ..core.constants import APIConstants
from ..core.messages import get_message, MessageKeys
from ..domain.schemas.base import ApiResponse
from ..services.board import Board, BoardRegistry

T = TypeVar('T')


def api_response(data: Optional[T] = None, code: int = APIConstants.HTTP_OK,
                 message: Optional[str] = None) -> ApiResponse[T]:
    """
    创建标准API响应

    Args:
        data: 响应数据
        code: 状态码，默认200
        message: 响应消息，默认使用通用成功消息

    Returns:
        标准API响应
    """
    return ApiResponse(
        success=code < 400,
        code=code,
        message=message or get_message(MessageKeys.SUCCESS),
        data=data
    )


def get_registry(request: Request) -> BoardRegistry:
    """获取应用的白板注册表"""
    return request.app.state.registry


def get_board(board_id: str, registry: BoardRegistry = Depends(get_registry)) -> Board:
    """按路径参数获取白板，不存在时抛出BoardNotFoundException"""
    return registry.get(board_id)
