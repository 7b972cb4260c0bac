"""
API路由模块
"""
from fastapi import APIRouter

from . import boards, nodes, recording, canvas, chat, insights, collaboration

# 创建主路由器
api_router = APIRouter()

# 包含各个模块的路由
api_router.include_router(boards.router)
api_router.include_router(nodes.router)
api_router.include_router(recording.router)
api_router.include_router(canvas.router)
api_router.include_router(chat.router)
api_router.include_router(insights.router)
api_router.include_router(collaboration.router)

__all__ = ["api_router"]
