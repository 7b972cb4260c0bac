"""
实时协作WebSocket路由
"""
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ...core.errors import BoardNotFoundException
from ...core.logging import get_logger
from ...domain.models.node import generate_id

logger = get_logger(__name__)

router = APIRouter(tags=["collaboration"])

# 白板不存在时的关闭码
BOARD_NOT_FOUND_CLOSE_CODE = 4404


@router.websocket("/api/boards/{board_id}/ws")
async def board_websocket(websocket: WebSocket, board_id: str, user_id: Optional[str] = None):
    """
    白板协作通道

    入站消息: ping / cursor_move / node_move / node_update / node_delete
    出站消息: 节点创建/修改/移动/删除、分组与连线变化、光标移动、协作者加入/离开
    """
    registry = websocket.app.state.registry
    try:
        board = registry.get(board_id)
    except BoardNotFoundException:
        await websocket.close(code=BOARD_NOT_FOUND_CLOSE_CODE)
        return

    user_id = user_id or generate_id()
    hub = registry.hub
    await hub.connect(board_id, user_id, websocket)

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                data = None

            if not isinstance(data, dict):
                hub.send_to(board_id, user_id, {"type": "error", "message": "消息必须是JSON对象"})
                continue

            # 回复与广播走同一个发件箱
            reply = await hub.handle_message(board, user_id, data)
            if reply is not None:
                hub.send_to(board_id, user_id, reply)
    except WebSocketDisconnect:
        logger.debug(f"WebSocket断开: board={board_id}, user={user_id}")
    finally:
        await hub.disconnect(board_id, user_id)
