"""
节点API路由 - 手动添加、文件上传、拖放导入和节点编辑
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ...core.constants import APIConstants, IngestionConstants
from ...core.errors import IngestionException
from ...core.logging import get_logger
from ...core.messages import get_message, MessageKeys
from ...domain.constants import IngestionSource
from ...domain.models.events import IngestionEvent
from ...domain.models.node import ContentNode, Position
from ...domain.schemas.base import ApiResponse
from ...domain.schemas.board import DropRequest, LinkCreate, NodeUpdate, NoteCreate, PositionUpdate
from ...services.board import Board
from ...services.ingestion import IngestionResult, add_link, create_note
from ..deps import api_response, get_board

logger = get_logger(__name__)

router = APIRouter(prefix="/api/boards/{board_id}/nodes", tags=["nodes"])


def _optional_position(x: Optional[float], y: Optional[float]) -> Optional[Position]:
    if x is None or y is None:
        return None
    return Position(x=x, y=y)


@router.post("/note", response_model=ApiResponse[ContentNode], status_code=status.HTTP_201_CREATED)
async def add_note(note: NoteCreate, board: Board = Depends(get_board)):
    """添加文本便签，默认内容为 "New Idea..." """
    node = create_note(
        board.store,
        content=note.content,
        position=_optional_position(note.x, note.y),
        title=note.title or "Note",
    )
    return api_response(node, APIConstants.HTTP_CREATED, get_message(MessageKeys.NODE_CREATED))


@router.post("/link", response_model=ApiResponse[ContentNode], status_code=status.HTTP_201_CREATED)
async def add_link_node(link: LinkCreate, board: Board = Depends(get_board)):
    """添加链接节点"""
    node = add_link(board.store, link.url, position=_optional_position(link.x, link.y))
    return api_response(node, APIConstants.HTTP_CREATED, get_message(MessageKeys.NODE_CREATED))


@router.post("/files", response_model=ApiResponse[IngestionResult], status_code=status.HTTP_201_CREATED)
async def upload_files(
    files: List[UploadFile] = File(...),
    x: Optional[float] = Form(None),
    y: Optional[float] = Form(None),
    board: Board = Depends(get_board),
):
    """
    批量导入文件

    提供x/y时按拖放处理（居中偏移）；否则放在文件选择器的默认位置。
    单个文件失败不会影响同批次的其他文件。
    """
    dropped = _optional_position(x, y)
    if dropped is None:
        default_x, default_y = IngestionConstants.DEFAULT_UPLOAD_POSITION
        anchor = Position(x=default_x, y=default_y)
    else:
        anchor = dropped

    events = []
    for upload in files:
        # 多读一个字节用于判断是否超过大小限制
        data = await upload.read(board.files.max_file_size + 1)
        events.append(IngestionEvent(
            kind=IngestionSource.FILE,
            payload=data,
            mime_type=upload.content_type,
            file_name=upload.filename,
            drop_position=anchor,
        ))

    result = board.files.ingest_batch(events, centered=dropped is not None)
    if not result.created:
        raise IngestionException(
            get_message(MessageKeys.INGESTION_FAILED),
            {"failures": [failure.model_dump() for failure in result.failures]}
        )

    if result.failures:
        message = get_message(MessageKeys.INGESTION_PARTIAL, count=len(result.created), failed=len(result.failures))
    else:
        message = get_message(MessageKeys.INGESTION_COMPLETED, count=len(result.created))
    return api_response(result, APIConstants.HTTP_CREATED, message)


@router.post("/drop", response_model=ApiResponse[ContentNode], status_code=status.HTTP_201_CREATED)
async def drop_content(drop: DropRequest, board: Board = Depends(get_board)):
    """拖放文本或URI（YouTube/TikTok/Instagram/网站链接或普通文本）"""
    if drop.kind == IngestionSource.FILE:
        raise IngestionException("文件请通过 /files 上传")
    node = board.links.ingest(IngestionEvent(
        kind=drop.kind,
        payload=drop.payload,
        mime_type=drop.mime_type,
        drop_position=Position(x=drop.x, y=drop.y),
    ))
    return api_response(node, APIConstants.HTTP_CREATED, get_message(MessageKeys.NODE_CREATED))


@router.get("/{node_id}", response_model=ApiResponse[ContentNode])
async def get_node(node_id: str, board: Board = Depends(get_board)):
    return api_response(board.store.get_node(node_id))


@router.patch("/{node_id}", response_model=ApiResponse[ContentNode])
async def update_node(node_id: str, node_update: NodeUpdate, board: Board = Depends(get_board)):
    """修改节点标题或文本内容（会使助手会话失效）"""
    node = board.update_node(node_id, title=node_update.title, payload=node_update.payload)
    return api_response(node, message=get_message(MessageKeys.NODE_UPDATED))


@router.patch("/{node_id}/position", response_model=ApiResponse[ContentNode])
async def move_node(node_id: str, position: PositionUpdate, board: Board = Depends(get_board)):
    """移动节点（不会使助手会话失效）"""
    node = board.store.update_node_position(node_id, position.x, position.y)
    return api_response(node)


@router.delete("/{node_id}", response_model=ApiResponse[None])
async def delete_node(node_id: str, board: Board = Depends(get_board)):
    board.store.remove_node(node_id)
    return api_response(message=get_message(MessageKeys.NODE_DELETED))
