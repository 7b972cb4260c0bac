"""
错误处理模块 - 定义自定义异常和错误处理器
"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .constants import APIConstants

class BaseAppException(Exception):
    """应用基础异常类"""
    def __init__(
        self,
        message: str,
        status_code: int = APIConstants.HTTP_INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class BusinessException(BaseAppException):
    """业务逻辑异常"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, APIConstants.HTTP_BAD_REQUEST, details)

class ValidationException(BusinessException):
    """数据验证异常"""
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        if field:
            details = details or {}
            details["field"] = field
        super().__init__(message, details)

class NotFoundException(BaseAppException):
    """资源未找到异常"""
    def __init__(self, message: str = "资源不存在", resource_type: Optional[str] = None, resource_id: Optional[str] = None):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message, APIConstants.HTTP_NOT_FOUND, details)

class ConflictException(BaseAppException):
    """资源冲突异常"""
    def __init__(self, message: str = "资源冲突", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, APIConstants.HTTP_CONFLICT, details)

class ServiceException(BaseAppException):
    """服务异常"""
    def __init__(self, message: str = "服务异常", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, APIConstants.HTTP_INTERNAL_ERROR, details)

class ExternalServiceException(ServiceException):
    """外部服务异常"""
    def __init__(self, service_name: str, message: str = "外部服务异常", details: Optional[Dict[str, Any]] = None):
        details = details or {}
        details["service_name"] = service_name
        super().__init__(message, details)

class ConfigurationException(ServiceException):
    """配置异常"""
    def __init__(self, message: str = "配置错误", config_key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details)

# 业务特定异常

class BoardNotFoundException(NotFoundException):
    """白板未找到异常"""
    def __init__(self, board_id: str):
        super().__init__(f"白板 {board_id} 不存在", "board", board_id)

class NodeNotFoundException(NotFoundException):
    """节点未找到异常"""
    def __init__(self, node_id: str):
        super().__init__(f"节点 {node_id} 不存在", "node", node_id)
        self.node_id = node_id

class IngestionException(BusinessException):
    """内容导入失败（文件不可读、链接格式错误等）"""
    pass

class FileTooLargeException(ValidationException):
    """文件过大异常"""
    def __init__(self, file_size: int, max_size: int):
        super().__init__(
            f"文件大小 {file_size} 字节超过限制 {max_size} 字节",
            details={"file_size": file_size, "max_size": max_size}
        )

class MicrophonePermissionException(IngestionException):
    """麦克风权限被拒绝"""
    def __init__(self, message: str = "无法访问麦克风，请确认已授予权限"):
        super().__init__(message, {"reason": "permission_denied"})

class RecordingInProgressException(ConflictException):
    """同一白板已有录音在进行"""
    def __init__(self, board_id: str):
        super().__init__(f"白板 {board_id} 已有录音正在进行", {"board_id": board_id})

class NoActiveRecordingException(ConflictException):
    """没有正在进行的录音"""
    def __init__(self, board_id: str):
        super().__init__(f"白板 {board_id} 没有正在进行的录音", {"board_id": board_id})

class ContextTooLargeException(BaseAppException):
    """序列化后的白板上下文超过允许的大小"""
    def __init__(self, size: int, max_size: int):
        super().__init__(
            f"白板上下文大小 {size} 字节超过限制 {max_size} 字节",
            APIConstants.HTTP_PAYLOAD_TOO_LARGE,
            {"size": size, "max_size": max_size}
        )

class AssistantUnavailableException(ExternalServiceException):
    """AI助手通信失败（网络、超时、配额）"""
    def __init__(self, message: str = "AI助手暂时不可用", details: Optional[Dict[str, Any]] = None):
        super().__init__("assistant", message, details)
        self.status_code = APIConstants.HTTP_SERVICE_UNAVAILABLE

class MalformedAssistantResponseException(ServiceException):
    """助手返回的动作列表无法解析"""
    def __init__(self, message: str = "助手返回的动作格式不正确", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)

# 异常处理器

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

async def base_exception_handler(request: Request, exc: BaseAppException):
    """基础异常处理器"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "code": exc.status_code,
            "message": exc.message,
            "details": exc.details,
            "timestamp": _now_iso(),
            "path": str(request.url.path)
        }
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """验证异常处理器"""
    return JSONResponse(
        status_code=APIConstants.HTTP_BAD_REQUEST,
        content={
            "success": False,
            "code": APIConstants.HTTP_BAD_REQUEST,
            "message": "请求参数验证失败",
            "details": {"validation_errors": jsonable_encoder(exc.errors())},
            "timestamp": _now_iso(),
            "path": str(request.url.path)
        }
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """HTTP异常处理器"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "code": exc.status_code,
            "message": exc.detail,
            "timestamp": _now_iso(),
            "path": str(request.url.path)
        }
    )

def register_exception_handlers(app):
    """注册异常处理器"""
    app.add_exception_handler(BaseAppException, base_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
