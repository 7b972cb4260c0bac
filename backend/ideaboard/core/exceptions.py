"""
异常模块 - 重新导出所有异常类以便于导入
"""

from .errors import (
    # 基础异常
    BaseAppException,
    BusinessException,
    ValidationException,
    NotFoundException,
    ConflictException,
    ServiceException,
    ExternalServiceException,
    ConfigurationException,

    # 业务特定异常
    BoardNotFoundException,
    NodeNotFoundException,
    IngestionException,
    FileTooLargeException,
    MicrophonePermissionException,
    RecordingInProgressException,
    NoActiveRecordingException,
    ContextTooLargeException,
    AssistantUnavailableException,
    MalformedAssistantResponseException,
)

__all__ = [
    # 基础异常
    "BaseAppException",
    "BusinessException",
    "ValidationException",
    "NotFoundException",
    "ConflictException",
    "ServiceException",
    "ExternalServiceException",
    "ConfigurationException",

    # 业务特定异常
    "BoardNotFoundException",
    "NodeNotFoundException",
    "IngestionException",
    "FileTooLargeException",
    "MicrophonePermissionException",
    "RecordingInProgressException",
    "NoActiveRecordingException",
    "ContextTooLargeException",
    "AssistantUnavailableException",
    "MalformedAssistantResponseException",
]
