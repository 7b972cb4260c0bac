"""
日志管理系统

提供统一的日志配置、结构化日志、敏感信息脱敏等功能。
"""
import logging
import logging.config
import sys
import json
import re
import traceback
from pathlib import Path
from typing import Dict, Any
from datetime import datetime

from .config import get_settings
from .constants import LoggingConstants, ServerConstants


class SensitiveDataFilter(logging.Filter):
    """敏感信息过滤器"""

    SENSITIVE_PATTERNS = [
        (re.compile(r'token["\']?\s*[:=]\s*["\']?([^"\'}\s,]+)', re.IGNORECASE), 'token'),
        (re.compile(r'api_key["\']?\s*[:=]\s*["\']?([^"\'}\s,]+)', re.IGNORECASE), 'api_key'),
        (re.compile(r'key=([A-Za-z0-9_\-]{20,})', re.IGNORECASE), 'key'),
        (re.compile(r'secret["\']?\s*[:=]\s*["\']?([^"\'}\s,]+)', re.IGNORECASE), 'secret'),
        (re.compile(r'authorization:\s*bearer\s+([^\s]+)', re.IGNORECASE), 'auth_token'),
    ]

    def filter(self, record):
        """过滤敏感信息"""
        if isinstance(record.msg, str):
            record.msg = self._mask_sensitive_data(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self._mask_sensitive_data(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True

    def _mask_sensitive_data(self, text: str) -> str:
        """脱敏敏感数据"""
        for pattern, field_type in self.SENSITIVE_PATTERNS:
            text = pattern.sub(lambda m: f'{field_type}=***masked***', text)
        return text


class StructuredFormatter(logging.Formatter):
    """结构化日志格式化器"""

    def format(self, record):
        """格式化日志记录"""
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        # 添加额外的结构化数据
        if hasattr(record, 'extra_data'):
            log_entry.update(record.extra_data)

        # 添加异常信息
        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        # 添加请求上下文（如果存在）
        for attr in ['request_id', 'board_id', 'node_id']:
            if hasattr(record, attr):
                log_entry[attr] = getattr(record, attr)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def _rotating_handler(filename: Path, level: str, formatter: str) -> Dict[str, Any]:
    """按大小轮转的文件处理器配置"""
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": str(filename),
        "maxBytes": LoggingConstants.MAX_LOG_FILE_SIZE,
        "backupCount": LoggingConstants.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": ["sensitive_filter"],
    }


def get_logging_config() -> Dict[str, Any]:
    """
    获取日志配置

    ideaboard 下的普通日志写入 app.log / error.log；
    StructuredLogger 记录的白板事件、请求和助手调用以JSON行写入 board_events.log。
    """
    settings = get_settings()
    log_level = settings.LOG_LEVEL.upper()
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "default",
            "stream": sys.stdout,
            "filters": ["sensitive_filter"],
        },
        "file": _rotating_handler(log_dir / "app.log", "INFO", "detailed"),
        "error_file": _rotating_handler(log_dir / "error.log", "ERROR", "detailed"),
        "event_file": _rotating_handler(log_dir / LoggingConstants.EVENT_LOG_FILE, "INFO", "structured"),
    }

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": LoggingConstants.LOG_FORMAT,
                "datefmt": LoggingConstants.LOG_DATE_FORMAT,
            },
            "detailed": {
                "format": LoggingConstants.DETAILED_LOG_FORMAT,
                "datefmt": LoggingConstants.LOG_DATE_FORMAT,
            },
            "structured": {"()": StructuredFormatter},
        },
        "filters": {
            "sensitive_filter": {"()": SensitiveDataFilter},
        },
        "handlers": handlers,
        "loggers": {
            "ideaboard": {
                "level": log_level,
                "handlers": ["console", "file", "error_file"],
                "propagate": False,
            },
            LoggingConstants.EVENT_LOGGER: {
                "level": "INFO",
                "handlers": ["event_file"],
                "propagate": True,
            },
            "uvicorn.access": {
                "level": "WARNING" if settings.ENVIRONMENT == ServerConstants.PRODUCTION else "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }

    # 生产环境控制台也输出JSON
    if settings.ENVIRONMENT == ServerConstants.PRODUCTION:
        handlers["console"]["formatter"] = "structured"

    return config


def setup_logging() -> None:
    """设置日志配置"""
    settings = get_settings()
    logging.config.dictConfig(get_logging_config())

    # 降低第三方库的日志级别
    for noisy in ("httpx", "google", "grpc"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger("ideaboard")
    logger.info(f"日志系统初始化完成 - 环境: {settings.ENVIRONMENT}, 级别: {settings.LOG_LEVEL}")


def get_logger(name: str) -> logging.Logger:
    """获取指定名称的logger"""
    if name.startswith("ideaboard."):
        return logging.getLogger(name)
    return logging.getLogger(f"ideaboard.{name}")


class StructuredLogger:
    """
    结构化日志记录器

    记录写入 ideaboard.events.<name>，附带的字段由 StructuredFormatter 展开为JSON。
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"{LoggingConstants.EVENT_LOGGER}.{name}")

    def log_with_context(self, level: int, message: str, **context) -> None:
        """带上下文的日志记录"""
        extra_data = {
            'event_type': context.pop('event_type', 'general'),
            **{key: value for key, value in context.items() if value is not None}
        }
        self.logger.log(level, message, extra={'extra_data': extra_data})

    def log_request(self, method: str, path: str, **kwargs) -> None:
        self.log_with_context(
            logging.INFO,
            f"请求开始: {method} {path}",
            event_type="request_start",
            http_method=method,
            path=path,
            **kwargs
        )

    def log_response(self, status_code: int, duration: float, **kwargs) -> None:
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        self.log_with_context(
            level,
            f"请求完成: {status_code} - 耗时: {duration*1000:.1f}ms",
            event_type="request_end",
            status_code=status_code,
            duration_ms=round(duration * 1000, 1),
            **kwargs
        )

    def log_assistant_call(self, provider: str, model: str, duration: float, success: bool = True, **kwargs) -> None:
        """记录一次对AI协作方的调用"""
        outcome = "成功" if success else "失败"
        self.log_with_context(
            logging.INFO if success else logging.WARNING,
            f"助手调用{outcome}: {provider}/{model} - 耗时: {duration*1000:.1f}ms",
            event_type="assistant_call",
            provider=provider,
            model=model,
            duration_ms=round(duration * 1000, 1),
            success=success,
            **kwargs
        )

    def log_board_event(self, event: str, board_id: str, **kwargs) -> None:
        """记录白板事件（创建、导入、助手回合等）"""
        self.log_with_context(
            logging.INFO,
            f"白板事件: {event} - board:{board_id}",
            event_type="board_event",
            board_event=event,
            board_id=board_id,
            **kwargs
        )

    def log_error(self, error: Exception, context: Dict[str, Any] = None, **kwargs) -> None:
        error_context = {
            'event_type': 'error',
            'error_type': type(error).__name__,
            'error_message': str(error),
            **(context or {}),
            **kwargs
        }

        self.logger.error(
            f"错误发生: {type(error).__name__}: {str(error)}",
            exc_info=True,
            extra={'extra_data': error_context}
        )
