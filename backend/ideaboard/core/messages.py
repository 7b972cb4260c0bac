"""
消息管理模块 - 统一管理所有用户可见的消息，支持国际化
"""
import json
import os
from typing import Dict, Optional
from enum import Enum

from .logging import get_logger

logger = get_logger(__name__)

class Language(str, Enum):
    """支持的语言"""
    ZH_CN = "zh_CN"
    EN_US = "en_US"

class MessageManager:
    """消息管理器"""

    def __init__(self, default_language: Language = Language.EN_US):
        self.default_language = default_language
        self.messages: Dict[str, Dict[str, str]] = {}
        self._load_messages()

    def _load_messages(self):
        """加载消息文件"""
        messages_dir = os.path.join(os.path.dirname(__file__), "..", "config", "messages")

        for language in Language:
            message_file = os.path.join(messages_dir, f"{language.value}.json")
            try:
                with open(message_file, 'r', encoding='utf-8') as f:
                    self.messages[language.value] = json.load(f)
            except FileNotFoundError:
                logger.warning(f"消息文件不存在: {message_file}")
                self.messages[language.value] = {}
            except json.JSONDecodeError as e:
                logger.error(f"加载消息文件失败 {message_file}: {str(e)}")
                self.messages[language.value] = {}

    def get(self, key: str, language: Optional[Language] = None, **kwargs) -> str:
        """获取消息"""
        lang = language or self.default_language

        # 处理嵌套键（如 "common.success"）
        def get_nested_value(data: dict, key_path: str):
            value = data
            for k in key_path.split('.'):
                if isinstance(value, dict) and k in value:
                    value = value[k]
                else:
                    return None
            return value

        # 尝试获取指定语言的消息
        message = get_nested_value(self.messages.get(lang.value, {}), key)

        # 如果没有找到，尝试默认语言
        if not message and lang != self.default_language:
            message = get_nested_value(self.messages.get(self.default_language.value, {}), key)

        # 如果还是没有找到，返回key本身
        if not message:
            logger.warning(f"消息键未找到: {key}")
            return key

        # 格式化消息
        try:
            return message.format(**kwargs)
        except (KeyError, IndexError) as e:
            logger.error(f"消息格式化失败 {key}: {str(e)}")
            return message

# 全局消息管理器实例
_message_manager = None

def get_message_manager() -> MessageManager:
    """获取消息管理器实例"""
    global _message_manager
    if _message_manager is None:
        from .config import get_settings
        _message_manager = MessageManager(Language(get_settings().DEFAULT_LANGUAGE))
    return _message_manager

def get_message(key: str, language: Optional[Language] = None, **kwargs) -> str:
    """获取消息的便捷函数"""
    return get_message_manager().get(key, language, **kwargs)

class MessageKeys:
    """消息键常量"""
    # 通用
    SUCCESS = "common.success"
    INTERNAL_ERROR = "common.internal_error"

    # 白板
    BOARD_CREATED = "board.created"
    BOARD_UPDATED = "board.updated"
    BOARD_DELETED = "board.deleted"

    # 节点
    NODE_CREATED = "node.created"
    NODE_UPDATED = "node.updated"
    NODE_DELETED = "node.deleted"

    # 导入
    INGESTION_COMPLETED = "ingestion.completed"
    INGESTION_PARTIAL = "ingestion.partial"
    INGESTION_FAILED = "ingestion.failed"
    RECORDING_STARTED = "recording.started"
    RECORDING_SAVED = "recording.saved"
    RECORDING_CANCELLED = "recording.cancelled"

    # 助手
    ASSISTANT_WELCOME = "assistant.welcome"
    ASSISTANT_UNAVAILABLE = "assistant.unavailable"
    ASSISTANT_NO_RESPONSE = "assistant.no_response"
    ASSISTANT_MALFORMED = "assistant.malformed"
    ASSISTANT_CONTEXT_TOO_LARGE = "assistant.context_too_large"
    ASSISTANT_SUPERSEDED = "assistant.superseded"

    # 洞察与快照
    INSIGHT_SUMMARY_EMPTY = "insight.summary_empty"
    SNAPSHOT_CREATED = "snapshot.created"
