"""
配置模块 - 提供应用配置和环境变量处理
"""
from functools import lru_cache
from typing import Optional
import logging

from pydantic_settings import BaseSettings

from .constants import IngestionConstants, LLMConstants, ServerConstants

# 设置日志记录器
logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    """应用配置"""
    # 应用设置
    APP_NAME: str = "Idea Board"
    APP_DESCRIPTION: str = "Infinite whiteboard with an AI creative assistant"
    ENVIRONMENT: str = ServerConstants.DEVELOPMENT
    DEBUG: bool = False

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # 用户可见消息的默认语言: "en_US" 或 "zh_CN"
    DEFAULT_LANGUAGE: str = "en_US"

    # LLM配置
    LLM_PROVIDER: str = "gemini"  # 可选值: "gemini", "none"
    GEMINI_API_KEY: Optional[str] = None
    WHITEBOARD_MODEL: str = LLMConstants.DEFAULT_MODEL
    WHITEBOARD_TEMPERATURE: float = LLMConstants.DEFAULT_TEMPERATURE
    ASSISTANT_TIMEOUT_SECONDS: float = LLMConstants.DEFAULT_TIMEOUT_SECONDS

    # 上下文与上传限制
    MAX_CONTEXT_BYTES: int = LLMConstants.DEFAULT_MAX_CONTEXT_BYTES
    MAX_UPLOAD_BYTES: int = IngestionConstants.MAX_FILE_SIZE_BYTES

    class Config:
        """Pydantic配置"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # 允许额外字段，避免验证错误

@lru_cache()
def get_settings() -> Settings:
    """获取应用配置单例"""
    settings = Settings()
    logger.info(f"加载配置: LLM提供商={settings.LLM_PROVIDER}, 模型={settings.WHITEBOARD_MODEL}")
    return settings

def get_provider():
    """
    根据配置创建AI协作方

    每个注册表在创建时调用一次，不在导入时初始化任何客户端。
    """
    from .errors import ConfigurationException

    settings = get_settings()
    provider_type = settings.LLM_PROVIDER.lower()

    if provider_type == "gemini":
        from ..lib.providers.gemini import GeminiProvider
        return GeminiProvider(
            api_key=settings.GEMINI_API_KEY,
            model_id=settings.WHITEBOARD_MODEL,
            temperature=settings.WHITEBOARD_TEMPERATURE,
            timeout=settings.ASSISTANT_TIMEOUT_SECONDS,
        )
    elif provider_type == "none":
        from ..lib.providers.base import UnavailableProvider
        return UnavailableProvider()
    else:
        raise ConfigurationException(f"不支持的LLM提供商类型: {provider_type}", config_key="LLM_PROVIDER")
