"""
应用常量配置 - 统一管理所有魔法数字和硬编码值
"""


class APIConstants:
    """API相关常量"""
    # HTTP状态码
    HTTP_OK = 200
    HTTP_CREATED = 201
    HTTP_BAD_REQUEST = 400
    HTTP_NOT_FOUND = 404
    HTTP_CONFLICT = 409
    HTTP_PAYLOAD_TOO_LARGE = 413
    HTTP_INTERNAL_ERROR = 500
    HTTP_SERVICE_UNAVAILABLE = 503

    # CORS配置
    CORS_MAX_AGE = 86400  # 24小时

class WhiteboardConstants:
    """白板相关常量"""
    # 各类型节点的默认尺寸 (width, height)
    DEFAULT_DIMENSIONS = {
        "text": (280, 200),
        "image": (280, 240),
        "video": (320, 240),
        "audio": (280, 160),
        "document": (320, 240),
        "link": (280, 160),
        "embedded-video": (320, 240),
    }
    FALLBACK_DIMENSIONS = (280, 200)

    # 手动添加节点的默认位置
    DEFAULT_NOTE_POSITION = (100, 100)
    DEFAULT_LINK_POSITION = (150, 150)
    DEFAULT_RECORDING_POSITION = (300, 300)
    DEFAULT_NOTE_CONTENT = "New Idea..."

    # 助手创建便签时的级联偏移
    ASSISTANT_NOTE_ORIGIN = (100, 100)
    ASSISTANT_NOTE_CASCADE = 30

    # 系统提示中节点内容预览长度
    CONTENT_PREVIEW_LENGTH = 50

    # 每个协作者待发送消息的上限，超过视为连接失效
    COLLABORATION_OUTBOX_LIMIT = 1000

    # 白板摘要最多读取的文本节点数和每个节点的内容长度
    SUMMARY_NODE_LIMIT = 20
    SUMMARY_PREVIEW_LENGTH = 200

class IngestionConstants:
    """导入相关常量"""
    # 拖放时将节点中心对齐到指针
    DROP_CENTER_OFFSET = 100
    # 同一批次多个文件的纵向错位
    BATCH_VERTICAL_STEP = 20
    # 通过文件选择器上传（非拖放）时的默认位置
    DEFAULT_UPLOAD_POSITION = (200, 200)

    DEFAULT_AUDIO_MIME_TYPE = "audio/webm"
    RECORDING_TITLE_FORMAT = "Voice Note %H:%M:%S"

    MAX_FILE_SIZE_BYTES = 50 * 1024 * 1024  # 50MB

class LoggingConstants:
    """日志相关常量"""
    # 日志文件配置
    MAX_LOG_FILE_SIZE = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5

    # 日志格式
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    DETAILED_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    # 结构化事件日志
    EVENT_LOGGER = "ideaboard.events"
    EVENT_LOG_FILE = "board_events.log"

class LLMConstants:
    """LLM相关常量"""
    DEFAULT_MODEL = "gemini-1.5-pro"
    DEFAULT_TEMPERATURE = 0.7
    DEFAULT_TIMEOUT_SECONDS = 120

    # Gemini内联数据请求上限约为20MB
    DEFAULT_MAX_CONTEXT_BYTES = 20 * 1024 * 1024

class ServerConstants:
    """服务器相关常量"""
    # 默认端口
    DEFAULT_PORT = 8000

    # 环境配置
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"

