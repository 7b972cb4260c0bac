"""
本地开发启动入口
"""
import os

import uvicorn

from ideaboard.core.config import get_settings
from ideaboard.core.constants import ServerConstants

if __name__ == "__main__":
    settings = get_settings()
    port = int(os.getenv("PORT", str(ServerConstants.DEFAULT_PORT)))
    # 开发环境启用热重载
    uvicorn.run(
        "ideaboard.main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.ENVIRONMENT == ServerConstants.DEVELOPMENT,
    )
