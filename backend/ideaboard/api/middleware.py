"""
API中间件模块

提供请求日志和安全头中间件。
"""
import re
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.logging import StructuredLogger

structured_logger = StructuredLogger("api")

# 白板相关路径，用于在请求日志中带上board_id
BOARD_PATH_PATTERN = re.compile(r"^/api/boards/([^/]+)")

# 不记录请求日志的路径（健康检查等）
QUIET_PATHS = frozenset({"/health", "/"})


def board_id_from_path(path: str) -> Optional[str]:
    match = BOARD_PATH_PATTERN.match(path)
    return match.group(1) if match else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """请求日志中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        path = request.url.path
        quiet = path in QUIET_PATHS
        context = {"request_id": request_id, "board_id": board_id_from_path(path)}
        start_time = time.time()

        if not quiet:
            structured_logger.log_request(
                method=request.method,
                path=path,
                content_length=request.headers.get("content-length"),
                client_ip=request.client.host if request.client else None,
                **context
            )

        try:
            response = await call_next(request)
        except Exception as e:
            structured_logger.log_error(
                error=e,
                context={"method": request.method, "path": path, **context},
                duration=time.time() - start_time,
            )
            raise

        duration = time.time() - start_time
        if not quiet:
            structured_logger.log_response(status_code=response.status_code, duration=duration, **context)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration:.4f}"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """安全头中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
