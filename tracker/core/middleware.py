from fastapi import Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
import time
import uuid
from typing import Callable, List

from tracker.core.config import settings
from tracker.core.logging import app_logger, performance_logger

class RequestIDMiddleware(BaseHTTPMiddleware):
    """请求ID中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

class LoggingMiddleware(BaseHTTPMiddleware):
    """日志记录中间件"""

    def __init__(self, app, exclude_paths: List[str] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or ["/health", "/favicon.ico"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        start_time = time.time()
        method = request.method
        url = str(request.url)
        client_ip = self._get_client_ip(request)
        request_id = getattr(request.state, "request_id", "unknown")

        try:
            response = await call_next(request)
        except Exception as e:
            app_logger.api_logger.error(
                f"Request failed: {method} {url} - {str(e)}",
                request_id=request_id,
                method=method,
                url=url,
                response_time=time.time() - start_time,
                ip_address=client_ip,
                exc_info=True
            )
            raise

        process_time = time.time() - start_time
        app_logger.api_logger.info(
            f"Request completed: {method} {url} - {response.status_code}",
            request_id=request_id,
            method=method,
            url=url,
            status_code=response.status_code,
            response_time=process_time,
            ip_address=client_ip
        )
        performance_logger.log_response_time(
            endpoint=url,
            response_time=process_time,
            threshold=settings.SLOW_REQUEST_THRESHOLD
        )
        response.headers["X-Process-Time"] = str(process_time)
        return response

    def _get_client_ip(self, request: Request) -> str:
        """获取客户端IP地址"""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"

def setup_middleware(app):
    """设置中间件（后添加的在外层）"""

    app.add_middleware(GZipMiddleware, minimum_size=1024)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    # 日志记录中间件
    app.add_middleware(LoggingMiddleware)

    # 请求ID中间件（最外层，日志中间件可读取请求ID）
    app.add_middleware(RequestIDMiddleware)
