"""LoggingMiddleware -- 请求级日志上下文

每个 HTTP 请求：
- 生成 request_id（ULID），与 method/path 一起绑定到 structlog contextvars
- 事件写入请求额外绑定 idempotency_key，同一批次的重试日志可按 key 串联
- 完成日志按响应状态选择级别（5xx error / 4xx warning），附 elapsed_ms
- 响应头返回 X-Request-ID
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

IDEMPOTENCY_HEADER = "X-Idempotency-Key"
INGEST_PATH = "/api/analytics/events"


def _request_context(request: Request) -> dict[str, str]:
    context = {
        "request_id": str(ULID()),
        "method": request.method,
        "path": request.url.path,
    }
    if request.method == "POST" and request.url.path == INGEST_PATH:
        token = request.headers.get(IDEMPOTENCY_HEADER, "").strip()
        if token:
            context["idempotency_key"] = token
    return context


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        context = _request_context(request)
        start_time = time.monotonic()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)

        log = structlog.get_logger()
        await log.adebug("request_started")

        try:
            response = await call_next(request)
        except Exception:
            await log.aexception(
                "request_failed",
                elapsed_ms=int((time.monotonic() - start_time) * 1000),
            )
            raise

        if response.status_code >= 500:
            emit = log.aerror
        elif response.status_code >= 400:
            emit = log.awarning
        else:
            emit = log.ainfo
        await emit(
            "request_completed",
            status_code=response.status_code,
            elapsed_ms=int((time.monotonic() - start_time) * 1000),
        )

        response.headers["X-Request-ID"] = context["request_id"]
        return response
