"""事件写入路由

POST /api/analytics/events: 接收单个事件或事件数组，需 X-Idempotency-Key。
- 202: 写入成功，返回 stored_count
- 400: 缺少幂等键 / JSON 格式错误 / 批次为空 / 事件校验失败
- 422: 幂等键重复（该批次已写入过）
- 500: 存储失败（未提交，可用同一幂等键重试）
"""

import json

from eventpulse.core.exceptions import DuplicateRequest, StorageFailure, ValidationError
from eventpulse.core.ingestion import IngestionCoordinator
from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel
from starlette.responses import JSONResponse

from ..deps import get_ingestion

router = APIRouter()


class IngestResponse(BaseModel):
    """写入成功响应"""

    stored_count: int


def _error(
    status_code: int,
    code: str,
    message: str,
    details: list | None = None,
) -> JSONResponse:
    error: dict = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


@router.post("/api/analytics/events", status_code=202, response_model=IngestResponse)
async def ingest_events(
    request: Request,
    x_idempotency_key: str | None = Header(default=None),
    ingestion: IngestionCoordinator = Depends(get_ingestion),
):
    """写入事件批次（幂等）"""
    if not x_idempotency_key or not x_idempotency_key.strip():
        return _error(400, "MISSING_IDEMPOTENCY_KEY", "X-Idempotency-Key header is required.")

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "MALFORMED_BODY", "Request body must be valid JSON.")

    source_ip = request.client.host if request.client else None

    try:
        stored = await ingestion.ingest(body, x_idempotency_key, source_ip)
    except ValidationError as e:
        return _error(400, "INVALID_EVENTS", e.message, e.details)
    except DuplicateRequest:
        return _error(
            422,
            "DUPLICATE_REQUEST",
            "Duplicate request based on idempotency key.",
        )
    except StorageFailure:
        return _error(500, "STORAGE_FAILURE", "Failed to store events.")

    return JSONResponse(
        status_code=202,
        content=IngestResponse(stored_count=stored).model_dump(),
    )
