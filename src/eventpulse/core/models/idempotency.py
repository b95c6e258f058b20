"""Idempotency Token Record

每个 token 在保留窗口内只能被 claim 一次，与其保护的事件批次同事务写入。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class IdempotencyRecord(BaseModel):
    """幂等键记录"""

    token: str = Field(min_length=1, description="客户端提供的幂等键")
    created_at: datetime = Field(description="claim 时间")
