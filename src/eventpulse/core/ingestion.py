"""IngestionCoordinator -- 事件批次幂等写入

写入流程：
1. 校验 token 和批次（任何存储访问之前）
2. 检查幂等键，已存在则 DuplicateRequest
3. 为整个批次统一打服务端时间戳 + 来源 IP 哈希（丢弃客户端时间戳）
4. 单事务写入事件 + claim 幂等键
5. 返回写入条数

不触发 rollup。
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiosqlite
import pydantic
import structlog
from ulid import ULID

from .exceptions import DuplicateRequest, StorageFailure, ValidationError
from .hashing import hash_ip
from .models.event import Event, EventPayload
from .store import StoreGroup
from .store.transaction import append_events_with_token

log = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(UTC)


def parse_batch(payloads: Any) -> list[EventPayload]:
    """将请求体（单个对象或数组）解析为 EventPayload 列表

    Raises:
        ValidationError: 批次为空、元素不是对象或字段校验失败
    """
    items = payloads if isinstance(payloads, list) else [payloads]
    if not items or payloads is None:
        raise ValidationError("Event body cannot be empty.")

    parsed: list[EventPayload] = []
    details: list[dict[str, Any]] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            details.append({"index": index, "msg": "event must be a JSON object"})
            continue
        try:
            parsed.append(EventPayload.model_validate(item))
        except pydantic.ValidationError as e:
            for err in e.errors(include_url=False, include_context=False):
                details.append(
                    {
                        "index": index,
                        "loc": [str(part) for part in err["loc"]],
                        "msg": err["msg"],
                    }
                )

    if details:
        raise ValidationError("Invalid event payload.", details=details)
    return parsed


class IngestionCoordinator:
    """事件写入协调器 -- 幂等键 + 事件批次原子提交"""

    def __init__(
        self,
        store_group: StoreGroup,
        ip_hash_salt: str = "",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._stores = store_group
        self._ip_hash_salt = ip_hash_salt
        self._clock = clock

    async def ingest(
        self,
        payloads: Any,
        token: str | None,
        source_ip: str | None = None,
    ) -> int:
        """写入一个事件批次

        Args:
            payloads: 单个事件对象或事件数组（已解码的 JSON）
            token: 客户端提供的幂等键
            source_ip: 请求来源 IP（仅保存哈希）

        Returns:
            写入的事件数

        Raises:
            ValidationError: token 缺失、批次为空或事件不合法
            DuplicateRequest: token 已被使用且未过期
            StorageFailure: 存储层错误，事务已回滚，可用同一 token 重试
        """
        if token is None or not token.strip():
            raise ValidationError("X-Idempotency-Key header is required.")
        batch = parse_batch(payloads)

        async with self._stores.write_lock:
            now = self._clock()
            ledger = self._stores.idempotency_ledger
            try:
                already_claimed = await ledger.exists(token, now)
            except aiosqlite.Error as e:
                await log.aerror("ingest_storage_failure", stage="lookup", error=str(e))
                raise StorageFailure("ingest", e) from e
            if already_claimed:
                await log.ainfo("ingest_duplicate_token", idempotency_key=token)
                raise DuplicateRequest(token)

            events = self._stamp(batch, now, hash_ip(source_ip, self._ip_hash_salt))

            try:
                stored = await append_events_with_token(
                    self._stores.conn,
                    self._stores.event_store,
                    ledger,
                    events,
                    token,
                    now,
                )
            except DuplicateRequest:
                await log.ainfo("ingest_duplicate_token", idempotency_key=token)
                raise
            except StorageFailure as e:
                await log.aerror(
                    "ingest_storage_failure",
                    stage="commit",
                    error=str(e.original_error),
                )
                raise

        await log.ainfo("events_ingested", stored_count=stored, idempotency_key=token)
        return stored

    @staticmethod
    def _stamp(
        batch: list[EventPayload],
        now: datetime,
        ip_hash: str | None,
    ) -> list[Event]:
        """为批次内所有事件打上同一服务端时间戳和 IP 哈希"""
        return [
            Event(
                event_id=str(ULID()),
                type=payload.event,
                user_id=payload.user_id,
                post_id=payload.post_id,
                session_id=payload.session_id,
                ts=now,
                metadata=payload.metadata.model_copy(update={"ip_hash": ip_hash}),
            )
            for payload in batch
        ]
