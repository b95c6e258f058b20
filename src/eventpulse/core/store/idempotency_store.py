"""IdempotencyLedger SQLite 实现

token 在保留窗口（默认 24h）内有效；过期后视为不存在，可被再次 claim。
claim 在调用方的事务中执行，与事件写入同事务提交。
"""

from datetime import datetime, timedelta

import aiosqlite

from ..models.idempotency import IdempotencyRecord
from .event_store import format_ts

DEFAULT_TTL = timedelta(hours=24)


class SqliteIdempotencyLedger:
    """IdempotencyLedger 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection, ttl: timedelta = DEFAULT_TTL) -> None:
        self._conn = conn
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _cutoff(self, now: datetime) -> str:
        """早于（含）此时间创建的记录视为过期"""
        return format_ts(now - self._ttl)

    async def exists(self, token: str, now: datetime) -> bool:
        """token 是否已被 claim 且未过期"""
        cursor = await self._conn.execute(
            "SELECT 1 FROM idempotency_keys WHERE token = ? AND created_at > ?",
            (token, self._cutoff(now)),
        )
        row = await cursor.fetchone()
        return row is not None

    async def get(self, token: str, now: datetime) -> IdempotencyRecord | None:
        """查询未过期的 token 记录"""
        cursor = await self._conn.execute(
            "SELECT token, created_at FROM idempotency_keys WHERE token = ? AND created_at > ?",
            (token, self._cutoff(now)),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return IdempotencyRecord(token=row[0], created_at=datetime.fromisoformat(row[1]))

    async def claim(self, token: str, now: datetime) -> bool:
        """原子 claim token

        先删除同名的过期记录，再 INSERT ... ON CONFLICT DO NOTHING。
        注意：此方法不自动提交事务，需由调用方管理事务。

        Returns:
            True 表示 claim 成功；False 表示已被未过期记录占用
        """
        await self._conn.execute(
            "DELETE FROM idempotency_keys WHERE token = ? AND created_at <= ?",
            (token, self._cutoff(now)),
        )
        cursor = await self._conn.execute(
            """
            INSERT INTO idempotency_keys (token, created_at)
            VALUES (?, ?)
            ON CONFLICT(token) DO NOTHING
            """,
            (token, format_ts(now)),
        )
        return cursor.rowcount == 1

    async def purge_expired(self, now: datetime) -> int:
        """删除所有过期记录并提交

        Returns:
            删除的记录数
        """
        cursor = await self._conn.execute(
            "DELETE FROM idempotency_keys WHERE created_at <= ?",
            (self._cutoff(now),),
        )
        await self._conn.commit()
        return cursor.rowcount
