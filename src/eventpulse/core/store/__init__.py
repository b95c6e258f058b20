"""EventPulse Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from datetime import timedelta
from pathlib import Path

import aiosqlite

from .event_store import SqliteEventStore
from .idempotency_store import DEFAULT_TTL, SqliteIdempotencyLedger
from .metric_store import SqliteMetricStore
from .sqlite_init import init_db
from .transaction import append_events_with_token, replace_daily_metrics


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接

    同一连接上的事务会相互穿插，write_lock 串行化所有事务性写入
    （以及需要避免读到未提交数据的查询）。
    """

    def __init__(
        self,
        conn: aiosqlite.Connection,
        idempotency_ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        self.conn = conn
        self.write_lock = asyncio.Lock()
        self.event_store = SqliteEventStore(conn)
        self.idempotency_ledger = SqliteIdempotencyLedger(conn, idempotency_ttl)
        self.metric_store = SqliteMetricStore(conn)


async def create_store_group(
    db_path: str,
    idempotency_ttl: timedelta = DEFAULT_TTL,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        idempotency_ttl: 幂等键保留窗口

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn, idempotency_ttl=idempotency_ttl)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteEventStore",
    "SqliteIdempotencyLedger",
    "SqliteMetricStore",
    "init_db",
    "append_events_with_token",
    "replace_daily_metrics",
]
