"""原子事务封装

append_events_with_token: 事件批次写入 + 幂等键 claim 在同一 SQLite 事务内提交，
任一步失败整体回滚，不会留下没有对应 token 的孤儿事件。
replace_daily_metrics: 一天的 rollup 结果（帖子行 + 全局行）单事务 upsert。

事务边界只包含上述写入，不扩展到查询或调度。
"""

import asyncio
from collections.abc import Sequence
from datetime import datetime

import aiosqlite

from ..exceptions import DuplicateRequest, StorageFailure
from ..models.event import Event
from ..models.metrics import DailyRollup
from .protocols import EventStore, IdempotencyLedger, MetricStore


async def rollback(conn: aiosqlite.Connection) -> None:
    """回滚当前事务；调用方被取消时回滚仍会执行完毕"""
    await asyncio.shield(conn.rollback())


async def append_events_with_token(
    conn: aiosqlite.Connection,
    event_store: EventStore,
    ledger: IdempotencyLedger,
    events: Sequence[Event],
    token: str,
    now: datetime,
) -> int:
    """在同一事务内写入事件批次并 claim 幂等键

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        event_store: EventStore 实例
        ledger: IdempotencyLedger 实例
        events: 已打戳的事件批次
        token: 幂等键
        now: claim 时间（与事件 ts 一致）

    Returns:
        写入的事件数

    Raises:
        DuplicateRequest: token 已被未过期记录占用（事务已回滚）
        StorageFailure: 存储层错误（事务已回滚）
    """
    try:
        await event_store.append_events(events)
        claimed = await ledger.claim(token, now)
        if not claimed:
            raise DuplicateRequest(token)
        await conn.commit()
    except aiosqlite.Error as e:
        await rollback(conn)
        raise StorageFailure("ingest", e) from e
    except BaseException:
        # 含 DuplicateRequest 与 CancelledError：未提交的事件不能留在共享连接上
        await rollback(conn)
        raise
    return len(events)


async def replace_daily_metrics(
    conn: aiosqlite.Connection,
    metric_store: MetricStore,
    rollup: DailyRollup,
) -> None:
    """单事务 upsert 一天的帖子日指标和全局日指标

    Raises:
        StorageFailure: 存储层错误（事务已回滚，已有数据保持不变）
    """
    try:
        for post_metric in rollup.posts:
            await metric_store.upsert_post_metric(post_metric)
        await metric_store.upsert_daily_metric(rollup.summary)
        await conn.commit()
    except aiosqlite.Error as e:
        await rollback(conn)
        raise StorageFailure("rollup", e) from e
    except BaseException:
        await rollback(conn)
        raise
