"""Rollup 模块 -- 每日将原始事件压缩为帖子日指标和全局日指标

rollup 是 (目标日, events 表内容) 的纯函数：
1. 流式读取 [当天 00:00, 次日 00:00) UTC 内的事件
2. 在内存中逐条 apply_event，按 post_id 计数、收集去重 user_id
3. summarize 生成帖子行 + 全局行（全局 totals 由帖子行求和得出）
4. 单事务 upsert 覆盖写入

同一天重跑结果一致（覆盖，不累加）。历史回补必须逐日调用。
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

import aiosqlite
import structlog

from .exceptions import StorageFailure
from .models.enums import COUNTED_EVENT_TYPES, PostMetric
from .models.event import Event
from .models.metrics import DailyRollup, GlobalDailyMetric, MetricTotals, PostDailyMetric
from .store import StoreGroup
from .store.protocols import EventStore
from .store.transaction import replace_daily_metrics

log = structlog.get_logger()


@dataclass
class RollupAccumulator:
    """单日聚合的内存状态"""

    posts: dict[str, dict[PostMetric, int]] = field(default_factory=dict)
    users: set[str] = field(default_factory=set)
    event_count: int = 0


def _utc_now() -> datetime:
    return datetime.now(UTC)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """返回 [day 00:00, day+1 00:00) 的 UTC 边界"""
    start = datetime(day.year, day.month, day.day, tzinfo=UTC)
    return start, start + timedelta(days=1)


def previous_day(now: datetime) -> date:
    """now 所在 UTC 日的前一天"""
    return now.astimezone(UTC).date() - timedelta(days=1)


def apply_event(acc: RollupAccumulator, event: Event) -> None:
    """将单个事件应用到聚合状态（内存中操作）

    - 所有非空 user_id 计为当日活跃，不区分事件类型
    - 有 post_id 的事件都会产生该帖子的一行，只有
      post_view/post_like/comment_create 计入对应计数
    """
    acc.event_count += 1

    if event.user_id is not None:
        acc.users.add(event.user_id)

    if event.post_id is None:
        return

    counters = acc.posts.setdefault(event.post_id, {metric: 0 for metric in PostMetric})
    metric = COUNTED_EVENT_TYPES.get(event.type)
    if metric is not None:
        counters[metric] += 1


def summarize(day: date, acc: RollupAccumulator, generated_at: datetime) -> DailyRollup:
    """由聚合状态生成 DailyRollup

    全局 totals 是帖子行的求和，不单独重算，保证两者一致。
    """
    posts = [
        PostDailyMetric(
            day=day,
            post_id=post_id,
            views=counters[PostMetric.VIEWS],
            likes=counters[PostMetric.LIKES],
            comments=counters[PostMetric.COMMENTS],
        )
        for post_id, counters in sorted(acc.posts.items())
    ]
    totals = MetricTotals(
        views=sum(p.views for p in posts),
        likes=sum(p.likes for p in posts),
        comments=sum(p.comments for p in posts),
    )
    summary = GlobalDailyMetric(
        day=day,
        active_users=len(acc.users),
        totals=totals,
        generated_at=generated_at,
    )
    return DailyRollup(day=day, posts=posts, summary=summary, event_count=acc.event_count)


async def compute_daily_rollup(
    event_store: EventStore,
    day: date,
    generated_at: datetime,
) -> DailyRollup:
    """读取某天的事件并计算 DailyRollup（不写入）"""
    start, end = day_bounds(day)
    acc = RollupAccumulator()
    async for event in event_store.iter_events_between(start, end):
        apply_event(acc, event)
    return summarize(day, acc, generated_at)


async def run_daily_rollup(
    store_group: StoreGroup,
    day: date | None = None,
    clock: Callable[[], datetime] = _utc_now,
) -> DailyRollup:
    """计算并写入某天的日指标（默认前一天）

    持有 write_lock 完成读取 + 写入，写入为单事务 upsert。

    Raises:
        StorageFailure: 读取或写入失败（已写入的数据保持不变，可重跑）
    """
    now = clock()
    target_day = day or previous_day(now)
    start_time = time.monotonic()

    await log.ainfo("rollup_started", day=target_day.isoformat())

    async with store_group.write_lock:
        try:
            rollup = await compute_daily_rollup(store_group.event_store, target_day, now)
        except aiosqlite.Error as e:
            raise StorageFailure("rollup", e) from e
        await replace_daily_metrics(store_group.conn, store_group.metric_store, rollup)

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "rollup_completed",
        day=target_day.isoformat(),
        event_count=rollup.event_count,
        post_count=len(rollup.posts),
        active_users=rollup.summary.active_users,
        elapsed_ms=elapsed_ms,
    )
    return rollup


async def run_daily_rollup_safely(
    store_group: StoreGroup,
    day: date | None = None,
    clock: Callable[[], datetime] = _utc_now,
) -> DailyRollup | None:
    """调度器 / 回补入口：StorageFailure 记录日志后返回 None，不向上抛出"""
    try:
        return await run_daily_rollup(store_group, day, clock)
    except StorageFailure as e:
        await log.aerror(
            "rollup_failed",
            day=(day or previous_day(clock())).isoformat(),
            error=str(e.original_error),
        )
        return None


async def backfill(
    store_group: StoreGroup,
    start_day: date,
    end_day: date,
    clock: Callable[[], datetime] = _utc_now,
) -> list[date]:
    """逐日回补 [start_day, end_day]，每天一个独立单元

    某天失败不影响后续日期。

    Returns:
        成功完成的日期列表
    """
    completed: list[date] = []
    day = start_day
    while day <= end_day:
        rollup = await run_daily_rollup_safely(store_group, day, clock)
        if rollup is not None:
            completed.append(day)
        day += timedelta(days=1)

    await log.ainfo(
        "backfill_completed",
        start_day=start_day.isoformat(),
        end_day=end_day.isoformat(),
        completed=len(completed),
    )
    return completed