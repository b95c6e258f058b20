"""Store Protocol 接口定义

定义 EventStore、IdempotencyLedger、MetricStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import AsyncIterator, Iterable, Sequence
from datetime import date, datetime
from typing import Protocol

from ..models.enums import EventType, PostMetric
from ..models.event import Event
from ..models.metrics import GlobalDailyMetric, PostDailyMetric, PostMetricSum


class EventStore(Protocol):
    """Event 存储接口

    事件表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_events(self, events: Sequence[Event]) -> None:
        """批量追加事件（不提交事务）"""
        ...

    def iter_events_between(self, start: datetime, end: datetime) -> AsyncIterator[Event]:
        """流式读取 [start, end) 内的事件"""
        ...

    async def users_registered_between(self, start: datetime, end: datetime) -> list[str]:
        """[start, end) 内注册的去重 user_id"""
        ...

    async def count_activity_events(
        self,
        user_ids: Sequence[str],
        event_types: Iterable[EventType],
        start: datetime,
        end: datetime,
    ) -> int:
        """指定用户在窗口内的合格活动事件数"""
        ...

    async def count_active_users(
        self,
        user_ids: Sequence[str],
        event_types: Iterable[EventType],
        start: datetime,
        end: datetime,
    ) -> int:
        """指定用户中在窗口内有合格活动的人数"""
        ...


class IdempotencyLedger(Protocol):
    """幂等键账本接口"""

    async def exists(self, token: str, now: datetime) -> bool:
        """token 是否已被 claim 且未过期"""
        ...

    async def claim(self, token: str, now: datetime) -> bool:
        """在当前事务内 claim token，返回是否成功"""
        ...

    async def purge_expired(self, now: datetime) -> int:
        """删除过期记录"""
        ...


class MetricStore(Protocol):
    """日指标存储接口 -- upsert 整体覆盖"""

    async def upsert_post_metric(self, metric: PostDailyMetric) -> None:
        """按 (post_id, day) upsert（不提交事务）"""
        ...

    async def upsert_daily_metric(self, metric: GlobalDailyMetric) -> None:
        """按 day upsert（不提交事务）"""
        ...

    async def list_daily_metrics(self, from_day: date, to_day: date) -> list[GlobalDailyMetric]:
        """[from_day, to_day] 内的全局日指标"""
        ...

    async def list_post_metrics(self, post_id: str) -> list[PostDailyMetric]:
        """某帖子的所有日指标"""
        ...

    async def top_posts(
        self,
        from_day: date,
        to_day: date,
        metric: PostMetric,
        limit: int,
    ) -> list[PostMetricSum]:
        """区间内按帖子汇总单项指标，倒序 top N"""
        ...
