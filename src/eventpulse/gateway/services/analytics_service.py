"""AnalyticsService -- 只读查询业务逻辑

所有查询基于 daily_metrics / post_daily_metrics 物化表，
留存和热门搜索例外（直接读 events）。
查询持有 write_lock，避免在共享连接上读到未提交的事务。
"""

from datetime import UTC, date, datetime, timedelta

from eventpulse.core.config import OVERVIEW_DEFAULT_DAYS, OVERVIEW_TOP_POSTS
from eventpulse.core.models import (
    GlobalDailyMetric,
    MetricTotals,
    PostDailyMetric,
    PostMetric,
    PostMetricSum,
    RetentionReport,
    SearchTermCount,
)
from eventpulse.core.retention import compute_retention
from eventpulse.core.rollup import day_bounds
from eventpulse.core.store import StoreGroup


def sum_totals(metrics: list[GlobalDailyMetric]) -> MetricTotals:
    """多日全局 totals 求和"""
    return MetricTotals(
        views=sum(m.totals.views for m in metrics),
        likes=sum(m.totals.likes for m in metrics),
        comments=sum(m.totals.comments for m in metrics),
    )


def engagement_rate(totals: MetricTotals) -> dict[str, float]:
    """点赞率 / 评论率（相对浏览量，百分比）；无浏览时为 0"""
    if totals.views == 0:
        return {"likes": 0.0, "comments": 0.0}
    return {
        "likes": totals.likes / totals.views * 100,
        "comments": totals.comments / totals.views * 100,
    }


class AnalyticsService:
    """分析查询服务"""

    def __init__(self, store_group: StoreGroup, today: date | None = None) -> None:
        self._stores = store_group
        self._today = today or datetime.now(UTC).date()

    @property
    def today(self) -> date:
        return self._today

    async def overview(
        self,
        from_day: date | None = None,
        to_day: date | None = None,
    ) -> tuple[list[GlobalDailyMetric], MetricTotals, list[PostMetricSum]]:
        """区间内日活趋势、totals 合计和浏览量 top posts（默认近 30 天）"""
        to_day = to_day or self._today
        from_day = from_day or to_day - timedelta(days=OVERVIEW_DEFAULT_DAYS)
        async with self._stores.write_lock:
            daily = await self._stores.metric_store.list_daily_metrics(from_day, to_day)
            top = await self._stores.metric_store.top_posts(
                from_day, to_day, PostMetric.VIEWS, OVERVIEW_TOP_POSTS
            )
        return daily, sum_totals(daily), top

    async def active_users(self, window: int) -> list[GlobalDailyMetric]:
        """近 window 天的日活序列"""
        from_day = self._today - timedelta(days=window)
        async with self._stores.write_lock:
            return await self._stores.metric_store.list_daily_metrics(from_day, self._today)

    async def retention(self, cohort_day: date, windows: list[int]) -> RetentionReport:
        """注册 cohort 留存"""
        async with self._stores.write_lock:
            return await compute_retention(self._stores.event_store, cohort_day, windows)

    async def top_posts(self, metric: PostMetric, period: int, limit: int) -> list[PostMetricSum]:
        """近 period 天按单项指标排序的 top posts"""
        from_day = self._today - timedelta(days=period)
        async with self._stores.write_lock:
            return await self._stores.metric_store.top_posts(
                from_day, self._today, metric, limit
            )

    async def post_details(
        self,
        post_id: str,
    ) -> tuple[list[PostDailyMetric], MetricTotals] | None:
        """单帖日序列 + 合计；无数据返回 None"""
        async with self._stores.write_lock:
            series = await self._stores.metric_store.list_post_metrics(post_id)
        if not series:
            return None
        totals = MetricTotals(
            views=sum(m.views for m in series),
            likes=sum(m.likes for m in series),
            comments=sum(m.comments for m in series),
        )
        return series, totals

    async def trending_searches(self, period: int, limit: int) -> list[SearchTermCount]:
        """近 period 天的热门搜索词（含今天）"""
        start, _ = day_bounds(self._today - timedelta(days=period))
        _, end = day_bounds(self._today)
        async with self._stores.write_lock:
            return await self._stores.event_store.trending_searches(start, end, limit)
