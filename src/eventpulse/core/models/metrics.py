"""Metric Domain Model -- 每日汇总表

daily_metrics / post_daily_metrics 是 events 的物化视图，
仅由 rollup 写入；同一天重复 rollup 整体覆盖，不做累加。
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


class MetricTotals(BaseModel):
    """当日全局计数"""

    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)


class GlobalDailyMetric(BaseModel):
    """全局日指标（每天一行，day 唯一）"""

    day: date = Field(description="自然日（UTC）")
    active_users: int = Field(default=0, ge=0, description="当日去重活跃用户数")
    totals: MetricTotals = Field(default_factory=MetricTotals)
    generated_at: datetime = Field(description="本次 rollup 生成时间")


class PostDailyMetric(BaseModel):
    """帖子日指标（(post_id, day) 唯一）"""

    day: date
    post_id: str
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)


class PostMetricSum(BaseModel):
    """区间内按帖子聚合的单指标合计（top posts 查询结果）"""

    post_id: str
    value: int


class DailyRollup(BaseModel):
    """一次 rollup 的完整结果"""

    day: date
    posts: list[PostDailyMetric] = Field(default_factory=list)
    summary: GlobalDailyMetric
    event_count: int = Field(default=0, description="参与计算的事件数")


class SearchTermCount(BaseModel):
    """热门搜索词"""

    term: str
    count: int


class RetentionReport(BaseModel):
    """注册 cohort 留存结果"""

    cohort_date: date
    cohort_size: int
    retention: dict[str, float] = Field(
        default_factory=dict,
        description="d{n} -> 留存率（百分比 0~100）",
    )
