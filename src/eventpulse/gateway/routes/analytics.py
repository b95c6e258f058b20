"""分析查询路由

GET /api/analytics/overview: 日活趋势 + totals + 浏览量 top 5
GET /api/analytics/users/active: 近 7/30 天日活序列
GET /api/analytics/retention: 注册 cohort 留存
GET /api/analytics/posts/top: 按指标排序的 top posts
GET /api/analytics/posts/{post_id}: 单帖日序列 + 互动率
GET /api/analytics/search/trending: 热门搜索词
"""

from datetime import date
from typing import Literal

from eventpulse.core.models import PostMetric
from eventpulse.core.retention import DEFAULT_RETENTION_WINDOWS
from fastapi import APIRouter, Depends, Query
from starlette.responses import JSONResponse

from ..deps import get_store_group
from ..services.analytics_service import AnalyticsService, engagement_rate

router = APIRouter(prefix="/api/analytics")


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": {"code": "INVALID_QUERY", "message": message}},
    )


@router.get("/overview")
async def overview(
    from_day: date | None = Query(default=None, alias="from", description="起始日 YYYY-MM-DD"),
    to_day: date | None = Query(default=None, alias="to", description="结束日 YYYY-MM-DD"),
    store_group=Depends(get_store_group),
):
    """区间概览（默认近 30 天）"""
    if from_day and to_day and from_day > to_day:
        return _bad_request("from must not be later than to")

    service = AnalyticsService(store_group)
    daily, totals, top = await service.overview(from_day, to_day)
    return {
        "dau_trend": [{"date": m.day.isoformat(), "active": m.active_users} for m in daily],
        "totals": totals.model_dump(),
        "top_posts": [{"post_id": p.post_id, "views": p.value} for p in top],
    }


@router.get("/users/active")
async def active_users(
    window: Literal["7", "30"] = Query(default="7", description="回看天数"),
    store_group=Depends(get_store_group),
):
    """日活序列"""
    window_days = int(window)
    series = await AnalyticsService(store_group).active_users(window_days)
    return {
        "granularity": "daily",
        "window": window_days,
        "series": [{"date": m.day.isoformat(), "active": m.active_users} for m in series],
    }


@router.get("/retention")
async def retention(
    cohort_start: date = Query(alias="cohortStart", description="cohort 注册日 YYYY-MM-DD"),
    windows: str | None = Query(default=None, description="窗口偏移天数，逗号分隔，如 1,7,30"),
    store_group=Depends(get_store_group),
):
    """注册 cohort 留存"""
    if windows:
        try:
            offsets = [int(part) for part in windows.split(",") if part.strip()]
        except ValueError:
            return _bad_request("windows must be a comma separated list of integers")
        if not offsets or any(offset < 0 for offset in offsets):
            return _bad_request("windows must contain non-negative integers")
    else:
        offsets = list(DEFAULT_RETENTION_WINDOWS)

    report = await AnalyticsService(store_group).retention(cohort_start, offsets)
    return {
        "cohort_date": report.cohort_date.isoformat(),
        "cohort_size": report.cohort_size,
        "retention": report.retention,
    }


@router.get("/posts/top")
async def top_posts(
    metric: PostMetric = Query(default=PostMetric.VIEWS, description="views/likes/comments"),
    period: Literal["7", "30"] = Query(default="7", description="回看天数"),
    limit: int = Query(default=10, ge=1, le=50),
    store_group=Depends(get_store_group),
):
    """按指标排序的 top posts"""
    period_days = int(period)
    items = await AnalyticsService(store_group).top_posts(metric, period_days, limit)
    return {
        "metric": metric.value,
        "period": period_days,
        "items": [{"post_id": p.post_id, metric.value: p.value} for p in items],
    }


@router.get("/posts/{post_id}")
async def post_details(
    post_id: str,
    store_group=Depends(get_store_group),
):
    """单帖日序列 + totals + 互动率"""
    result = await AnalyticsService(store_group).post_details(post_id)
    if result is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": {
                    "code": "POST_METRICS_NOT_FOUND",
                    "message": f"No analytics data found for post {post_id}",
                }
            },
        )

    series, totals = result
    return {
        "post_id": post_id,
        "daily_series": [
            {
                "date": m.day.isoformat(),
                "views": m.views,
                "likes": m.likes,
                "comments": m.comments,
            }
            for m in series
        ],
        "totals": totals.model_dump(),
        "engagement_rate": engagement_rate(totals),
    }


@router.get("/search/trending")
async def trending_searches(
    period: Literal["7", "30"] = Query(default="7", description="回看天数"),
    limit: int = Query(default=10, ge=1, le=50),
    store_group=Depends(get_store_group),
):
    """热门搜索词"""
    period_days = int(period)
    items = await AnalyticsService(store_group).trending_searches(period_days, limit)
    return {
        "period": period_days,
        "items": [item.model_dump() for item in items],
    }
