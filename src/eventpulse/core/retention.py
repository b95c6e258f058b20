"""注册 cohort 留存计算

cohort: cohort_day 当天发生 user_register 的去重用户。
d{n} 留存率: cohort 中在 [cohort_day+n, cohort_day+n+1) 内至少有一条
ACTIVE_EVENT_TYPES 事件的用户占比（百分比）。按人数去重，结果恒在 [0, 100]。
"""

from collections.abc import Iterable
from datetime import date, timedelta

import structlog

from .models.enums import ACTIVE_EVENT_TYPES
from .models.metrics import RetentionReport
from .rollup import day_bounds
from .store.protocols import EventStore

log = structlog.get_logger()

DEFAULT_RETENTION_WINDOWS: tuple[int, ...] = (1, 7, 30)


async def compute_retention(
    event_store: EventStore,
    cohort_day: date,
    windows: Iterable[int] = DEFAULT_RETENTION_WINDOWS,
) -> RetentionReport:
    """计算某注册 cohort 在各窗口的留存率

    Args:
        event_store: EventStore 实例
        cohort_day: cohort 注册日（UTC）
        windows: 窗口偏移天数列表（0 表示注册当天）

    Returns:
        RetentionReport；cohort 为空时 retention 为空
    """
    cohort_start, cohort_end = day_bounds(cohort_day)
    cohort_users = await event_store.users_registered_between(cohort_start, cohort_end)
    cohort_size = len(cohort_users)

    if cohort_size == 0:
        return RetentionReport(cohort_date=cohort_day, cohort_size=0)

    retention: dict[str, float] = {}
    for offset in windows:
        window_start, window_end = day_bounds(cohort_day + timedelta(days=offset))
        retained = await event_store.count_active_users(
            cohort_users,
            ACTIVE_EVENT_TYPES,
            window_start,
            window_end,
        )
        retention[f"d{offset}"] = retained / cohort_size * 100

    await log.adebug(
        "retention_computed",
        cohort_date=cohort_day.isoformat(),
        cohort_size=cohort_size,
    )
    return RetentionReport(
        cohort_date=cohort_day,
        cohort_size=cohort_size,
        retention=retention,
    )
