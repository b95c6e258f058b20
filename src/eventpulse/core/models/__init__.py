"""EventPulse Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    ACTIVE_EVENT_TYPES,
    COUNTED_EVENT_TYPES,
    POST_SCOPED_EVENT_TYPES,
    EventType,
    PostMetric,
    requires_post_id,
)
from .event import Event, EventMetadata, EventPayload
from .idempotency import IdempotencyRecord
from .metrics import (
    DailyRollup,
    GlobalDailyMetric,
    MetricTotals,
    PostDailyMetric,
    PostMetricSum,
    RetentionReport,
    SearchTermCount,
)

__all__ = [
    # 枚举
    "EventType",
    "PostMetric",
    # 事件类型集合
    "POST_SCOPED_EVENT_TYPES",
    "COUNTED_EVENT_TYPES",
    "ACTIVE_EVENT_TYPES",
    "requires_post_id",
    # Event
    "Event",
    "EventMetadata",
    "EventPayload",
    # Idempotency
    "IdempotencyRecord",
    # Metrics
    "MetricTotals",
    "GlobalDailyMetric",
    "PostDailyMetric",
    "PostMetricSum",
    "DailyRollup",
    "SearchTermCount",
    "RetentionReport",
]
