"""枚举定义

包含 EventType 事件类型、PostMetric 指标名，
以及 POST_SCOPED_EVENT_TYPES（必须携带 post_id）和
ACTIVE_EVENT_TYPES（留存计算中视为"活跃"的事件）集合。
"""

from enum import StrEnum


class EventType(StrEnum):
    """客户端可上报的行为事件类型"""

    USER_REGISTER = "user_register"
    USER_LOGIN = "user_login"
    POST_VIEW = "post_view"
    POST_CREATE = "post_create"
    POST_LIKE = "post_like"
    COMMENT_CREATE = "comment_create"
    SEARCH_PERFORMED = "search_performed"


class PostMetric(StrEnum):
    """帖子日指标名（post_daily_metrics 的计数列）"""

    VIEWS = "views"
    LIKES = "likes"
    COMMENTS = "comments"


# 必须携带 post_id 的事件类型
POST_SCOPED_EVENT_TYPES: frozenset[EventType] = frozenset(
    {
        EventType.POST_VIEW,
        EventType.POST_CREATE,
        EventType.POST_LIKE,
        EventType.COMMENT_CREATE,
    }
)

# 事件类型 -> 帖子计数列；不在表中的类型不计入任何计数
COUNTED_EVENT_TYPES: dict[EventType, PostMetric] = {
    EventType.POST_VIEW: PostMetric.VIEWS,
    EventType.POST_LIKE: PostMetric.LIKES,
    EventType.COMMENT_CREATE: PostMetric.COMMENTS,
}

# 留存窗口内视为"活跃"的事件类型（固定集合，不可配置）
ACTIVE_EVENT_TYPES: frozenset[EventType] = frozenset(
    {
        EventType.USER_LOGIN,
        EventType.POST_VIEW,
        EventType.POST_CREATE,
    }
)


def requires_post_id(event_type: EventType) -> bool:
    """判断事件类型是否必须携带 post_id"""
    return event_type in POST_SCOPED_EVENT_TYPES
