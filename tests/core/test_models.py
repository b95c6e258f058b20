"""Domain Models 单元测试

测试内容：
1. 枚举值与事件类型集合
2. EventPayload 别名、post_id 必填、多余字段丢弃
3. Event 不可变
"""

from datetime import UTC, date, datetime

import pydantic
import pytest
from eventpulse.core.models import (
    ACTIVE_EVENT_TYPES,
    COUNTED_EVENT_TYPES,
    POST_SCOPED_EVENT_TYPES,
    Event,
    EventMetadata,
    EventPayload,
    EventType,
    GlobalDailyMetric,
    PostMetric,
    requires_post_id,
)


class TestEnums:
    """枚举测试"""

    def test_event_type_values(self):
        """EventType 枚举值与客户端上报字符串一致"""
        assert EventType.USER_REGISTER == "user_register"
        assert EventType.USER_LOGIN == "user_login"
        assert EventType.POST_VIEW == "post_view"
        assert EventType.POST_CREATE == "post_create"
        assert EventType.POST_LIKE == "post_like"
        assert EventType.COMMENT_CREATE == "comment_create"
        assert EventType.SEARCH_PERFORMED == "search_performed"

    def test_post_scoped_types(self):
        """帖子/评论类事件必须携带 post_id"""
        assert requires_post_id(EventType.POST_VIEW)
        assert requires_post_id(EventType.COMMENT_CREATE)
        assert not requires_post_id(EventType.USER_LOGIN)
        assert not requires_post_id(EventType.SEARCH_PERFORMED)
        assert EventType.POST_CREATE in POST_SCOPED_EVENT_TYPES

    def test_counted_types_map_to_metrics(self):
        """只有三种事件计入帖子计数"""
        assert COUNTED_EVENT_TYPES == {
            EventType.POST_VIEW: PostMetric.VIEWS,
            EventType.POST_LIKE: PostMetric.LIKES,
            EventType.COMMENT_CREATE: PostMetric.COMMENTS,
        }

    def test_active_event_types(self):
        """留存"活跃"事件集合固定"""
        assert ACTIVE_EVENT_TYPES == {
            EventType.USER_LOGIN,
            EventType.POST_VIEW,
            EventType.POST_CREATE,
        }


class TestEventPayload:
    """客户端事件 payload 校验"""

    def test_camel_case_aliases(self):
        payload = EventPayload.model_validate(
            {"event": "post_view", "userId": "u1", "postId": "p1", "sessionId": "s1"}
        )
        assert payload.event == EventType.POST_VIEW
        assert payload.user_id == "u1"
        assert payload.post_id == "p1"
        assert payload.session_id == "s1"

    def test_missing_post_id_on_post_event_rejected(self):
        """post_view 缺少 postId 校验失败"""
        with pytest.raises(pydantic.ValidationError):
            EventPayload.model_validate({"event": "post_view", "sessionId": "s1"})

    def test_missing_session_id_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            EventPayload.model_validate({"event": "user_login"})

    def test_unknown_event_type_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            EventPayload.model_validate({"event": "page_scroll", "sessionId": "s1"})

    def test_anonymous_event_allowed(self):
        """userId 可省略（匿名事件）"""
        payload = EventPayload.model_validate({"event": "search_performed", "sessionId": "s1"})
        assert payload.user_id is None
        assert payload.post_id is None

    def test_client_timestamp_ignored(self):
        """客户端时间戳与未知字段被丢弃"""
        payload = EventPayload.model_validate(
            {
                "event": "user_login",
                "sessionId": "s1",
                "timestamp": "2001-01-01T00:00:00Z",
                "foo": "bar",
            }
        )
        assert "timestamp" not in payload.model_dump()
        assert "foo" not in payload.model_dump()

    def test_numeric_user_id_coerced(self):
        payload = EventPayload.model_validate(
            {"event": "user_login", "sessionId": "s1", "userId": 42}
        )
        assert payload.user_id == "42"

    def test_metadata_closed_shape(self):
        """metadata 只保留固定字段"""
        payload = EventPayload.model_validate(
            {
                "event": "search_performed",
                "sessionId": "s1",
                "metadata": {"query": "React Hooks", "device": "mobile", "color": "red"},
            }
        )
        assert payload.metadata.query == "React Hooks"
        assert payload.metadata.device == "mobile"
        assert "color" not in payload.metadata.model_dump()

    @pytest.mark.parametrize("post_id", ["", "   "])
    def test_blank_post_id_normalized_to_none(self, post_id):
        """非帖子事件的空白 postId 视为未提供"""
        payload = EventPayload.model_validate(
            {"event": "user_login", "sessionId": "s1", "postId": post_id}
        )
        assert payload.post_id is None

    @pytest.mark.parametrize("post_id", ["", "   "])
    def test_blank_post_id_on_post_event_rejected(self, post_id):
        with pytest.raises(pydantic.ValidationError, match="postId is required"):
            EventPayload.model_validate(
                {"event": "post_view", "sessionId": "s1", "postId": post_id}
            )

    def test_post_id_stripped(self):
        payload = EventPayload.model_validate(
            {"event": "post_like", "sessionId": "s1", "postId": " p1 "}
        )
        assert payload.post_id == "p1"


class TestEvent:
    """已落盘事件模型"""

    def test_event_is_frozen(self):
        event = Event(
            event_id="01JEVT0000000000000000001",
            type=EventType.USER_LOGIN,
            session_id="s1",
            ts=datetime(2026, 1, 1, tzinfo=UTC),
        )
        with pytest.raises(pydantic.ValidationError):
            event.user_id = "u2"

    def test_default_metadata_empty(self):
        event = Event(
            event_id="01JEVT0000000000000000002",
            type=EventType.USER_LOGIN,
            session_id="s1",
            ts=datetime(2026, 1, 1, tzinfo=UTC),
        )
        assert event.metadata == EventMetadata()

    def test_global_metric_defaults(self):
        metric = GlobalDailyMetric(
            day=date(2026, 1, 1),
            generated_at=datetime(2026, 1, 2, tzinfo=UTC),
        )
        assert metric.active_users == 0
        assert metric.totals.views == 0
