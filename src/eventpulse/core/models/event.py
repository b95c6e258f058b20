"""Event Domain Model

事件表 append-only，不允许更新或删除。
event_id 使用 ULID 格式，时间有序。
ts 由服务端在写入时统一打戳，客户端上报的时间戳一律丢弃。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import EventType, requires_post_id


class EventMetadata(BaseModel):
    """事件附加信息 -- 固定字段集合，未知字段丢弃"""

    model_config = ConfigDict(extra="ignore")

    device: str | None = Field(default=None, description="设备类型（mobile/desktop/tablet）")
    ip_hash: str | None = Field(default=None, description="来源 IP 的 HMAC 哈希")
    referrer: str | None = Field(default=None, description="来源页")
    path: str | None = Field(default=None, description="访问路径")
    query: str | None = Field(default=None, description="搜索词（search_performed）")


class EventPayload(BaseModel):
    """客户端上报的单条事件

    字段名使用 camelCase 别名（event/userId/postId/sessionId），
    timestamp 等未识别字段被忽略。
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    event: EventType = Field(description="事件类型")
    user_id: str | None = Field(default=None, alias="userId", description="用户 ID，匿名为空")
    post_id: str | None = Field(default=None, alias="postId", description="帖子 ID")
    session_id: str = Field(alias="sessionId", min_length=1, description="客户端会话 ID")
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    @field_validator("post_id")
    @classmethod
    def _normalize_post_id(cls, value: str | None) -> str | None:
        # 空白 postId 视为未提供，避免聚合出空 post 行
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def _check_post_id(self) -> "EventPayload":
        if requires_post_id(self.event) and not self.post_id:
            raise ValueError(f"postId is required for event type '{self.event}'")
        return self


class Event(BaseModel):
    """已落盘事件 -- 不可变"""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    type: EventType = Field(description="事件类型")
    user_id: str | None = Field(default=None, description="用户 ID")
    post_id: str | None = Field(default=None, description="帖子 ID")
    session_id: str = Field(description="客户端会话 ID")
    ts: datetime = Field(description="服务端写入时间戳（UTC）")
    metadata: EventMetadata = Field(default_factory=EventMetadata)
