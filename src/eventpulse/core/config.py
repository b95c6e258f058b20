"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、IP 哈希盐、幂等键保留窗口、rollup 调度时间等可配置项。
"""

import os
from datetime import time
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("EVENTPULSE_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "EVENTPULSE_DB_PATH",
        str(_get_base_dir() / "sqlite" / "eventpulse.db"),
    )


def get_ip_hash_salt() -> str:
    """获取 IP 哈希盐（HMAC key）"""
    return os.environ.get("EVENTPULSE_IP_HASH_SALT", "")


# 幂等键默认保留窗口（小时）
DEFAULT_IDEMPOTENCY_TTL_HOURS: int = 24


def get_idempotency_ttl_hours() -> int:
    """获取幂等键保留窗口（小时）

    非整数或非正数记录 warning 并回退到默认值，不阻塞启动。
    """
    val = os.environ.get("EVENTPULSE_IDEMPOTENCY_TTL_HOURS")
    if not val:
        return DEFAULT_IDEMPOTENCY_TTL_HOURS
    try:
        hours = int(val)
    except ValueError:
        hours = 0
    if hours <= 0:
        log.warning(
            "invalid_idempotency_ttl_config",
            env_var="EVENTPULSE_IDEMPOTENCY_TTL_HOURS",
            value=val,
            fallback=DEFAULT_IDEMPOTENCY_TTL_HOURS,
        )
        return DEFAULT_IDEMPOTENCY_TTL_HOURS
    return hours


# 概览接口默认回看天数
OVERVIEW_DEFAULT_DAYS: int = 30

# 概览接口 top posts 数量
OVERVIEW_TOP_POSTS: int = 5

# 合成数据默认天数（seed 命令）
SEED_DEFAULT_DAYS: int = 60


class SchedulerConfig(BaseModel):
    """每日 rollup 调度配置 -- 从环境变量加载

    环境变量:
        EVENTPULSE_ROLLUP_AT: 每日触发时间 HH:MM（UTC，默认 01:05）
        EVENTPULSE_ROLLUP_ENABLED: 是否启用后台调度（默认 true）
    """

    run_at: time = Field(default=time(1, 5), description="每日触发时间（UTC）")
    enabled: bool = Field(default=True, description="是否启用后台调度")


def _parse_run_at(value: str) -> time:
    hour, minute = value.split(":", 1)
    return time(int(hour), int(minute))


def load_scheduler_config() -> SchedulerConfig:
    """从环境变量加载调度配置

    非法值记录 warning 并回退到默认值，不阻塞启动。
    """
    kwargs: dict = {}

    if val := os.environ.get("EVENTPULSE_ROLLUP_AT"):
        try:
            kwargs["run_at"] = _parse_run_at(val)
        except ValueError:
            log.warning(
                "invalid_rollup_at_config",
                env_var="EVENTPULSE_ROLLUP_AT",
                value=val,
                fallback="01:05",
            )

    if val := os.environ.get("EVENTPULSE_ROLLUP_ENABLED"):
        kwargs["enabled"] = val.lower() not in ("false", "0", "no")

    return SchedulerConfig(**kwargs)
