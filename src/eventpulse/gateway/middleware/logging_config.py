"""structlog 配置模块

dev 模式：ConsoleRenderer 彩色输出
json 模式：每行一个 JSON 对象（生产环境，便于采集）
标准库 logging（uvicorn / aiosqlite）经 ProcessorFormatter 统一渲染。
Logfire APM：LOGFIRE_SEND_TO_LOGFIRE=true 时启用，否则只写本地日志。
"""

import logging
import os

import structlog

# 访问日志由 LoggingMiddleware 输出，uvicorn 自带的 access 日志降级
_NOISY_LOGGERS = ("uvicorn.access", "aiosqlite")


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 配置

    Args:
        log_format: "json" 或 "dev"，默认读取 EVENTPULSE_LOG_FORMAT（缺省 dev）
        log_level: 日志级别，默认读取 EVENTPULSE_LOG_LEVEL（缺省 INFO）
    """
    log_format = log_format or os.environ.get("EVENTPULSE_LOG_FORMAT", "dev")
    log_level = (log_level or os.environ.get("EVENTPULSE_LOG_LEVEL", "INFO")).upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
        # JSON 模式下异常栈转为字符串字段
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logfire(app=None) -> bool:
    """Logfire 可选初始化

    LOGFIRE_SEND_TO_LOGFIRE=true 时启用（需要 LOGFIRE_TOKEN 与 apm extra），
    初始化失败只记录 warning，服务照常启动。

    Returns:
        是否已启用 Logfire
    """
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return False
    try:
        import logfire

        logfire.configure(service_name="eventpulse")
        if app is not None:
            logfire.instrument_fastapi(app)
        return True
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error=str(e),
            message="Logfire 初始化失败，仅输出本地日志",
        )
        return False
