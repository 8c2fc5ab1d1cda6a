"""Gateway 日志配置

structlog 与标准库 logging 共用一条处理链：
- dev：控制台可读输出
- json：每行一个 JSON 对象，异常栈渲染为字符串字段

每条日志附带 service 字段；请求级的 request_id / tenant_id / workspace_id / task_id
由中间件通过 contextvars 绑定。
"""

import logging
import os
from typing import Literal

import structlog
from fastapi import FastAPI
from pydantic import BaseModel

SERVICE_NAME = "tasklane-gateway"

# 请求日志由 LoggingMiddleware 输出；aiosqlite 在 DEBUG 级别记录每条语句
_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite")


class LogSettings(BaseModel):
    """日志配置

    环境变量:
        TASKLANE_LOG_FORMAT: dev | json（默认 dev）
        TASKLANE_LOG_LEVEL: 标准库日志级别名（默认 INFO）
        LOGFIRE_SEND_TO_LOGFIRE: true 时启用 Logfire
    """

    format: Literal["dev", "json"] = "dev"
    level: int = logging.INFO
    send_to_logfire: bool = False


def load_log_settings() -> LogSettings:
    """从环境变量加载日志配置，非法值回退默认值"""
    settings = LogSettings()
    invalid: dict[str, str] = {}

    log_format = os.environ.get("TASKLANE_LOG_FORMAT", "dev").strip().lower()
    if log_format in ("dev", "json"):
        settings.format = log_format
    else:
        invalid["TASKLANE_LOG_FORMAT"] = log_format

    level_name = os.environ.get("TASKLANE_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    if isinstance(level, int):
        settings.level = level
    else:
        invalid["TASKLANE_LOG_LEVEL"] = level_name

    send = os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").strip().lower()
    settings.send_to_logfire = send == "true"

    if invalid:
        structlog.get_logger().warning("invalid_log_config", **invalid)
    return settings


def add_service_name(
    logger: logging.Logger, method_name: str, event_dict: dict
) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(settings: LogSettings | None = None) -> LogSettings:
    """初始化 structlog + 标准库 logging，返回生效的配置"""
    settings = settings or load_log_settings()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if settings.format == "json":
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
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

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(settings.level, logging.WARNING))

    return settings


def setup_logfire(app: FastAPI, settings: LogSettings | None = None) -> bool:
    """按配置启用 Logfire FastAPI instrumentation

    初始化失败只记录 warning，网关继续以本地日志运行。
    """
    settings = settings or load_log_settings()
    if not settings.send_to_logfire:
        return False

    try:
        import logfire

        logfire.configure(service_name=SERVICE_NAME)
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning("logfire_init_failed", error=str(e))
        return False
    return True
