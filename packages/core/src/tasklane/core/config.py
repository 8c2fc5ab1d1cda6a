"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、SQLite busy timeout、标题长度上限、幂等记录保留时长等常量。
"""

import os
from datetime import timedelta
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKLANE_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKLANE_DB_PATH",
        str(_get_base_dir() / "sqlite" / "tasklane.db"),
    )


# 任务标题最大字符数
TITLE_MAX_LENGTH: int = 120

# 幂等记录保留窗口（expired_at = created_at + 24h，仅记录，不主动清理）
IDEMPOTENCY_RETENTION: timedelta = timedelta(hours=24)

# version 存储为 SQLite INTEGER（有符号 64 位）
VERSION_MIN: int = -(2**63)
VERSION_MAX: int = 2**63 - 1

_DEFAULT_BUSY_TIMEOUT_MS = 5000


class StoreConfig(BaseModel):
    """Store 配置 -- 从环境变量加载

    环境变量:
        TASKLANE_DB_PATH: SQLite 数据库文件路径
        TASKLANE_DB_BUSY_TIMEOUT_MS: 写锁等待超时（毫秒，默认 5000）
    """

    db_path: str = Field(description="SQLite 数据库文件路径")
    busy_timeout_ms: int = Field(
        default=_DEFAULT_BUSY_TIMEOUT_MS,
        ge=0,
        description="SQLite busy_timeout（毫秒）",
    )


def load_store_config() -> StoreConfig:
    """从环境变量加载 Store 配置

    非法的 busy timeout 值记录 warning 后回退到默认值，不阻塞启动。
    """
    kwargs: dict = {"db_path": get_db_path()}

    if val := os.environ.get("TASKLANE_DB_BUSY_TIMEOUT_MS"):
        try:
            timeout_ms = int(val)
        except ValueError:
            timeout_ms = -1
        if timeout_ms < 0:
            log.warning(
                "invalid_busy_timeout_config",
                env_var="TASKLANE_DB_BUSY_TIMEOUT_MS",
                value=val,
                fallback=_DEFAULT_BUSY_TIMEOUT_MS,
            )
        else:
            kwargs["busy_timeout_ms"] = timeout_ms

    return StoreConfig(**kwargs)
