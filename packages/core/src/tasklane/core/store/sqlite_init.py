"""SQLite 数据库初始化

PRAGMA 配置 + 三张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id       TEXT PRIMARY KEY,
    tenant_id     TEXT NOT NULL,
    workspace_id  TEXT NOT NULL,
    title         TEXT NOT NULL,
    priority      INTEGER NOT NULL DEFAULT 2,
    state         INTEGER NOT NULL DEFAULT 1,
    assignee_id   TEXT,
    version       INTEGER NOT NULL DEFAULT 1,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    # 所有查询都带 tenant/workspace 范围
    "CREATE INDEX IF NOT EXISTS idx_tasks_scope ON tasks(tenant_id, workspace_id);",
]

# task_events 表 DDL（outbox，append-only）
_TASK_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS task_events (
    event_id      TEXT PRIMARY KEY,
    tenant_id     TEXT NOT NULL,
    workspace_id  TEXT NOT NULL,
    task_id       TEXT NOT NULL,
    event_type    TEXT NOT NULL,
    snapshot      TEXT NOT NULL DEFAULT '{}',
    created_at    TEXT NOT NULL,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id)
);
"""

_TASK_EVENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_task_events_task ON task_events(task_id, created_at);",
]

# idempotency_keys 表 DDL
_IDEMPOTENCY_DDL = """
CREATE TABLE IF NOT EXISTS idempotency_keys (
    id                   TEXT PRIMARY KEY,
    tenant_id            TEXT NOT NULL,
    workspace_id         TEXT NOT NULL,
    action               INTEGER NOT NULL,
    key                  TEXT NOT NULL,
    reference_id         TEXT NOT NULL,
    reference_type       INTEGER NOT NULL,
    request_fingerprint  TEXT NOT NULL DEFAULT '',
    response_snapshot    TEXT NOT NULL DEFAULT '{}',
    created_at           TEXT NOT NULL,
    expired_at           TEXT NOT NULL
);
"""

_IDEMPOTENCY_INDEXES = [
    # 幂等键唯一约束：并发首次请求只有一个能写入
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_idempotency_scope_key "
        "ON idempotency_keys(tenant_id, workspace_id, action, key);"
    ),
]


async def init_db(conn: aiosqlite.Connection, busy_timeout_ms: int = 5000) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
        busy_timeout_ms: 写锁等待超时（毫秒）
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")

    # 创建表
    await conn.execute(_TASKS_DDL)
    await conn.execute(_TASK_EVENTS_DDL)
    await conn.execute(_IDEMPOTENCY_DDL)

    # 创建索引
    for idx_sql in _TASKS_INDEXES + _TASK_EVENTS_INDEXES + _IDEMPOTENCY_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
