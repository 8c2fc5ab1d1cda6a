"""tasklane Core Store -- SQLite 持久化实现

提供工厂函数创建共享同一 Database 句柄的 Store 实例组。
"""

from pathlib import Path

from .event_store import SqliteEventStore
from .idempotency_store import SqliteIdempotencyStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import Database, Transaction


class StoreGroup:
    """Store 实例组 -- 共享同一个 Database 句柄"""

    def __init__(self, db: Database) -> None:
        self.db = db
        self.task_store = SqliteTaskStore(db)
        self.event_store = SqliteEventStore(db)
        self.idempotency_store = SqliteIdempotencyStore(db)

    async def close(self) -> None:
        await self.db.close()


async def create_store_group(
    db_path: str,
    busy_timeout_ms: int = 5000,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        busy_timeout_ms: SQLite busy_timeout（毫秒）

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    db = await Database.connect(db_path)
    await init_db(db.conn, busy_timeout_ms=busy_timeout_ms)

    return StoreGroup(db)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "Database",
    "Transaction",
    "SqliteTaskStore",
    "SqliteEventStore",
    "SqliteIdempotencyStore",
    "init_db",
]
