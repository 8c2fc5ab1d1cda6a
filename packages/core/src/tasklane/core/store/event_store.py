"""EventStore SQLite 实现 -- outbox

事件表 append-only：只允许插入，不允许更新或删除。
事件只负责落盘，投递由外部 relay 完成。
"""

import json
from datetime import UTC, datetime

import aiosqlite
from ulid import ULID

from ..exceptions import StoreInvariantError
from ..models.enums import TaskEventType
from ..models.event import TaskEvent, TaskEventCreate
from .protocols import QueryExecutor
from .transaction import Database


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def append_event(self, event: TaskEventCreate, tx: QueryExecutor) -> TaskEvent:
        """追加事件（append-only）

        注意：此方法不提交事务，需由调用方管理事务。

        Raises:
            StoreInvariantError: 插入未返回任何行
        """
        row = await tx.fetch_one(
            """
            INSERT INTO task_events (event_id, tenant_id, workspace_id, task_id,
                                     event_type, snapshot, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            RETURNING event_id, created_at
            """,
            (
                str(ULID()),
                event.tenant_id,
                event.workspace_id,
                event.task_id,
                event.event_type.value,
                json.dumps(event.snapshot, ensure_ascii=False),
                datetime.now(UTC).isoformat(),
            ),
        )
        if row is None:
            raise StoreInvariantError("Failed to create task event")

        return TaskEvent(
            id=row["event_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            **event.model_dump(),
        )

    async def get_events_for_task(
        self,
        task_id: str,
        tenant_id: str,
        workspace_id: str,
        tx: QueryExecutor | None = None,
    ) -> list[TaskEvent]:
        """查询指定任务的所有事件，按写入顺序"""
        executor = tx or self._db
        rows = await executor.fetch_all(
            """
            SELECT * FROM task_events
            WHERE task_id = ? AND tenant_id = ? AND workspace_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (task_id, tenant_id, workspace_id),
        )
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> TaskEvent:
        """将数据库行转换为 TaskEvent 模型"""
        return TaskEvent(
            id=row["event_id"],
            tenant_id=row["tenant_id"],
            workspace_id=row["workspace_id"],
            task_id=row["task_id"],
            event_type=TaskEventType(row["event_type"]),
            snapshot=json.loads(row["snapshot"]) if row["snapshot"] else {},
            created_at=datetime.fromisoformat(row["created_at"]),
        )
