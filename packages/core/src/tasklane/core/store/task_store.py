"""TaskStore SQLite 实现

所有查询与更新的 WHERE 条件都包含 tenant_id 和 workspace_id，跨租户访问在 SQL 层即不可能。
assign_task 是唯一的并发原语：version 作为条件更新谓词，
同一 version 的并发更新只有一个能成功。
"""

from datetime import UTC, datetime

import aiosqlite
from ulid import ULID

from ..exceptions import StoreInvariantError, VersionMismatchError
from ..models.task import Task, TaskCreateInput
from .protocols import QueryExecutor
from .transaction import Database

_TASK_COLUMNS = (
    "task_id, tenant_id, workspace_id, title, priority, state, "
    "assignee_id, version, created_at, updated_at"
)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_task(self, data: TaskCreateInput, tx: QueryExecutor) -> Task:
        """插入任务，返回包含 Store 分配的 id / version / 时间戳的完整 Task"""
        now = datetime.now(UTC).isoformat()
        row = await tx.fetch_one(
            f"""
            INSERT INTO tasks (task_id, tenant_id, workspace_id, title, priority,
                               state, assignee_id, version, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, NULL, 1, ?, ?)
            RETURNING {_TASK_COLUMNS}
            """,
            (
                str(ULID()),
                data.tenant_id,
                data.workspace_id,
                data.title,
                int(data.priority),
                int(data.state),
                now,
                now,
            ),
        )
        if row is None:
            raise StoreInvariantError("Failed to create task")
        return self._row_to_task(row)

    async def get_task(
        self,
        task_id: str,
        tenant_id: str,
        workspace_id: str,
        tx: QueryExecutor | None = None,
    ) -> Task | None:
        """按 tenant/workspace 范围查询任务，非法 ULID 视为不存在"""
        if not self._is_valid_id(task_id):
            return None
        executor = tx or self._db
        row = await executor.fetch_one(
            f"""
            SELECT {_TASK_COLUMNS} FROM tasks
            WHERE task_id = ? AND tenant_id = ? AND workspace_id = ?
            """,
            (task_id, tenant_id, workspace_id),
        )
        if row is None:
            return None
        return self._row_to_task(row)

    async def assign_task(
        self,
        task_id: str,
        assignee_id: str,
        expected_version: int,
        tenant_id: str,
        workspace_id: str,
        tx: QueryExecutor,
    ) -> Task:
        """条件更新负责人，version + 1

        Raises:
            VersionMismatchError: 0 行受影响（版本不匹配或任务不存在）
        """
        row = await tx.fetch_one(
            f"""
            UPDATE tasks
            SET assignee_id = ?, version = version + 1, updated_at = ?
            WHERE task_id = ? AND tenant_id = ? AND workspace_id = ? AND version = ?
            RETURNING {_TASK_COLUMNS}
            """,
            (
                assignee_id,
                datetime.now(UTC).isoformat(),
                task_id,
                tenant_id,
                workspace_id,
                expected_version,
            ),
        )
        if row is None:
            raise VersionMismatchError(task_id, expected_version)
        return self._row_to_task(row)

    @staticmethod
    def _is_valid_id(task_id: str) -> bool:
        try:
            ULID.from_str(task_id)
        except (ValueError, TypeError):
            return False
        return True

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            id=row["task_id"],
            tenant_id=row["tenant_id"],
            workspace_id=row["workspace_id"],
            title=row["title"],
            priority=row["priority"],
            state=row["state"],
            assignee_id=row["assignee_id"],
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
