"""IdempotencyStore SQLite 实现

(tenant_id, workspace_id, action, key) 上有唯一索引：
两个并发首次请求只有一个能写入，另一个得到 IdempotencyKeyConflictError，
由工作流引擎回滚后回放胜出方的结果。
记录写入后不再修改；expired_at 仅记录，不做过期清理。
"""

import json
from datetime import UTC, datetime

import aiosqlite
from ulid import ULID

from ..exceptions import IdempotencyKeyConflictError, StoreInvariantError
from ..models.enums import IdempotencyAction, IdempotencyReferenceType
from ..models.idempotency import IdempotencyRecord, IdempotencyRecordCreate
from .protocols import QueryExecutor
from .transaction import Database


class SqliteIdempotencyStore:
    """IdempotencyStore 的 SQLite 实现"""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def find_by_key(
        self,
        tenant_id: str,
        workspace_id: str,
        action: IdempotencyAction,
        key: str,
        tx: QueryExecutor | None = None,
    ) -> IdempotencyRecord | None:
        """按唯一键查询幂等记录"""
        executor = tx or self._db
        row = await executor.fetch_one(
            """
            SELECT * FROM idempotency_keys
            WHERE tenant_id = ? AND workspace_id = ? AND action = ? AND key = ?
            LIMIT 1
            """,
            (tenant_id, workspace_id, int(action), key),
        )
        if row is None:
            return None
        return self._row_to_record(row)

    async def create_record(
        self, record: IdempotencyRecordCreate, tx: QueryExecutor
    ) -> IdempotencyRecord:
        """写入幂等记录

        Raises:
            IdempotencyKeyConflictError: 唯一键已存在
            StoreInvariantError: 插入未返回任何行
        """
        try:
            row = await tx.fetch_one(
                """
                INSERT INTO idempotency_keys (id, tenant_id, workspace_id, action, key,
                                              reference_id, reference_type,
                                              request_fingerprint, response_snapshot,
                                              created_at, expired_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                RETURNING id, created_at
                """,
                (
                    str(ULID()),
                    record.tenant_id,
                    record.workspace_id,
                    int(record.action),
                    record.key,
                    record.reference_id,
                    int(record.reference_type),
                    record.request_fingerprint,
                    json.dumps(record.response_snapshot, ensure_ascii=False),
                    datetime.now(UTC).isoformat(),
                    record.expired_at.isoformat(),
                ),
            )
        except aiosqlite.IntegrityError as e:
            if "idempotency_keys" not in str(e):
                raise
            raise IdempotencyKeyConflictError(
                record.tenant_id, record.workspace_id, int(record.action), record.key
            ) from e

        if row is None:
            raise StoreInvariantError("Failed to create idempotency key")

        return IdempotencyRecord(
            id=row["id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            **record.model_dump(),
        )

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> IdempotencyRecord:
        """将数据库行转换为 IdempotencyRecord 模型"""
        return IdempotencyRecord(
            id=row["id"],
            tenant_id=row["tenant_id"],
            workspace_id=row["workspace_id"],
            action=IdempotencyAction(row["action"]),
            key=row["key"],
            reference_id=row["reference_id"],
            reference_type=IdempotencyReferenceType(row["reference_type"]),
            request_fingerprint=row["request_fingerprint"],
            response_snapshot=json.loads(row["response_snapshot"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            expired_at=datetime.fromisoformat(row["expired_at"]),
        )
