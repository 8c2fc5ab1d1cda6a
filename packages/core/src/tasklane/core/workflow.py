"""TaskWorkflow -- 任务写入流水线

create / assign 各自在单个事务内完成，事务内顺序固定：
1. 幂等键查询（命中则直接回放已记录的结果）
2. Task 写入（插入或按 version 条件更新）
3. 追加 TaskEvent（outbox，与变更同事务提交）
4. 写入幂等记录（若提供幂等键）

任一步骤失败整个事务回滚；业务异常（NotFound / Validation / Conflict）不做内部重试。
两个并发首次请求使用同一幂等键时，失败方回滚后在新事务中回放胜出方的结果。
"""

import hashlib
import json
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel

from .config import IDEMPOTENCY_RETENTION
from .exceptions import (
    ConflictError,
    IdempotencyKeyConflictError,
    NotFoundError,
    StoreInvariantError,
    ValidationError,
    VersionMismatchError,
)
from .models.enums import (
    IdempotencyAction,
    IdempotencyReferenceType,
    TaskEventType,
    can_assign,
)
from .models.event import TaskEventCreate
from .models.idempotency import IdempotencyRecord, IdempotencyRecordCreate
from .models.task import Task, TaskAssignInput, TaskCreateInput
from .store import StoreGroup
from .store.protocols import EventStore, IdempotencyStore, QueryExecutor, TaskStore
from .store.transaction import Database

log = structlog.get_logger()


def request_fingerprint(data: BaseModel) -> str:
    """逻辑请求的 sha256 指纹（canonical JSON）"""
    canonical = json.dumps(
        data.model_dump(mode="json"), sort_keys=True, separators=(",", ":")
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class TaskWorkflow:
    """任务工作流引擎 -- 无状态，每次调用只依赖参数与事务句柄"""

    def __init__(
        self,
        db: Database,
        task_store: TaskStore,
        event_store: EventStore,
        idempotency_store: IdempotencyStore,
    ) -> None:
        self._db = db
        self._task_store = task_store
        self._event_store = event_store
        self._idempotency_store = idempotency_store

    @classmethod
    def from_store_group(cls, stores: StoreGroup) -> "TaskWorkflow":
        return cls(
            stores.db,
            stores.task_store,
            stores.event_store,
            stores.idempotency_store,
        )

    async def create(
        self, data: TaskCreateInput, idempotency_key: str | None = None
    ) -> Task:
        """创建任务

        Returns:
            新建的 Task；幂等键命中时返回已记录的 Task
        """
        fingerprint = request_fingerprint(data)
        try:
            async with self._db.transaction() as tx:
                if idempotency_key:
                    record = await self._idempotency_store.find_by_key(
                        data.tenant_id,
                        data.workspace_id,
                        IdempotencyAction.TASK_CREATE,
                        idempotency_key,
                        tx,
                    )
                    if record is not None:
                        return self._replay(record, fingerprint)

                task = await self._task_store.create_task(data, tx)
                await self._record_outcome(
                    tx,
                    task,
                    TaskEventType.TASK_CREATED,
                    IdempotencyAction.TASK_CREATE,
                    idempotency_key,
                    fingerprint,
                )
        except IdempotencyKeyConflictError:
            return await self._replay_race_winner(
                data.tenant_id,
                data.workspace_id,
                IdempotencyAction.TASK_CREATE,
                idempotency_key,
                fingerprint,
            )

        log.info(
            "task_created",
            task_id=task.id,
            tenant_id=task.tenant_id,
            workspace_id=task.workspace_id,
        )
        return task

    async def assign(
        self, data: TaskAssignInput, idempotency_key: str | None = None
    ) -> Task:
        """分配任务负责人（乐观锁）

        Raises:
            NotFoundError: 任务不存在于该 tenant/workspace
            ValidationError: 任务状态不允许分配
            ConflictError: expected_version 与当前版本不一致
        """
        fingerprint = request_fingerprint(data)
        try:
            async with self._db.transaction() as tx:
                if idempotency_key:
                    record = await self._idempotency_store.find_by_key(
                        data.tenant_id,
                        data.workspace_id,
                        IdempotencyAction.TASK_ASSIGN,
                        idempotency_key,
                        tx,
                    )
                    if record is not None:
                        return self._replay(record, fingerprint)

                current = await self._task_store.get_task(
                    data.task_id, data.tenant_id, data.workspace_id, tx
                )
                if current is None:
                    raise NotFoundError(
                        f"Task {data.task_id} not found", resource="task"
                    )

                if not can_assign(current.state):
                    raise ValidationError(
                        f"Task in state {current.state.name} cannot be assigned",
                        field="state",
                    )

                try:
                    task = await self._task_store.assign_task(
                        data.task_id,
                        data.assignee_id,
                        data.expected_version,
                        data.tenant_id,
                        data.workspace_id,
                        tx,
                    )
                except VersionMismatchError:
                    log.warning(
                        "task_version_conflict",
                        task_id=data.task_id,
                        expected_version=data.expected_version,
                        actual_version=current.version,
                    )
                    raise ConflictError(
                        "Task version mismatch",
                        expected_version=data.expected_version,
                        actual_version=current.version,
                    ) from None

                await self._record_outcome(
                    tx,
                    task,
                    TaskEventType.TASK_ASSIGNED,
                    IdempotencyAction.TASK_ASSIGN,
                    idempotency_key,
                    fingerprint,
                )
        except IdempotencyKeyConflictError:
            return await self._replay_race_winner(
                data.tenant_id,
                data.workspace_id,
                IdempotencyAction.TASK_ASSIGN,
                idempotency_key,
                fingerprint,
            )

        log.info(
            "task_assigned",
            task_id=task.id,
            tenant_id=task.tenant_id,
            workspace_id=task.workspace_id,
            assignee_id=task.assignee_id,
            version=task.version,
        )
        return task

    async def _record_outcome(
        self,
        tx: QueryExecutor,
        task: Task,
        event_type: TaskEventType,
        action: IdempotencyAction,
        idempotency_key: str | None,
        fingerprint: str,
    ) -> None:
        """同事务内追加事件快照，并在提供幂等键时写入幂等记录"""
        snapshot = task.model_dump(mode="json")
        await self._event_store.append_event(
            TaskEventCreate(
                tenant_id=task.tenant_id,
                workspace_id=task.workspace_id,
                task_id=task.id,
                event_type=event_type,
                snapshot=snapshot,
            ),
            tx,
        )

        if idempotency_key:
            await self._idempotency_store.create_record(
                IdempotencyRecordCreate(
                    tenant_id=task.tenant_id,
                    workspace_id=task.workspace_id,
                    action=action,
                    key=idempotency_key,
                    reference_id=task.id,
                    reference_type=IdempotencyReferenceType.TASK,
                    request_fingerprint=fingerprint,
                    response_snapshot=snapshot,
                    expired_at=datetime.now(UTC) + IDEMPOTENCY_RETENTION,
                ),
                tx,
            )

    @staticmethod
    def _replay(record: IdempotencyRecord, fingerprint: str) -> Task:
        """回放已记录的结果

        指纹不一致只记录 warning，仍按幂等键回放。
        """
        if record.request_fingerprint != fingerprint:
            log.warning(
                "idempotency_fingerprint_mismatch",
                action=record.action.name,
                key=record.key,
                reference_id=record.reference_id,
            )
        log.info(
            "idempotency_replay",
            action=record.action.name,
            key=record.key,
            reference_id=record.reference_id,
        )
        return Task.model_validate(record.response_snapshot)

    async def _replay_race_winner(
        self,
        tenant_id: str,
        workspace_id: str,
        action: IdempotencyAction,
        idempotency_key: str | None,
        fingerprint: str,
    ) -> Task:
        """唯一键冲突后（本事务已回滚）在新事务中读取胜出方记录并回放"""
        record = None
        if idempotency_key:
            record = await self._idempotency_store.find_by_key(
                tenant_id, workspace_id, action, idempotency_key
            )
        if record is None:
            raise StoreInvariantError(
                "idempotency key conflict reported but no record found"
            )
        log.info(
            "idempotency_race_replay",
            action=action.name,
            key=idempotency_key,
            reference_id=record.reference_id,
        )
        return self._replay(record, fingerprint)
