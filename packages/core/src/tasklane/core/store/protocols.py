"""Store Protocol 接口定义

定义查询执行器与 TaskStore、EventStore、IdempotencyStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
写操作必须显式传入事务句柄；读操作未传入时在独立短事务中执行。
"""

from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from ..models.enums import IdempotencyAction
from ..models.event import TaskEvent, TaskEventCreate
from ..models.idempotency import IdempotencyRecord, IdempotencyRecordCreate
from ..models.task import Task, TaskCreateInput


class QueryExecutor(Protocol):
    """查询执行器 -- Database 与 Transaction 均满足此接口"""

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """执行写语句，返回受影响行数"""
        ...

    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Any | None:
        """返回第一行或 None"""
        ...

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> Iterable[Any]:
        """返回所有行"""
        ...


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, data: TaskCreateInput, tx: QueryExecutor) -> Task:
        """插入任务，version 从 1 开始"""
        ...

    async def get_task(
        self,
        task_id: str,
        tenant_id: str,
        workspace_id: str,
        tx: QueryExecutor | None = None,
    ) -> Task | None:
        """按 tenant/workspace 范围查询任务；非法 ID 视为不存在"""
        ...

    async def assign_task(
        self,
        task_id: str,
        assignee_id: str,
        expected_version: int,
        tenant_id: str,
        workspace_id: str,
        tx: QueryExecutor,
    ) -> Task:
        """条件更新负责人；0 行受影响时抛出 VersionMismatchError"""
        ...


class EventStore(Protocol):
    """Event 存储接口

    事件表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_event(self, event: TaskEventCreate, tx: QueryExecutor) -> TaskEvent:
        """追加事件（append-only）"""
        ...

    async def get_events_for_task(
        self,
        task_id: str,
        tenant_id: str,
        workspace_id: str,
        tx: QueryExecutor | None = None,
    ) -> list[TaskEvent]:
        """按写入顺序查询指定任务的事件"""
        ...


class IdempotencyStore(Protocol):
    """幂等记录存储接口"""

    async def find_by_key(
        self,
        tenant_id: str,
        workspace_id: str,
        action: IdempotencyAction,
        key: str,
        tx: QueryExecutor | None = None,
    ) -> IdempotencyRecord | None:
        """按唯一键查询幂等记录"""
        ...

    async def create_record(
        self, record: IdempotencyRecordCreate, tx: QueryExecutor
    ) -> IdempotencyRecord:
        """写入幂等记录；唯一键冲突时抛出 IdempotencyKeyConflictError"""
        ...
