"""TaskWorkflow 测试

测试内容：
1. create：version 1、无负责人、TASK_CREATED 事件快照一致
2. 幂等：相同 key 重复 create / assign 回放同一结果，只落一行任务和一条事件
3. assign：乐观锁版本冲突、终态不可分配、不存在的任务
4. 原子性：事件写入失败时任务与幂等记录一并回滚
5. 幂等键竞争：唯一约束失败方回放胜出方结果
"""

import pytest
from tasklane.core.exceptions import ConflictError, NotFoundError, ValidationError
from tasklane.core.models import (
    IdempotencyAction,
    TaskAssignInput,
    TaskEventType,
    TaskPriority,
    TaskState,
)
from tasklane.core.workflow import request_fingerprint
from ulid import ULID


async def _count(core_stores, table: str) -> int:
    row = await core_stores.db.fetch_one(f"SELECT COUNT(*) AS n FROM {table}")
    return row["n"]


def _assign_input(task_id: str, expected_version: int, assignee_id: str = "u1", **kw):
    data = {
        "task_id": task_id,
        "tenant_id": "t1",
        "workspace_id": "w1",
        "assignee_id": assignee_id,
        "expected_version": expected_version,
    }
    data.update(kw)
    return TaskAssignInput(**data)


class TestCreate:
    """任务创建"""

    async def test_create_returns_new_task(self, workflow, make_create_input):
        """新任务 version=1，无负责人，状态 NEW"""
        task = await workflow.create(make_create_input(title="Ship it"))

        assert task.title == "Ship it"
        assert task.priority == TaskPriority.MEDIUM
        assert task.state == TaskState.NEW
        assert task.version == 1
        assert task.assignee_id is None

    async def test_create_appends_event_with_snapshot(
        self, workflow, core_stores, make_create_input
    ):
        """TASK_CREATED 事件快照与返回的任务一致"""
        task = await workflow.create(make_create_input())

        events = await core_stores.event_store.get_events_for_task(task.id, "t1", "w1")
        assert len(events) == 1
        assert events[0].event_type == TaskEventType.TASK_CREATED
        assert events[0].snapshot == task.model_dump(mode="json")

    async def test_create_honours_state_override(self, workflow, make_create_input):
        task = await workflow.create(make_create_input(state=TaskState.IN_PROGRESS))
        assert task.state == TaskState.IN_PROGRESS

    async def test_create_without_key_writes_no_idempotency_record(
        self, workflow, core_stores, make_create_input
    ):
        await workflow.create(make_create_input())
        assert await _count(core_stores, "idempotency_keys") == 0


class TestCreateIdempotency:
    """创建幂等"""

    async def test_same_key_replays_first_result(
        self, workflow, core_stores, make_create_input
    ):
        """相同 key 任意 payload 都回放第一次的结果"""
        first = await workflow.create(make_create_input(title="first"), "create-001")
        second = await workflow.create(
            make_create_input(title="second", priority=TaskPriority.HIGH), "create-001"
        )

        assert second == first
        assert second.title == "first"
        assert await _count(core_stores, "tasks") == 1
        assert await _count(core_stores, "task_events") == 1
        assert await _count(core_stores, "idempotency_keys") == 1

    async def test_record_references_created_task(
        self, workflow, core_stores, make_create_input
    ):
        data = make_create_input()
        task = await workflow.create(data, "create-002")

        record = await core_stores.idempotency_store.find_by_key(
            "t1", "w1", IdempotencyAction.TASK_CREATE, "create-002"
        )
        assert record is not None
        assert record.reference_id == task.id
        assert record.request_fingerprint == request_fingerprint(data)
        assert record.response_snapshot == task.model_dump(mode="json")

    async def test_key_scoped_by_workspace(self, workflow, core_stores, make_create_input):
        """不同 workspace 使用相同 key 各自创建"""
        first = await workflow.create(make_create_input(workspace_id="w1"), "shared")
        second = await workflow.create(make_create_input(workspace_id="w2"), "shared")

        assert first.id != second.id
        assert await _count(core_stores, "tasks") == 2

    async def test_race_loser_replays_winner(
        self, workflow, core_stores, make_create_input, monkeypatch
    ):
        """并发首次请求：唯一约束失败方回滚后回放胜出方结果"""
        winner = await workflow.create(make_create_input(title="winner"), "race-001")

        store = core_stores.idempotency_store
        original_find = store.find_by_key

        async def racy_find(tenant_id, workspace_id, action, key, tx=None):
            # 模拟事务内查询时胜出方尚未提交
            if tx is not None:
                return None
            return await original_find(tenant_id, workspace_id, action, key, tx)

        monkeypatch.setattr(store, "find_by_key", racy_find)

        loser = await workflow.create(make_create_input(title="loser"), "race-001")

        assert loser == winner
        assert await _count(core_stores, "tasks") == 1
        assert await _count(core_stores, "task_events") == 1
        assert await _count(core_stores, "idempotency_keys") == 1


class TestCreateAtomicity:
    """事务原子性"""

    async def test_event_failure_rolls_back_task(
        self, workflow, core_stores, make_create_input, monkeypatch
    ):
        """事件写入失败时任务和幂等记录都不落盘"""

        async def broken_append(event, tx):
            raise RuntimeError("event store unavailable")

        monkeypatch.setattr(core_stores.event_store, "append_event", broken_append)

        with pytest.raises(RuntimeError):
            await workflow.create(make_create_input(), "atomic-001")

        assert await _count(core_stores, "tasks") == 0
        assert await _count(core_stores, "task_events") == 0
        assert await _count(core_stores, "idempotency_keys") == 0

    async def test_idempotency_failure_rolls_back_task_and_event(
        self, workflow, core_stores, make_create_input, monkeypatch
    ):
        async def broken_create_record(record, tx):
            raise RuntimeError("disk full")

        monkeypatch.setattr(
            core_stores.idempotency_store, "create_record", broken_create_record
        )

        with pytest.raises(RuntimeError):
            await workflow.create(make_create_input(), "atomic-002")

        assert await _count(core_stores, "tasks") == 0
        assert await _count(core_stores, "task_events") == 0


class TestAssign:
    """任务分配"""

    async def test_assign_increments_version(self, workflow, core_stores, make_create_input):
        """expected_version = N 成功后 version = N + 1"""
        task = await workflow.create(make_create_input())

        updated = await workflow.assign(_assign_input(task.id, 1))

        assert updated.assignee_id == "u1"
        assert updated.version == 2
        events = await core_stores.event_store.get_events_for_task(task.id, "t1", "w1")
        assert [e.event_type for e in events] == [
            TaskEventType.TASK_CREATED,
            TaskEventType.TASK_ASSIGNED,
        ]
        assert events[1].snapshot == updated.model_dump(mode="json")

    async def test_stale_version_conflicts(self, workflow, make_create_input):
        """第二次使用相同 expected_version 返回 Conflict"""
        task = await workflow.create(make_create_input())
        await workflow.assign(_assign_input(task.id, 1))

        with pytest.raises(ConflictError) as exc_info:
            await workflow.assign(_assign_input(task.id, 1, assignee_id="u2"))

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    async def test_conflict_writes_nothing(self, workflow, core_stores, make_create_input):
        task = await workflow.create(make_create_input())

        with pytest.raises(ConflictError):
            await workflow.assign(_assign_input(task.id, 7), "assign-conflict")

        assert await _count(core_stores, "task_events") == 1
        assert await _count(core_stores, "idempotency_keys") == 0
        current = await core_stores.task_store.get_task(task.id, "t1", "w1")
        assert current.version == 1

    async def test_reassign_in_progress(self, workflow, make_create_input):
        task = await workflow.create(make_create_input(state=TaskState.IN_PROGRESS))

        first = await workflow.assign(_assign_input(task.id, 1, assignee_id="u1"))
        second = await workflow.assign(_assign_input(task.id, 2, assignee_id="u2"))

        assert first.version == 2
        assert second.version == 3
        assert second.assignee_id == "u2"

    @pytest.mark.parametrize("state", [TaskState.DONE, TaskState.CANCELLED])
    async def test_terminal_state_rejected(self, workflow, make_create_input, state):
        """终态任务无论版本是否正确都不可分配"""
        task = await workflow.create(make_create_input(state=state))

        with pytest.raises(ValidationError) as exc_info:
            await workflow.assign(_assign_input(task.id, 1))
        assert exc_info.value.field == "state"

    async def test_missing_task_not_found(self, workflow):
        with pytest.raises(NotFoundError) as exc_info:
            await workflow.assign(_assign_input(str(ULID()), 1))
        assert exc_info.value.resource == "task"

    async def test_invalid_task_id_not_found(self, workflow):
        with pytest.raises(NotFoundError):
            await workflow.assign(_assign_input("not-a-ulid", 1))

    async def test_other_tenant_not_found(self, workflow, make_create_input):
        """跨租户访问表现为不存在"""
        task = await workflow.create(make_create_input(tenant_id="t1"))

        with pytest.raises(NotFoundError):
            await workflow.assign(_assign_input(task.id, 1, tenant_id="t2"))


class TestAssignIdempotency:
    """分配幂等"""

    async def test_same_key_replays_assignment(
        self, workflow, core_stores, make_create_input
    ):
        """相同 key 重放不会因版本过期而冲突"""
        task = await workflow.create(make_create_input())

        first = await workflow.assign(_assign_input(task.id, 1), "assign-001")
        replay = await workflow.assign(_assign_input(task.id, 1), "assign-001")

        assert replay == first
        assert replay.version == 2
        assert await _count(core_stores, "task_events") == 2

    async def test_create_and_assign_keys_are_independent(
        self, workflow, make_create_input
    ):
        """同一 key 在 TASK_CREATE 与 TASK_ASSIGN 下互不影响"""
        task = await workflow.create(make_create_input(), "same-key")

        updated = await workflow.assign(_assign_input(task.id, 1), "same-key")

        assert updated.version == 2
        assert updated.assignee_id == "u1"


class TestFingerprint:
    def test_fingerprint_is_stable(self, make_create_input):
        assert request_fingerprint(make_create_input()) == request_fingerprint(
            make_create_input()
        )

    def test_fingerprint_differs_by_payload(self, make_create_input):
        assert request_fingerprint(make_create_input(title="a")) != request_fingerprint(
            make_create_input(title="b")
        )
