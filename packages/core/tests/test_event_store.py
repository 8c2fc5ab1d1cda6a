"""EventStore 单元测试

测试内容：
1. 追加事件返回 Store 分配的 id / created_at
2. 快照 JSON 原样保存
3. 按写入顺序、按 tenant/workspace 范围查询
"""

from tasklane.core.models import TaskEventCreate, TaskEventType


async def _create_task(core_stores, make_create_input):
    async with core_stores.db.transaction() as tx:
        return await core_stores.task_store.create_task(make_create_input(), tx)


class TestEventStore:
    async def test_append_returns_event(self, core_stores, make_create_input):
        task = await _create_task(core_stores, make_create_input)
        snapshot = task.model_dump(mode="json")

        async with core_stores.db.transaction() as tx:
            event = await core_stores.event_store.append_event(
                TaskEventCreate(
                    tenant_id="t1",
                    workspace_id="w1",
                    task_id=task.id,
                    event_type=TaskEventType.TASK_CREATED,
                    snapshot=snapshot,
                ),
                tx,
            )

        assert event.id
        assert event.event_type == TaskEventType.TASK_CREATED
        assert event.snapshot == snapshot
        assert event.created_at.tzinfo is not None

    async def test_events_listed_in_append_order(self, core_stores, make_create_input):
        task = await _create_task(core_stores, make_create_input)

        async with core_stores.db.transaction() as tx:
            for event_type in (TaskEventType.TASK_CREATED, TaskEventType.TASK_ASSIGNED):
                await core_stores.event_store.append_event(
                    TaskEventCreate(
                        tenant_id="t1",
                        workspace_id="w1",
                        task_id=task.id,
                        event_type=event_type,
                        snapshot={"title": "Ship it", "event": event_type.value},
                    ),
                    tx,
                )

        events = await core_stores.event_store.get_events_for_task(task.id, "t1", "w1")
        assert [e.event_type for e in events] == [
            TaskEventType.TASK_CREATED,
            TaskEventType.TASK_ASSIGNED,
        ]
        assert events[1].snapshot["event"] == "TASK_ASSIGNED"

    async def test_events_scoped_by_tenant(self, core_stores, make_create_input):
        task = await _create_task(core_stores, make_create_input)
        async with core_stores.db.transaction() as tx:
            await core_stores.event_store.append_event(
                TaskEventCreate(
                    tenant_id="t1",
                    workspace_id="w1",
                    task_id=task.id,
                    event_type=TaskEventType.TASK_CREATED,
                ),
                tx,
            )

        assert await core_stores.event_store.get_events_for_task(task.id, "t2", "w1") == []

    async def test_append_rolled_back_with_transaction(self, core_stores, make_create_input):
        """事件与事务同进退"""
        task = await _create_task(core_stores, make_create_input)

        try:
            async with core_stores.db.transaction() as tx:
                await core_stores.event_store.append_event(
                    TaskEventCreate(
                        tenant_id="t1",
                        workspace_id="w1",
                        task_id=task.id,
                        event_type=TaskEventType.TASK_ASSIGNED,
                    ),
                    tx,
                )
                raise RuntimeError("abort")
        except RuntimeError:
            pass

        assert await core_stores.event_store.get_events_for_task(task.id, "t1", "w1") == []
