"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from tasklane.core.models import TaskCreateInput, TaskPriority, TaskState
from tasklane.core.store import StoreGroup
from tasklane.core.workflow import TaskWorkflow


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def core_stores(core_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """核心层已初始化的 StoreGroup"""
    from tasklane.core.store import create_store_group

    group = await create_store_group(str(core_db_path))
    yield group
    await group.close()


@pytest_asyncio.fixture
async def workflow(core_stores: StoreGroup) -> TaskWorkflow:
    """基于临时数据库的 TaskWorkflow"""
    return TaskWorkflow.from_store_group(core_stores)


@pytest.fixture
def make_create_input():
    """TaskCreateInput 工厂"""

    def _make(
        title: str = "Ship it",
        tenant_id: str = "t1",
        workspace_id: str = "w1",
        priority: TaskPriority = TaskPriority.MEDIUM,
        state: TaskState = TaskState.NEW,
    ) -> TaskCreateInput:
        return TaskCreateInput(
            tenant_id=tenant_id,
            workspace_id=workspace_id,
            title=title,
            priority=priority,
            state=state,
        )

    return _make
