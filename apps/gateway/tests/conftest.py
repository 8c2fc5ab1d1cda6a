"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tasklane.core.store import create_store_group


@pytest.fixture
def gateway_env(tmp_path: Path, monkeypatch) -> Path:
    """设置测试环境变量，返回数据库路径"""
    db_path = tmp_path / "sqlite" / "test.db"
    monkeypatch.setenv("TASKLANE_DB_PATH", str(db_path))
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    return db_path


@pytest_asyncio.fixture
async def app(gateway_env: Path):
    """创建测试用 FastAPI app 实例

    ASGITransport 不触发 lifespan，这里手动初始化 StoreGroup。
    """
    from tasklane.gateway.main import create_app

    application = create_app()
    store_group = await create_store_group(str(gateway_env))
    application.state.store_group = store_group

    yield application

    await store_group.close()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def create_task(client: AsyncClient):
    """通过 HTTP 创建任务的工厂，返回响应中的 task"""

    async def _create(
        title: str = "Ship it",
        workspace_id: str = "w1",
        tenant_id: str = "t1",
        **body,
    ) -> dict:
        resp = await client.post(
            f"/v1/workspaces/{workspace_id}/tasks",
            json={"title": title, **body},
            headers={"x-tenant-id": tenant_id, "x-role": "agent"},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["task"]

    return _create
