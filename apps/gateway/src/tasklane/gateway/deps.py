"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store / TaskService 实例

StoreGroup 通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Depends, Request
from tasklane.core.store import StoreGroup
from tasklane.core.workflow import TaskWorkflow

from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_task_service(
    store_group: StoreGroup = Depends(get_store_group),
) -> TaskService:
    """基于共享 StoreGroup 构建 TaskService（工作流无状态，按请求创建）"""
    return TaskService(TaskWorkflow.from_store_group(store_group))
