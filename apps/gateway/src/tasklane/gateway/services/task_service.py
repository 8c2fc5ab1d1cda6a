"""TaskService -- createTask / assignTask 业务入口

流程：
1. 请求校验与角色授权（事务开启前）
2. 转换为领域输入，调用 TaskWorkflow（单事务）
3. 包装为 TaskResult 返回
"""

from tasklane.core.models import (
    AssignTaskRequest,
    CreateTaskRequest,
    TaskResult,
)
from tasklane.core.validation import validate_assign_request, validate_create_request
from tasklane.core.workflow import TaskWorkflow


class TaskService:
    """任务业务服务"""

    def __init__(self, workflow: TaskWorkflow) -> None:
        self._workflow = workflow

    async def create_task(self, request: CreateTaskRequest) -> TaskResult:
        """创建任务

        Raises:
            ValidationError: 输入缺失或非法
        """
        data = validate_create_request(request)
        task = await self._workflow.create(data, request.idempotency_key)
        return TaskResult(task=task)

    async def assign_task(self, request: AssignTaskRequest) -> TaskResult:
        """分配任务负责人

        Raises:
            AuthorizationError: 非 MANAGER 角色
            ValidationError: 输入缺失或任务状态不允许分配
            NotFoundError: 任务不存在
            ConflictError: 版本冲突
        """
        data = validate_assign_request(request)
        task = await self._workflow.assign(data, request.idempotency_key)
        return TaskResult(task=task)
