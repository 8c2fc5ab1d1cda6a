"""请求 DTO -- 请求层传入的原始输入，尚未校验

字段均允许缺省，缺失/非法值由 tasklane.core.validation 报告为 ValidationError。
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import UserRole
from .task import Task


class CreateTaskRequest(BaseModel):
    """createTask 请求"""

    tenant_id: str | None = None
    workspace_id: str | None = None
    title: str | None = None
    priority: Any = Field(default=None, description="枚举成员、成员名或成员值")
    idempotency_key: str | None = None
    role: UserRole = UserRole.UNSPECIFIED


class AssignTaskRequest(BaseModel):
    """assignTask 请求"""

    task_id: str | None = None
    tenant_id: str | None = None
    workspace_id: str | None = None
    assignee_id: str | None = None
    expected_version: int | None = None
    role: UserRole = UserRole.UNSPECIFIED
    idempotency_key: str | None = None


class TaskResult(BaseModel):
    """createTask / assignTask 结果"""

    task: Task
