"""请求校验与授权 -- 事务开启前的纯函数检查

校验通过后将请求 DTO 转换为领域输入；任何失败都在开启事务之前抛出，无需回滚。
"""

from typing import Any

from .config import TITLE_MAX_LENGTH, VERSION_MAX, VERSION_MIN
from .exceptions import AuthorizationError, ValidationError
from .models.enums import TaskPriority, TaskState, UserRole, coerce_enum
from .models.requests import AssignTaskRequest, CreateTaskRequest
from .models.task import TaskAssignInput, TaskCreateInput


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", field)
    return value


def version_in_range(version: int) -> bool:
    """version 是否可存入 SQLite INTEGER"""
    return VERSION_MIN <= version <= VERSION_MAX


def parse_priority(value: Any) -> TaskPriority:
    """解析优先级；未提供时默认 MEDIUM

    Raises:
        ValidationError: 不是已声明的优先级
    """
    if value is None:
        return TaskPriority.MEDIUM
    try:
        return coerce_enum(TaskPriority, value)
    except ValueError:
        raise ValidationError("invalid priority value", "priority") from None


def validate_create_request(request: CreateTaskRequest) -> TaskCreateInput:
    """校验 createTask 请求并生成领域输入（state 固定为 NEW）"""
    tenant_id = _require_text(request.tenant_id, "tenant_id")
    workspace_id = _require_text(request.workspace_id, "workspace_id")
    title = _require_text(request.title, "title")

    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"title must be {TITLE_MAX_LENGTH} characters or less", "title"
        )

    priority = parse_priority(request.priority)

    if request.role == UserRole.UNSPECIFIED:
        raise ValidationError("role is required (Agent or Manager)", "role")

    return TaskCreateInput(
        tenant_id=tenant_id,
        workspace_id=workspace_id,
        title=title,
        priority=priority,
        state=TaskState.NEW,
    )


def validate_assign_request(request: AssignTaskRequest) -> TaskAssignInput:
    """校验 assignTask 请求并生成领域输入

    角色检查先于其他字段：只有 MANAGER 可以分配任务。
    """
    if request.role != UserRole.MANAGER:
        raise AuthorizationError("Only managers can assign tasks")

    tenant_id = _require_text(request.tenant_id, "tenant_id")
    workspace_id = _require_text(request.workspace_id, "workspace_id")
    task_id = _require_text(request.task_id, "task_id")
    assignee_id = _require_text(request.assignee_id, "assignee_id")

    # 0 是合法输入，只拒绝缺失
    if request.expected_version is None:
        raise ValidationError("expected_version is required", "expected_version")
    if not version_in_range(request.expected_version):
        raise ValidationError("expected_version is out of range", "expected_version")

    return TaskAssignInput(
        task_id=task_id,
        tenant_id=tenant_id,
        workspace_id=workspace_id,
        assignee_id=assignee_id,
        expected_version=request.expected_version,
    )
