"""任务写入路由

POST /v1/workspaces/{workspace_id}/tasks: 创建任务，201。
POST /v1/workspaces/{workspace_id}/tasks/{task_id}/assign: 分配负责人，200。

租户、角色、幂等键、期望版本均从请求头读取，显式传给 TaskService。
业务异常由 errors.register_error_handlers 统一映射为 HTTP 状态码。
"""

from typing import Any

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, Field
from tasklane.core.exceptions import ValidationError
from tasklane.core.models import AssignTaskRequest, CreateTaskRequest, UserRole
from tasklane.core.validation import version_in_range

from ..deps import get_task_service
from ..serializers import serialize_task
from ..services.task_service import TaskService

router = APIRouter()


class CreateTaskBody(BaseModel):
    """创建任务请求体"""

    title: str | None = Field(default=None, description="任务标题，1-120 字符")
    # 原样交给 parse_priority，避免 true 被宽松模式转换为 1
    priority: Any = Field(
        default=None, description="优先级：LOW / MEDIUM / HIGH，默认 MEDIUM"
    )


class AssignTaskBody(BaseModel):
    """分配任务请求体"""

    assignee_id: str | None = Field(default=None, description="负责人用户 ID")


def parse_role(value: str | None) -> UserRole:
    """x-role 头（大小写不敏感）映射为 UserRole，无法识别时为 UNSPECIFIED"""
    if value:
        normalized = value.strip().upper()
        if normalized == "AGENT":
            return UserRole.AGENT
        if normalized == "MANAGER":
            return UserRole.MANAGER
    return UserRole.UNSPECIFIED


def parse_expected_version(value: str | None) -> int:
    """解析 if-match-version 头"""
    if value is None or not value.strip():
        raise ValidationError(
            "If-Match-Version header is required", "if-match-version"
        )
    try:
        version = int(value)
    except ValueError:
        raise ValidationError(
            "If-Match-Version must be a valid number", "if-match-version"
        ) from None
    if not version_in_range(version):
        raise ValidationError(
            "If-Match-Version is out of range", "if-match-version"
        )
    return version


@router.post("/v1/workspaces/{workspace_id}/tasks", status_code=201)
async def create_task(
    workspace_id: str,
    body: CreateTaskBody | None = None,
    x_tenant_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
    idempotency_key: str | None = Header(default=None),
    service: TaskService = Depends(get_task_service),
):
    """创建任务

    - 新建任务与幂等键回放均返回 201
    """
    body = body or CreateTaskBody()
    result = await service.create_task(
        CreateTaskRequest(
            tenant_id=x_tenant_id,
            workspace_id=workspace_id,
            title=body.title,
            priority=body.priority,
            idempotency_key=idempotency_key,
            role=parse_role(x_role),
        )
    )
    return {"task": serialize_task(result.task)}


@router.post("/v1/workspaces/{workspace_id}/tasks/{task_id}/assign")
async def assign_task(
    workspace_id: str,
    task_id: str,
    body: AssignTaskBody | None = None,
    x_tenant_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
    idempotency_key: str | None = Header(default=None),
    if_match_version: str | None = Header(default=None),
    service: TaskService = Depends(get_task_service),
):
    """分配任务负责人

    - 版本冲突返回 409，响应体包含 expected_version / actual_version
    """
    role = parse_role(x_role)
    # 非 MANAGER 请求由 TaskService 返回 403，不先报版本头错误
    expected_version = (
        parse_expected_version(if_match_version) if role == UserRole.MANAGER else None
    )

    body = body or AssignTaskBody()
    result = await service.assign_task(
        AssignTaskRequest(
            task_id=task_id,
            tenant_id=x_tenant_id,
            workspace_id=workspace_id,
            assignee_id=body.assignee_id,
            expected_version=expected_version,
            role=role,
            idempotency_key=idempotency_key,
        )
    )
    return {"task": serialize_task(result.task)}
