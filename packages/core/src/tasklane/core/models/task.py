"""Task Domain Model

tasks 表记录当前状态；每次成功变更 version + 1，并在同一事务内写入一条 TaskEvent 快照。
JSON 序列化时枚举输出为成员名，反序列化同时接受成员名和整数值。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from .enums import TaskPriority, TaskState, coerce_enum


class Task(BaseModel):
    """Task 数据模型"""

    id: str = Field(description="唯一标识，ULID 格式，由 Store 分配")
    tenant_id: str = Field(description="租户标识")
    workspace_id: str = Field(description="工作区标识")
    title: str = Field(description="任务标题，1-120 字符")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    state: TaskState = Field(default=TaskState.NEW, description="当前状态")
    assignee_id: str | None = Field(default=None, description="负责人用户 ID")
    version: int = Field(default=1, ge=1, description="乐观锁版本号，从 1 开始")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @field_validator("priority", mode="before")
    @classmethod
    def _parse_priority(cls, value: Any) -> TaskPriority:
        return coerce_enum(TaskPriority, value)

    @field_validator("state", mode="before")
    @classmethod
    def _parse_state(cls, value: Any) -> TaskState:
        return coerce_enum(TaskState, value)

    @field_serializer("priority", "state", when_used="json")
    def _serialize_enum_name(self, value: TaskPriority | TaskState) -> str:
        return value.name


class TaskCreateInput(BaseModel):
    """创建任务的领域输入（已通过校验）"""

    tenant_id: str
    workspace_id: str
    title: str
    priority: TaskPriority = TaskPriority.MEDIUM
    state: TaskState = TaskState.NEW


class TaskAssignInput(BaseModel):
    """分配任务的领域输入（已通过校验）"""

    task_id: str
    tenant_id: str
    workspace_id: str
    assignee_id: str
    expected_version: int
