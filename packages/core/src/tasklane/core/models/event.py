"""TaskEvent Domain Model -- outbox 事件

事件表 append-only，不允许更新或删除。
每次状态变更在同一事务内写入一条事件，snapshot 为变更后的完整 Task。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import TaskEventType


class TaskEventCreate(BaseModel):
    """待追加的事件（id / created_at 由 Store 分配）"""

    tenant_id: str
    workspace_id: str
    task_id: str
    event_type: TaskEventType
    snapshot: dict[str, Any] = Field(default_factory=dict)


class TaskEvent(BaseModel):
    """TaskEvent 数据模型"""

    id: str = Field(description="唯一标识，ULID 格式")
    tenant_id: str = Field(description="租户标识")
    workspace_id: str = Field(description="工作区标识")
    task_id: str = Field(description="关联的 Task ID")
    event_type: TaskEventType = Field(description="事件类型")
    snapshot: dict[str, Any] = Field(
        default_factory=dict,
        description="事件发生时的完整 Task 快照（JSON）",
    )
    created_at: datetime = Field(description="写入时间")
