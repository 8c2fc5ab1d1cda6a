"""tasklane Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    ASSIGNABLE_STATES,
    TERMINAL_STATES,
    IdempotencyAction,
    IdempotencyReferenceType,
    TaskEventType,
    TaskPriority,
    TaskState,
    UserRole,
    can_assign,
    coerce_enum,
)
from .event import TaskEvent, TaskEventCreate
from .idempotency import IdempotencyRecord, IdempotencyRecordCreate
from .requests import AssignTaskRequest, CreateTaskRequest, TaskResult
from .task import Task, TaskAssignInput, TaskCreateInput

__all__ = [
    # 枚举
    "TaskState",
    "TaskPriority",
    "UserRole",
    "TaskEventType",
    "IdempotencyAction",
    "IdempotencyReferenceType",
    "coerce_enum",
    # 状态规则
    "ASSIGNABLE_STATES",
    "TERMINAL_STATES",
    "can_assign",
    # Task
    "Task",
    "TaskCreateInput",
    "TaskAssignInput",
    # Event
    "TaskEvent",
    "TaskEventCreate",
    # Idempotency
    "IdempotencyRecord",
    "IdempotencyRecordCreate",
    # 请求
    "CreateTaskRequest",
    "AssignTaskRequest",
    "TaskResult",
]
