"""枚举定义

TaskState / TaskPriority / UserRole / IdempotencyAction / IdempotencyReferenceType 使用 IntEnum，
数据库存储整数值，对外（HTTP 响应、事件快照）序列化为成员名；成员顺序即规范顺序，不可调整。
另含可分配状态集合 ASSIGNABLE_STATES 与终态集合 TERMINAL_STATES。
"""

from enum import Enum, IntEnum, StrEnum
from typing import Any, TypeVar

_E = TypeVar("_E", bound=Enum)


class TaskState(IntEnum):
    """Task 状态"""

    UNSPECIFIED = 0
    NEW = 1
    IN_PROGRESS = 2
    DONE = 3
    CANCELLED = 4


class TaskPriority(IntEnum):
    """Task 优先级"""

    UNSPECIFIED = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


class UserRole(IntEnum):
    """调用方角色（由调用方传入，不做身份认证）"""

    UNSPECIFIED = 0
    AGENT = 1
    MANAGER = 2


class TaskEventType(StrEnum):
    """事件类型"""

    TASK_CREATED = "TASK_CREATED"
    TASK_ASSIGNED = "TASK_ASSIGNED"


class IdempotencyAction(IntEnum):
    """幂等操作类型"""

    UNSPECIFIED = 0
    TASK_CREATE = 1
    TASK_ASSIGN = 2
    # 预留：状态更新尚无对应操作
    TASK_STATE_UPDATE = 3


class IdempotencyReferenceType(IntEnum):
    """幂等记录引用的实体类型"""

    UNSPECIFIED = 0
    TASK = 1


# 允许分配负责人的状态
ASSIGNABLE_STATES: frozenset[TaskState] = frozenset(
    {TaskState.NEW, TaskState.IN_PROGRESS}
)

# 终态：不可再分配
TERMINAL_STATES: frozenset[TaskState] = frozenset(
    {TaskState.DONE, TaskState.CANCELLED}
)


def can_assign(state: TaskState) -> bool:
    """判断当前状态下是否允许分配负责人"""
    return state in ASSIGNABLE_STATES


def coerce_enum(enum_cls: type[_E], value: Any) -> _E:
    """将枚举成员 / 成员名（大小写不敏感）/ 成员值转换为枚举成员

    Raises:
        ValueError: 不是该枚举声明的成员
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        member = enum_cls.__members__.get(value.strip().upper())
        if member is not None:
            return member
    elif isinstance(value, int) and not isinstance(value, bool):
        return enum_cls(value)
    raise ValueError(f"{value!r} is not a valid {enum_cls.__name__}")
