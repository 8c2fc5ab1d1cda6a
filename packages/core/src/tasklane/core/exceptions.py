"""tasklane 异常体系

两类异常：
- 调用方可恢复的业务异常（校验 / 授权 / 不存在 / 版本冲突），由校验层和工作流引擎主动抛出，
  从不在内部重试；
- Store 层异常，表示存储契约被违反或底层写入失败，对当前请求视为致命错误。
"""


class TaskLaneError(Exception):
    """tasklane 基础异常"""


class ValidationError(TaskLaneError):
    """输入缺失或格式错误"""

    def __init__(self, message: str, field: str | None = None) -> None:
        """
        Args:
            message: 错误描述
            field: 出错的字段名
        """
        super().__init__(message)
        self.field = field


class AuthorizationError(TaskLaneError):
    """调用方角色不足以执行该操作"""


class NotFoundError(TaskLaneError):
    """引用的实体不存在（或不在调用方的 tenant/workspace 范围内）"""

    def __init__(self, message: str, resource: str) -> None:
        super().__init__(message)
        self.resource = resource


class ConflictError(TaskLaneError):
    """乐观锁版本冲突

    actual_version 是本次请求读取到的最后已知版本，不是失败后重新查询的结果。
    """

    def __init__(
        self,
        message: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ) -> None:
        super().__init__(message)
        self.expected_version = expected_version
        self.actual_version = actual_version


class StoreError(TaskLaneError):
    """Store 层基础异常"""


class VersionMismatchError(StoreError):
    """条件更新影响 0 行：版本不匹配或记录不存在（此层不区分两者）"""

    def __init__(self, task_id: str, expected_version: int) -> None:
        super().__init__(
            f"version mismatch or not found: task_id={task_id}, "
            f"expected_version={expected_version}"
        )
        self.task_id = task_id
        self.expected_version = expected_version


class StoreInvariantError(StoreError):
    """写入未返回任何行"""


class IdempotencyKeyConflictError(StoreError):
    """(tenant_id, workspace_id, action, key) 唯一约束冲突"""

    def __init__(self, tenant_id: str, workspace_id: str, action: int, key: str) -> None:
        super().__init__(
            f"idempotency key already recorded: action={action}, key={key}"
        )
        self.tenant_id = tenant_id
        self.workspace_id = workspace_id
        self.action = action
        self.key = key


class NestedTransactionError(StoreError):
    """在已打开的事务作用域内再次开启事务"""


class TransactionClosedError(StoreError):
    """事务作用域结束后继续使用事务句柄"""
