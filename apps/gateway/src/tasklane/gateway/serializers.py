"""响应序列化 -- snake_case 字段，枚举输出成员名，时间戳 ISO-8601"""

from typing import Any

from tasklane.core.models import Task


def serialize_task(task: Task) -> dict[str, Any]:
    """将 Task 序列化为 API 响应格式"""
    return task.model_dump(mode="json")
