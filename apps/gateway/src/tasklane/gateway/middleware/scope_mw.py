"""ScopeMiddleware -- 为日志绑定 tenant / workspace / task 上下文

仅用于日志关联；业务层始终通过显式参数获取 tenant 与 workspace。
路径形如 /v1/workspaces/{workspace_id}/tasks/{task_id}/...
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def extract_scope(path: str) -> dict[str, str]:
    """从请求路径中提取 workspace_id 和 task_id"""
    scope: dict[str, str] = {}
    parts = [p for p in path.split("/") if p]
    for i, part in enumerate(parts[:-1]):
        if part == "workspaces":
            scope["workspace_id"] = parts[i + 1]
        elif part == "tasks":
            scope["task_id"] = parts[i + 1]
    return scope


class ScopeMiddleware(BaseHTTPMiddleware):
    """租户范围日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        scope = extract_scope(request.url.path)
        tenant_id = request.headers.get("x-tenant-id")
        if tenant_id:
            scope["tenant_id"] = tenant_id

        if scope:
            structlog.contextvars.bind_contextvars(**scope)

        return await call_next(request)
