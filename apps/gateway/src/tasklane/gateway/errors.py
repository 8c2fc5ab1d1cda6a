"""异常 -> HTTP 响应映射

ValidationError / RequestValidationError -> 400, AuthorizationError -> 403, NotFoundError -> 404,
ConflictError -> 409（expectedVersion / actualVersion）, 其他异常 -> 500（记录日志，不向调用方暴露细节）。
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse
from tasklane.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

log = structlog.get_logger()


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Bad Request", "message": str(exc), "field": exc.field},
    )


def _error_field(loc: tuple) -> str | None:
    """从 pydantic 错误位置中取字段名，如 ("body", "title") -> "title" """
    names = [part for part in loc[1:] if isinstance(part, str)]
    if names:
        return names[-1]
    return str(loc[0]) if loc else None


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体无法解析或字段类型错误：与 ValidationError 一样返回 400"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    return JSONResponse(
        status_code=400,
        content={
            "error": "Bad Request",
            "message": str(first.get("msg", "invalid request")),
            "field": _error_field(tuple(first.get("loc", ()))),
        },
    )


async def authorization_error_handler(
    request: Request, exc: AuthorizationError
) -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={"error": "Forbidden", "message": str(exc)},
    )


async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": "Not Found", "message": str(exc), "resource": exc.resource},
    )


async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "error": "Conflict",
            "message": str(exc),
            "expectedVersion": exc.expected_version,
            "actualVersion": exc.actual_version,
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """未预期异常：记录完整异常，响应只返回通用信息"""
    log.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """注册异常处理器"""
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(ConflictError, conflict_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
