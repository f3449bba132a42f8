"""
全局异常处理器
错误响应统一为 {"error": 错误码, "message": 描述}
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.core.exceptions import BusinessException

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    content = {"error": code, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求参数校验失败"""
    errors = [
        {"field": ".".join(str(loc) for loc in error.get("loc", [])), "message": error.get("msg")}
        for error in exc.errors()
    ]
    logger.info(f"请求参数校验失败: {request.method} {request.url.path}, errors={errors}")
    return error_response(400, "validation_error", "Invalid request body", details=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """HTTP异常"""
    code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    return error_response(exc.status_code, code, str(exc.detail))


async def business_exception_handler(request: Request, exc: BusinessException):
    """业务异常"""
    return error_response(exc.status_code, exc.code, exc.message)


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """数据库异常，只记录原始错误，不返回给调用方"""
    logger.error(f"数据库错误: {request.method} {request.url.path}, error={exc}")
    return error_response(500, "internal_error", "Internal server error")


async def general_exception_handler(request: Request, exc: Exception):
    """未处理异常"""
    logger.exception(f"未处理异常: {request.method} {request.url.path}, error={exc}")
    return error_response(500, "internal_error", "Internal server error")
