import logging
import math
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette import status

from app.core.exceptions import (
    ApiError,
    ValidationError,
    AuthenticationError
)
from app.constant.constants import ErrorMessages

logger = logging.getLogger(__name__)


def get_current_time() -> datetime:
    """获取当前UTC时间"""
    return datetime.now(timezone.utc)


def total_pages(total: int, limit: int) -> int:
    """totalPages = ceil(total / limit)"""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def handle_error(
    error: Exception,
    custom_message: Optional[str] = None
) -> HTTPException:
    """
    统一错误处理

    将各种异常转换为HTTPException。调用方写法为 ``raise handle_error(e)``。

    Args:
        error: 捕获的异常
        custom_message: 未分类错误时返回给客户端的消息

    Returns:
        HTTPException: 转换后的HTTP异常
    """
    if isinstance(error, HTTPException):
        return error

    if isinstance(error, ApiError):
        if error.status_code >= 500:
            logger.error(f"错误发生: {error.detail}")
        else:
            logger.info(f"请求被拒绝 [{error.status_code}]: {error.detail}")
        return error.to_http_exception()

    if isinstance(error, ValueError):
        logger.warning(f"参数错误: {error}")
        detail = custom_message or str(error)
        return ValidationError(detail=detail).to_http_exception()

    logger.exception(f"未处理的错误: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=custom_message or ErrorMessages.INTERNAL_ERROR
    )


def create_exception_handlers() -> Dict[Any, Any]:
    """
    创建全局异常处理程序字典

    Returns:
        Dict[Any, Any]: 可以直接传给 FastAPI(exception_handlers=...) 的字典
    """

    async def api_error_handler(request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail}
        )

    async def auth_error_handler(request, exc: AuthenticationError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers or {"WWW-Authenticate": "Bearer"}
        )

    return {
        ApiError: api_error_handler,
        AuthenticationError: auth_error_handler,
    }
