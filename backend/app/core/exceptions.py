"""
异常处理模块

定义应用中所有自定义异常类。业务层只抛出这些异常，
由接口层统一转换为 HTTP 响应。
"""

from fastapi import HTTPException
from typing import Any, Dict, Optional

from app.constant.constants import ErrorMessages, StatusCode


class ApiError(Exception):
    """API错误的基类，包含标准化格式"""
    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.detail = detail
        self.headers = headers
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """转换为FastAPI的HTTPException"""
        return HTTPException(
            status_code=self.status_code,
            detail=self.detail,
            headers=self.headers
        )


# 认证错误
class AuthenticationError(ApiError):
    """认证错误的基类"""
    def __init__(
        self,
        detail: str = ErrorMessages.AUTHENTICATION_FAILED,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=StatusCode.UNAUTHORIZED,
            detail=detail,
            headers=headers or {"WWW-Authenticate": "Bearer"}
        )


class InvalidCredentialsError(AuthenticationError):
    """当登录凭据无效时抛出"""
    def __init__(self):
        super().__init__(detail=ErrorMessages.INVALID_CREDENTIALS)


class UserNotFoundError(ApiError):
    """未找到用户时抛出"""
    def __init__(self):
        super().__init__(
            status_code=StatusCode.NOT_FOUND,
            detail=ErrorMessages.USER_NOT_FOUND
        )


class EmailAlreadyRegisteredError(ApiError):
    """尝试使用已存在的电子邮件注册时抛出"""
    def __init__(self):
        super().__init__(
            status_code=StatusCode.CONFLICT,
            detail=ErrorMessages.EMAIL_ALREADY_REGISTERED
        )


class InsufficientPermissionsError(ApiError):
    """操作者不是资源所有者时抛出（Forbidden）"""
    def __init__(self, detail: str = ErrorMessages.INSUFFICIENT_PERMISSIONS):
        super().__init__(
            status_code=StatusCode.FORBIDDEN,
            detail=detail
        )


class ResourceNotFoundError(ApiError):
    """资源不存在或不满足查询条件时抛出（NotFound）"""
    def __init__(self, detail: str = ErrorMessages.RESOURCE_NOT_FOUND):
        super().__init__(
            status_code=StatusCode.NOT_FOUND,
            detail=detail
        )


class ValidationError(ApiError):
    """数据验证错误（BadRequest）"""
    def __init__(self, detail: str = ErrorMessages.VALIDATION_ERROR):
        super().__init__(
            status_code=StatusCode.BAD_REQUEST,
            detail=detail
        )


class InvalidUploadError(ValidationError):
    """上传文件缺失、类型不允许或超出大小限制"""


class DatabaseError(ApiError):
    """数据库操作错误的基类"""
    def __init__(self, detail: str = ErrorMessages.DATABASE_ERROR):
        super().__init__(
            status_code=StatusCode.INTERNAL_SERVER_ERROR,
            detail=detail
        )


class StorageError(ApiError):
    """对象存储操作失败"""
    def __init__(self, detail: str = ErrorMessages.STORAGE_UPLOAD_FAILED):
        super().__init__(
            status_code=StatusCode.INTERNAL_SERVER_ERROR,
            detail=detail
        )
