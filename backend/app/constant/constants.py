"""
应用常量定义
"""

from fastapi import status


class StatusCode:
    """HTTP状态码常量"""
    OK = status.HTTP_200_OK
    CREATED = status.HTTP_201_CREATED
    NO_CONTENT = status.HTTP_204_NO_CONTENT
    BAD_REQUEST = status.HTTP_400_BAD_REQUEST
    UNAUTHORIZED = status.HTTP_401_UNAUTHORIZED
    FORBIDDEN = status.HTTP_403_FORBIDDEN
    NOT_FOUND = status.HTTP_404_NOT_FOUND
    CONFLICT = status.HTTP_409_CONFLICT
    INTERNAL_SERVER_ERROR = status.HTTP_500_INTERNAL_SERVER_ERROR


class ErrorMessages:
    """错误消息常量"""

    # 认证相关
    AUTHENTICATION_FAILED = "认证错误"
    NOT_AUTHENTICATED = "未认证"
    INVALID_CREDENTIALS = "邮箱或密码不正确"
    INSUFFICIENT_PERMISSIONS = "权限不足"

    # 用户相关
    USER_NOT_FOUND = "用户不存在"
    EMAIL_ALREADY_REGISTERED = "该邮箱已被注册"

    # 帖子相关
    POST_NOT_FOUND = "已发布的帖子不存在"
    DRAFT_NOT_FOUND = "草稿不存在"
    POST_UPDATE_FORBIDDEN = "只能修改自己的帖子"
    POST_DELETE_FORBIDDEN = "只能删除自己的帖子"

    # 评论相关
    COMMENT_NOT_FOUND = "评论不存在"

    # 上传相关
    NO_FILE_UPLOADED = "未上传文件"
    INVALID_IMAGE_TYPE = "只允许上传图片文件（jpg、jpeg、png、gif、webp）"
    IMAGE_TOO_LARGE = "图片大小超过限制"
    STORAGE_UPLOAD_FAILED = "图片上传失败"

    # 资源相关
    RESOURCE_NOT_FOUND = "资源不存在"

    # 系统相关
    VALIDATION_ERROR = "数据验证失败"
    DATABASE_ERROR = "数据库操作失败"
    SEARCH_FAILED = "搜索失败"
    INTERNAL_ERROR = "服务器内部错误"


__all__ = [
    "ErrorMessages",
    "StatusCode",
]
