from typing import Annotated, Optional
from uuid import UUID
import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.postgres_base import get_async_session
from app.infrastructure.storage.asset_store import AssetStore
from app.modules.users.repository import crud_user
from app.modules.users.models import User
from app.modules.posts.service import PostService
from app.modules.comments.service import CommentService, comment_service
from app.modules.search.service import SearchService, search_service
from app.core.exceptions import AuthenticationError, UserNotFoundError
from app.constant.constants import ErrorMessages

logger = logging.getLogger(__name__)


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_async_session)]
) -> User:
    """
    从请求状态中获取当前用户

    AuthMiddleware 已经验证了令牌并把载荷放在 request.state.user_payload 中。

    抛出:
        AuthenticationError: 请求未携带有效令牌
        UserNotFoundError: 令牌有效但用户已不存在
    """
    payload = getattr(request.state, "user_payload", None)
    if not payload:
        raise AuthenticationError(ErrorMessages.NOT_AUTHENTICATED)

    try:
        user_id = UUID(str(payload.get("sub")))
    except (ValueError, TypeError):
        raise AuthenticationError("无效的用户ID格式")

    user = await crud_user.get(db, id=user_id)
    if not user:
        logger.warning(f"有效令牌但找不到用户ID: {user_id}")
        raise UserNotFoundError()

    request.state.current_user = user
    return user


async def get_optional_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_async_session)]
) -> Optional[User]:
    """已认证时返回当前用户，否则返回 None"""
    try:
        return await get_current_user(request, db)
    except (AuthenticationError, UserNotFoundError):
        return None


def get_asset_store(request: Request) -> AssetStore:
    """应用启动时创建的对象存储客户端"""
    return request.app.state.asset_store


def get_post_service(
    asset_store: Annotated[AssetStore, Depends(get_asset_store)]
) -> PostService:
    return PostService(asset_store)


def get_comment_service() -> CommentService:
    return comment_service


def get_search_service() -> SearchService:
    return search_service
