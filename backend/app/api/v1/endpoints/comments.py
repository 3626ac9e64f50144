from typing import Annotated, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.infrastructure.database.postgres_base import get_async_session
from app.infrastructure.utils.common import handle_error
from app.api.dependencies import get_current_user, get_comment_service
from app.modules.users.models import User
from app.modules.comments.schemas import (
    CommentCreate, CommentResponse, CommentUpdate, CommentWithPost
)
from app.modules.comments.service import CommentService

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("/posts/{post_id}", response_model=CommentResponse, status_code=201)
async def create_comment(
    post_id: UUID,
    comment_in: CommentCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service),
):
    try:
        return await comment_service.create(db, post_id, comment_in, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.get("/posts/{post_id}", response_model=List[CommentResponse])
async def list_post_comments(
    post_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    comment_service: CommentService = Depends(get_comment_service),
):
    try:
        return await comment_service.find_by_post(db, post_id)
    except Exception as e:
        raise handle_error(e)


@router.get("/recent", response_model=List[CommentWithPost])
async def recent_comments(
    limit: Annotated[int, Query(ge=1, le=100)] = settings.RECENT_COMMENTS_LIMIT,
    db: AsyncSession = Depends(get_async_session),
    comment_service: CommentService = Depends(get_comment_service),
):
    try:
        return await comment_service.find_recent(db, limit)
    except Exception as e:
        raise handle_error(e)


@router.get("/user/{user_id}", response_model=List[CommentWithPost])
async def list_user_comments(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    comment_service: CommentService = Depends(get_comment_service),
):
    try:
        return await comment_service.find_by_user(db, user_id)
    except Exception as e:
        raise handle_error(e)


@router.get("/{comment_id}", response_model=CommentWithPost)
async def get_comment(
    comment_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    comment_service: CommentService = Depends(get_comment_service),
):
    try:
        return await comment_service.find_one(db, comment_id)
    except Exception as e:
        raise handle_error(e)


@router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: UUID,
    comment_in: CommentUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service),
):
    try:
        return await comment_service.update(db, comment_id, comment_in)
    except Exception as e:
        raise handle_error(e)


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service),
):
    try:
        await comment_service.remove(db, comment_id)
    except Exception as e:
        raise handle_error(e)
