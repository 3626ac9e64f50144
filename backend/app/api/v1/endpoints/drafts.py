from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.postgres_base import get_async_session
from app.infrastructure.utils.common import handle_error
from app.api.dependencies import get_current_user, get_post_service
from app.api.v1.dependencies.pagination import get_drafts_query
from app.modules.users.models import User
from app.modules.posts.images import read_upload
from app.modules.posts.schemas import (
    DraftCreate, DraftUpdate, DraftsQuery, PostWithAuthor, PublishDraft
)
from app.modules.posts.service import PostService
from app.schemas.common import Page

# 必须在 /posts/{post_id} 之前注册
router = APIRouter(prefix="/posts/drafts", tags=["drafts"])


@router.post("", response_model=PostWithAuthor, status_code=201)
async def create_draft(
    draft_in: DraftCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.create_draft(db, draft_in, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.post("/with-image", response_model=PostWithAuthor, status_code=201)
async def create_draft_with_image(
    title: Annotated[str, Form(min_length=1, max_length=500)],
    content: Annotated[str, Form(min_length=1)],
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    """创建草稿并上传封面图片"""
    try:
        upload = await read_upload(image)
        return await post_service.create_draft(
            db, DraftCreate(title=title, content=content), current_user.id, upload
        )
    except Exception as e:
        raise handle_error(e)


@router.get("", response_model=Page[PostWithAuthor])
async def list_drafts(
    query: DraftsQuery = Depends(get_drafts_query),
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    """当前用户自己的草稿"""
    try:
        return await post_service.list_drafts(db, query, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.get("/{post_id}", response_model=PostWithAuthor)
async def get_draft(
    post_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.get_draft(db, post_id, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.patch("/{post_id}", response_model=PostWithAuthor)
async def update_draft(
    post_id: UUID,
    changes: DraftUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.update_draft(db, post_id, changes, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.patch("/{post_id}/with-image", response_model=PostWithAuthor)
async def update_draft_with_image(
    post_id: UUID,
    title: Annotated[Optional[str], Form(min_length=1, max_length=500)] = None,
    content: Annotated[Optional[str], Form(min_length=1)] = None,
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        upload = await read_upload(image)
        changes = DraftUpdate(**{k: v for k, v in {"title": title, "content": content}.items() if v is not None})
        return await post_service.update_draft(db, post_id, changes, current_user.id, upload)
    except Exception as e:
        raise handle_error(e)


@router.post("/{post_id}/publish", response_model=PostWithAuthor)
async def publish_draft(
    post_id: UUID,
    overrides: Optional[PublishDraft] = None,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    """发布草稿，可同时覆盖标题、内容、图片"""
    try:
        return await post_service.publish(db, post_id, overrides or PublishDraft(), current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.post("/{post_id}/publish/with-image", response_model=PostWithAuthor)
async def publish_draft_with_image(
    post_id: UUID,
    title: Annotated[Optional[str], Form()] = None,
    content: Annotated[Optional[str], Form()] = None,
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        upload = await read_upload(image)
        overrides = PublishDraft(**{k: v for k, v in {"title": title, "content": content}.items() if v})
        return await post_service.publish(db, post_id, overrides, current_user.id, upload)
    except Exception as e:
        raise handle_error(e)


@router.delete("/{post_id}", status_code=204)
async def discard_draft(
    post_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        await post_service.discard_draft(db, post_id, current_user.id)
    except Exception as e:
        raise handle_error(e)
