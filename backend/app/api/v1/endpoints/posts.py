from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.infrastructure.database.postgres_base import get_async_session
from app.infrastructure.utils.common import handle_error
from app.api.dependencies import get_current_user, get_optional_current_user, get_post_service
from app.api.v1.dependencies.pagination import get_posts_query
from app.modules.users.models import User
from app.modules.posts.images import read_upload
from app.modules.posts.models import PostStatus
from app.modules.posts.schemas import (
    ImageUploadResponse,
    LikeStatusResponse,
    PostCreate,
    PostDetailResponse,
    PostsQuery,
    PostUpdate,
    PostWithAuthor,
)
from app.modules.posts.service import PostService
from app.schemas.common import Page

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=PostWithAuthor, status_code=201)
async def create_post(
    post_in: PostCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.create_post(db, post_in, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.post("/with-image", response_model=PostWithAuthor, status_code=201)
async def create_post_with_image(
    title: Annotated[str, Form(min_length=1, max_length=500)],
    content: Annotated[str, Form(min_length=1)],
    status: Annotated[PostStatus, Form()] = PostStatus.DRAFT,
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    """创建帖子并上传图片；图片在帖子写入前上传"""
    try:
        upload = await read_upload(image)
        post_in = PostCreate(title=title, content=content, status=status)
        return await post_service.create_post(db, post_in, current_user.id, upload)
    except Exception as e:
        raise handle_error(e)


@router.post("/upload-image", response_model=ImageUploadResponse, status_code=201)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        upload = await read_upload(image)
        return await post_service.upload_image(upload)
    except Exception as e:
        raise handle_error(e)


@router.get("", response_model=Page[PostWithAuthor])
async def list_posts(
    query: PostsQuery = Depends(get_posts_query),
    db: AsyncSession = Depends(get_async_session),
    post_service: PostService = Depends(get_post_service),
):
    """
    已发布帖子列表

    支持 search（标题或内容模糊匹配）、sortBy、sortOrder 和分页。
    """
    try:
        return await post_service.find_all(db, query)
    except Exception as e:
        raise handle_error(e)


@router.get("/popular", response_model=List[PostWithAuthor])
async def popular_posts(
    limit: Annotated[int, Query(ge=1, le=50)] = settings.POPULAR_POSTS_LIMIT,
    db: AsyncSession = Depends(get_async_session),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.get_popular(db, limit)
    except Exception as e:
        raise handle_error(e)


@router.get("/recent", response_model=List[PostWithAuthor])
async def recent_posts(
    limit: Annotated[int, Query(ge=1, le=50)] = settings.RECENT_POSTS_LIMIT,
    db: AsyncSession = Depends(get_async_session),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.get_recent(db, limit)
    except Exception as e:
        raise handle_error(e)


@router.get("/{post_id}", response_model=PostDetailResponse)
async def get_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    post_service: PostService = Depends(get_post_service),
):
    """帖子详情（含作者和评论），每次访问浏览数加一"""
    try:
        return await post_service.find_one(db, post_id)
    except Exception as e:
        raise handle_error(e)


@router.patch("/{post_id}", response_model=PostWithAuthor)
async def update_post(
    post_id: UUID,
    changes: PostUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.update_published(db, post_id, changes, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.patch("/{post_id}/with-image", response_model=PostWithAuthor)
async def update_post_with_image(
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
        changes = PostUpdate(**{k: v for k, v in {"title": title, "content": content}.items() if v is not None})
        return await post_service.update_published(db, post_id, changes, current_user.id, upload)
    except Exception as e:
        raise handle_error(e)


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        await post_service.remove(db, post_id, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.post("/{post_id}/like", response_model=LikeStatusResponse)
async def like_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.like(db, post_id, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.post("/{post_id}/toggle-like", response_model=LikeStatusResponse)
async def toggle_like(
    post_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service),
):
    try:
        return await post_service.toggle_like(db, post_id, current_user.id)
    except Exception as e:
        raise handle_error(e)


@router.get("/{post_id}/like-status", response_model=LikeStatusResponse)
async def like_status(
    post_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    current_user: Optional[User] = Depends(get_optional_current_user),
    post_service: PostService = Depends(get_post_service),
):
    """未登录时 liked 恒为 false"""
    try:
        return await post_service.like_status(db, post_id, current_user.id if current_user else None)
    except Exception as e:
        raise handle_error(e)
