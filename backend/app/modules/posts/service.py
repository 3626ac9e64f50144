"""
帖子生命周期管理

状态机只有 DRAFT -> PUBLISHED 一条转换（publish），不可逆。
图片规则：新图片在帖子行写入之前上传；旧图片只有在确认不再被引用
（帖子行已指向新图片或已被删除）之后才删除，且删除失败只记日志。
"""
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.constant.constants import ErrorMessages
from app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from app.infrastructure.storage.asset_store import AssetStore
from app.infrastructure.utils.common import get_current_time, total_pages
from app.modules.posts.images import ImageUpload, generate_image_key, validate_image
from app.modules.posts.models import Post, PostStatus
from app.modules.posts.repository import crud_post, crud_post_like, CRUDPost, CRUDPostLike
from app.modules.posts.schemas import (
    DraftCreate,
    DraftsQuery,
    LikeStatusResponse,
    PostChanges,
    PostCreate,
    PostsQuery,
    PublishDraft,
)

logger = logging.getLogger(__name__)


class PostService:
    def __init__(
        self,
        asset_store: AssetStore,
        posts: CRUDPost = crud_post,
        post_likes: CRUDPostLike = crud_post_like,
    ):
        self.asset_store = asset_store
        self.posts = posts
        self.post_likes = post_likes

    # ---- 图片 ----

    async def upload_image(self, image: Optional[ImageUpload]) -> Dict[str, str]:
        """校验并上传图片，返回 {filename, url}"""
        image = validate_image(image)
        key = generate_image_key(image.filename)
        url = await self.asset_store.upload(key, image.data, image.content_type)
        return {"filename": key, "url": url}

    async def _discard_image(self, url: Optional[str]) -> None:
        """尽力删除不再被引用的图片，失败不影响主操作"""
        if not url:
            return
        key = self.asset_store.key_from_url(url)
        if not key:
            logger.warning(f"无法从 URL 解析图片 key: {url}")
            return
        try:
            await self.asset_store.delete(key)
        except Exception as e:
            logger.warning(f"删除图片失败 {key}: {e}")

    async def _write_with_image(self, db: AsyncSession, post: Post, uploaded_url: Optional[str]) -> Post:
        """写入帖子行；若写入失败，刚上传的图片成为孤儿资源，记录后继续抛出"""
        try:
            return await self.posts.save(db, post)
        except Exception:
            if uploaded_url:
                logger.error(f"帖子写入失败，已上传的图片未被引用: {uploaded_url}")
            raise

    async def _apply_changes(
        self,
        db: AsyncSession,
        post: Post,
        changes: Dict[str, Any],
        image: Optional[ImageUpload],
    ) -> Post:
        old_image = post.image
        uploaded_url = None
        if image is not None:
            uploaded_url = (await self.upload_image(image))["url"]
            changes["image"] = uploaded_url

        for field, value in changes.items():
            setattr(post, field, value)

        saved = await self._write_with_image(db, post, uploaded_url)

        # 行已提交，旧图片不再被引用
        if old_image and saved.image != old_image:
            await self._discard_image(old_image)
        return saved

    # ---- 创建与发布 ----

    async def create_post(
        self,
        db: AsyncSession,
        post_in: PostCreate,
        author_id: UUID,
        image: Optional[ImageUpload] = None,
    ) -> Post:
        post = Post(
            title=post_in.title,
            content=post_in.content,
            image=post_in.image,
            status=post_in.status,
            author_id=author_id,
            views=0,
            likes=0,
        )
        if post.status == PostStatus.PUBLISHED:
            post.published_at = get_current_time()

        uploaded_url = None
        if image is not None:
            uploaded_url = (await self.upload_image(image))["url"]
            post.image = uploaded_url

        saved = await self._write_with_image(db, post, uploaded_url)
        logger.info(f"用户 {author_id} 创建帖子 {saved.id} ({saved.status.value})")
        return saved

    async def create_draft(
        self,
        db: AsyncSession,
        draft_in: DraftCreate,
        author_id: UUID,
        image: Optional[ImageUpload] = None,
    ) -> Post:
        post_in = PostCreate(
            title=draft_in.title,
            content=draft_in.content,
            image=draft_in.image,
            status=PostStatus.DRAFT,
        )
        return await self.create_post(db, post_in, author_id, image)

    async def publish(
        self,
        db: AsyncSession,
        post_id: UUID,
        overrides: PublishDraft,
        author_id: UUID,
        image: Optional[ImageUpload] = None,
    ) -> Post:
        post = await self.get_draft(db, post_id, author_id)

        # 只覆盖提供了非空值的字段
        changes = {k: v for k, v in overrides.changes().items() if v}
        post.status = PostStatus.PUBLISHED
        post.published_at = get_current_time()

        published = await self._apply_changes(db, post, changes, image)
        logger.info(f"草稿 {post_id} 已发布")
        return published

    # ---- 草稿 ----

    async def get_draft(self, db: AsyncSession, post_id: UUID, author_id: UUID) -> Post:
        post = await self.posts.get_owned_draft(db, post_id, author_id)
        if not post:
            raise ResourceNotFoundError(ErrorMessages.DRAFT_NOT_FOUND)
        return post

    async def list_drafts(self, db: AsyncSession, query: DraftsQuery, author_id: UUID) -> Dict[str, Any]:
        items, total = await self.posts.get_drafts(
            db,
            author_id,
            search=query.search,
            sort_by=query.sort_by,
            sort_order=query.sort_order,
            skip=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        return self._page(items, total, query.page, query.limit)

    async def update_draft(
        self,
        db: AsyncSession,
        post_id: UUID,
        changes: PostChanges,
        author_id: UUID,
        image: Optional[ImageUpload] = None,
    ) -> Post:
        post = await self.get_draft(db, post_id, author_id)
        return await self._apply_changes(db, post, changes.changes(), image)

    async def discard_draft(self, db: AsyncSession, post_id: UUID, author_id: UUID) -> None:
        post = await self.get_draft(db, post_id, author_id)
        image = post.image
        await self.posts.delete(db, post)
        await self._discard_image(image)
        logger.info(f"草稿 {post_id} 已删除")

    # ---- 已发布帖子 ----

    async def _get_published(self, db: AsyncSession, post_id: UUID, **kwargs) -> Post:
        post = await self.posts.get_published(db, post_id, **kwargs)
        if not post:
            raise ResourceNotFoundError(ErrorMessages.POST_NOT_FOUND)
        return post

    async def find_all(self, db: AsyncSession, query: PostsQuery) -> Dict[str, Any]:
        items, total = await self.posts.get_multi_published(
            db,
            search=query.search,
            sort_by=query.sort_by,
            sort_order=query.sort_order,
            skip=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        return self._page(items, total, query.page, query.limit)

    async def find_one(self, db: AsyncSession, post_id: UUID) -> Post:
        """获取已发布帖子（含作者和评论），并记录一次浏览"""
        post = await self._get_published(db, post_id, with_comments=True)
        views = await self.posts.increment_views(db, post.id)
        # 不标记为脏数据，避免之后的提交用旧值覆盖并发的自增
        set_committed_value(post, "views", views)
        return post

    async def update_published(
        self,
        db: AsyncSession,
        post_id: UUID,
        changes: PostChanges,
        author_id: UUID,
        image: Optional[ImageUpload] = None,
    ) -> Post:
        post = await self._get_published(db, post_id)
        if post.author_id != author_id:
            raise InsufficientPermissionsError(ErrorMessages.POST_UPDATE_FORBIDDEN)
        return await self._apply_changes(db, post, changes.changes(), image)

    async def remove(self, db: AsyncSession, post_id: UUID, author_id: UUID) -> None:
        post = await self._get_published(db, post_id)
        if post.author_id != author_id:
            raise InsufficientPermissionsError(ErrorMessages.POST_DELETE_FORBIDDEN)
        image = post.image
        await self.posts.delete(db, post)
        await self._discard_image(image)
        logger.info(f"帖子 {post_id} 已被作者删除")

    async def get_popular(self, db: AsyncSession, limit: int) -> List[Post]:
        return await self.posts.get_popular(db, limit)

    async def get_recent(self, db: AsyncSession, limit: int) -> List[Post]:
        return await self.posts.get_recent(db, limit)

    # ---- 点赞 ----

    async def like(self, db: AsyncSession, post_id: UUID, user_id: UUID) -> LikeStatusResponse:
        post = await self._get_published(db, post_id)
        _, likes = await self.post_likes.add(db, post.id, user_id)
        return LikeStatusResponse(liked=True, likes=likes)

    async def toggle_like(self, db: AsyncSession, post_id: UUID, user_id: UUID) -> LikeStatusResponse:
        post = await self._get_published(db, post_id)
        if await self.post_likes.exists(db, post.id, user_id):
            _, likes = await self.post_likes.remove(db, post.id, user_id)
            return LikeStatusResponse(liked=False, likes=likes)
        _, likes = await self.post_likes.add(db, post.id, user_id)
        return LikeStatusResponse(liked=True, likes=likes)

    async def like_status(
        self, db: AsyncSession, post_id: UUID, user_id: Optional[UUID] = None
    ) -> LikeStatusResponse:
        post = await self._get_published(db, post_id)
        liked = user_id is not None and await self.post_likes.exists(db, post.id, user_id)
        return LikeStatusResponse(liked=liked, likes=post.likes)

    @staticmethod
    def _page(items: List[Post], total: int, page: int, limit: int) -> Dict[str, Any]:
        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": total_pages(total, limit),
        }
