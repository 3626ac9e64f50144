import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, update, delete, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import DatabaseError
from app.modules.comments.models import Comment
from app.modules.posts.models import Post, PostLike, PostStatus

logger = logging.getLogger(__name__)


def _comment_count():
    return (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


def _apply_search(query, search: Optional[str]):
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Post.title.ilike(pattern), Post.content.ilike(pattern)))
    return query


class CRUDPost:
    """帖子的数据访问。返回的帖子总是预加载 author，避免异步懒加载。"""

    PUBLISHED_SORT_COLUMNS = {
        "createdAt": Post.created_at,
        "publishedAt": Post.published_at,
        "title": Post.title,
        "views": Post.views,
        "likes": Post.likes,
    }
    DRAFT_SORT_COLUMNS = {
        "createdAt": Post.created_at,
        "updatedAt": Post.updated_at,
        "title": Post.title,
    }

    async def get(
        self,
        db: AsyncSession,
        post_id: UUID,
        *,
        status: Optional[PostStatus] = None,
        author_id: Optional[UUID] = None,
        with_comments: bool = False,
    ) -> Optional[Post]:
        query = select(Post).where(Post.id == post_id).options(selectinload(Post.author))
        if status is not None:
            query = query.where(Post.status == status)
        if author_id is not None:
            query = query.where(Post.author_id == author_id)
        if with_comments:
            query = query.options(selectinload(Post.comments).selectinload(Comment.author))
        query = query.execution_options(populate_existing=True)

        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_published(
        self, db: AsyncSession, post_id: UUID, *, with_comments: bool = False
    ) -> Optional[Post]:
        return await self.get(db, post_id, status=PostStatus.PUBLISHED, with_comments=with_comments)

    async def get_owned_draft(self, db: AsyncSession, post_id: UUID, author_id: UUID) -> Optional[Post]:
        """只返回 author_id 本人的草稿"""
        return await self.get(db, post_id, status=PostStatus.DRAFT, author_id=author_id)

    async def _paginate(
        self, db: AsyncSession, query, count_query, order_column, sort_order: str, skip: int, limit: int
    ) -> Tuple[List[Post], int]:
        order = order_column.asc() if sort_order == "ASC" else order_column.desc()
        query = (
            query.options(selectinload(Post.author))
            .order_by(order, Post.id)
            .offset(skip)
            .limit(limit)
        )
        total = (await db.execute(count_query)).scalar_one()
        items = (await db.execute(query)).scalars().all()
        return list(items), total

    async def get_multi_published(
        self,
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "DESC",
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Post], int]:
        query = _apply_search(select(Post).where(Post.status == PostStatus.PUBLISHED), search)
        count_query = _apply_search(
            select(func.count(Post.id)).where(Post.status == PostStatus.PUBLISHED), search
        )
        if sort_by == "comments":
            order_column = _comment_count()
        else:
            order_column = self.PUBLISHED_SORT_COLUMNS.get(sort_by, Post.created_at)
        return await self._paginate(db, query, count_query, order_column, sort_order, skip, limit)

    async def get_drafts(
        self,
        db: AsyncSession,
        author_id: UUID,
        *,
        search: Optional[str] = None,
        sort_by: str = "updatedAt",
        sort_order: str = "DESC",
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Post], int]:
        conditions = (Post.status == PostStatus.DRAFT, Post.author_id == author_id)
        query = _apply_search(select(Post).where(*conditions), search)
        count_query = _apply_search(select(func.count(Post.id)).where(*conditions), search)
        order_column = self.DRAFT_SORT_COLUMNS.get(sort_by, Post.updated_at)
        return await self._paginate(db, query, count_query, order_column, sort_order, skip, limit)

    async def get_popular(self, db: AsyncSession, limit: int) -> List[Post]:
        query = (
            select(Post)
            .where(Post.status == PostStatus.PUBLISHED)
            .options(selectinload(Post.author))
            .order_by(Post.likes.desc(), Post.views.desc())
            .limit(limit)
        )
        return list((await db.execute(query)).scalars().all())

    async def get_recent(self, db: AsyncSession, limit: int) -> List[Post]:
        query = (
            select(Post)
            .where(Post.status == PostStatus.PUBLISHED)
            .options(selectinload(Post.author))
            .order_by(Post.published_at.desc())
            .limit(limit)
        )
        return list((await db.execute(query)).scalars().all())

    async def save(self, db: AsyncSession, db_obj: Post) -> Post:
        """提交新建或修改后的帖子，并重新加载 author"""
        try:
            db.add(db_obj)
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"保存帖子失败: {e}")
            raise DatabaseError()
        return await self.get(db, db_obj.id)

    async def delete(self, db: AsyncSession, db_obj: Post) -> None:
        await db.delete(db_obj)
        await db.commit()

    async def increment_views(self, db: AsyncSession, post_id: UUID) -> int:
        """原子地 views = views + 1，返回新值；计数变化不算作内容更新"""
        result = await db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(views=Post.views + 1, updated_at=Post.updated_at)
            .returning(Post.views)
        )
        views = result.scalar_one()
        await db.commit()
        return views


class CRUDPostLike:
    """
    点赞记录。post_likes 表是唯一事实来源，posts.likes 在每次变更后
    由 COUNT 重新计算，因此计数与记录数始终一致。
    """

    async def exists(self, db: AsyncSession, post_id: UUID, user_id: UUID) -> bool:
        result = await db.execute(
            select(PostLike.id).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        return result.scalar_one_or_none() is not None

    async def _sync_counter(self, db: AsyncSession, post_id: UUID) -> int:
        like_count = (
            select(func.count(PostLike.id))
            .where(PostLike.post_id == post_id)
            .scalar_subquery()
        )
        result = await db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(likes=like_count, updated_at=Post.updated_at)
            .returning(Post.likes)
        )
        return result.scalar_one()

    async def add(self, db: AsyncSession, post_id: UUID, user_id: UUID) -> Tuple[bool, int]:
        """
        添加点赞，重复点赞不报错

        Returns:
            (是否新插入, 最新点赞数)
        """
        result = await db.execute(
            pg_insert(PostLike)
            .values(post_id=post_id, user_id=user_id)
            .on_conflict_do_nothing(constraint="uq_post_likes_user_post")
            .returning(PostLike.id)
        )
        inserted = result.scalar_one_or_none() is not None
        likes = await self._sync_counter(db, post_id)
        await db.commit()
        return inserted, likes

    async def remove(self, db: AsyncSession, post_id: UUID, user_id: UUID) -> Tuple[bool, int]:
        """取消点赞，返回 (是否删除了记录, 最新点赞数)"""
        result = await db.execute(
            delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        likes = await self._sync_counter(db, post_id)
        await db.commit()
        return result.rowcount > 0, likes


crud_post = CRUDPost()
crud_post_like = CRUDPostLike()
