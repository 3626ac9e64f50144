from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.modules.posts.models import Post, PostStatus
from app.modules.users.models import User


def _like_pattern(q: str) -> str:
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _user_match(q: str):
    pattern = _like_pattern(q)
    return or_(User.name.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\"))


def _post_match(q: str):
    pattern = _like_pattern(q)
    return (
        Post.status == PostStatus.PUBLISHED,
        or_(Post.title.ilike(pattern, escape="\\"), Post.content.ilike(pattern, escape="\\")),
    )


class CRUDSearch:
    """用户和已发布帖子的模糊查询，草稿永远不会被搜索到"""

    async def search_users(
        self,
        db: AsyncSession,
        q: str,
        *,
        skip: int = 0,
        limit: int = 10,
        sort_by: Optional[str] = None,
        sort_order: str = "DESC",
    ) -> Tuple[List[User], int]:
        if sort_by == "date":
            order = User.created_at.asc() if sort_order == "ASC" else User.created_at.desc()
        else:
            order = User.name.asc()

        query = select(User).where(_user_match(q)).order_by(order).offset(skip).limit(limit)
        count_query = select(func.count(User.id)).where(_user_match(q))

        total = (await db.execute(count_query)).scalar_one()
        users = (await db.execute(query)).scalars().all()
        return list(users), total

    async def search_posts(
        self,
        db: AsyncSession,
        q: str,
        *,
        skip: int = 0,
        limit: int = 10,
        sort_by: Optional[str] = None,
        sort_order: str = "DESC",
    ) -> Tuple[List[Post], int]:
        if sort_by == "date":
            orders = [Post.published_at.asc() if sort_order == "ASC" else Post.published_at.desc()]
        elif sort_by == "likes":
            orders = [Post.likes.asc() if sort_order == "ASC" else Post.likes.desc()]
        else:
            orders = [Post.likes.desc(), Post.views.desc()]

        query = (
            select(Post)
            .where(*_post_match(q))
            .options(selectinload(Post.author))
            .order_by(*orders)
            .offset(skip)
            .limit(limit)
        )
        count_query = select(func.count(Post.id)).where(*_post_match(q))

        total = (await db.execute(count_query)).scalar_one()
        posts = (await db.execute(query)).scalars().all()
        return list(posts), total

    async def suggest_users(self, db: AsyncSession, q: str, limit: int) -> List[User]:
        result = await db.execute(
            select(User).where(_user_match(q)).order_by(User.name.asc()).limit(limit)
        )
        return list(result.scalars().all())

    async def suggest_posts(self, db: AsyncSession, q: str, limit: int) -> List[Post]:
        result = await db.execute(
            select(Post)
            .where(*_post_match(q))
            .options(selectinload(Post.author))
            .order_by(Post.likes.desc(), Post.views.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


crud_search = CRUDSearch()
