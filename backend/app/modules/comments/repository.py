from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.modules.comments.models import Comment


class CRUDComment:
    async def get(self, db: AsyncSession, comment_id: UUID) -> Optional[Comment]:
        result = await db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .options(selectinload(Comment.author), selectinload(Comment.post))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_post(self, db: AsyncSession, post_id: UUID) -> List[Comment]:
        result = await db.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .options(selectinload(Comment.author))
            .order_by(Comment.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_user(self, db: AsyncSession, user_id: UUID) -> List[Comment]:
        result = await db.execute(
            select(Comment)
            .where(Comment.author_id == user_id)
            .options(selectinload(Comment.author), selectinload(Comment.post))
            .order_by(Comment.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_recent(self, db: AsyncSession, limit: int) -> List[Comment]:
        result = await db.execute(
            select(Comment)
            .options(selectinload(Comment.author), selectinload(Comment.post))
            .order_by(Comment.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def save(self, db: AsyncSession, db_obj: Comment) -> Comment:
        db.add(db_obj)
        await db.commit()
        return await self.get(db, db_obj.id)

    async def delete(self, db: AsyncSession, db_obj: Comment) -> None:
        await db.delete(db_obj)
        await db.commit()


crud_comment = CRUDComment()
