import logging
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.constant.constants import ErrorMessages
from app.core.exceptions import ResourceNotFoundError
from app.modules.comments.models import Comment
from app.modules.comments.repository import crud_comment, CRUDComment
from app.modules.comments.schemas import CommentCreate, CommentUpdate
from app.modules.posts.repository import crud_post, CRUDPost

logger = logging.getLogger(__name__)


class CommentService:
    """评论的增删改查；任何已登录用户都可以评论已发布的帖子"""

    def __init__(self, comments: CRUDComment = crud_comment, posts: CRUDPost = crud_post):
        self.comments = comments
        self.posts = posts

    async def create(
        self, db: AsyncSession, post_id: UUID, comment_in: CommentCreate, author_id: UUID
    ) -> Comment:
        post = await self.posts.get_published(db, post_id)
        if not post:
            raise ResourceNotFoundError(ErrorMessages.POST_NOT_FOUND)

        comment = Comment(content=comment_in.content, post_id=post.id, author_id=author_id)
        comment = await self.comments.save(db, comment)
        logger.info(f"用户 {author_id} 评论了帖子 {post.id}")
        return comment

    async def find_by_post(self, db: AsyncSession, post_id: UUID) -> List[Comment]:
        return await self.comments.get_by_post(db, post_id)

    async def find_by_user(self, db: AsyncSession, user_id: UUID) -> List[Comment]:
        return await self.comments.get_by_user(db, user_id)

    async def find_recent(self, db: AsyncSession, limit: int) -> List[Comment]:
        return await self.comments.get_recent(db, limit)

    async def find_one(self, db: AsyncSession, comment_id: UUID) -> Comment:
        comment = await self.comments.get(db, comment_id)
        if not comment:
            raise ResourceNotFoundError(ErrorMessages.COMMENT_NOT_FOUND)
        return comment

    async def update(self, db: AsyncSession, comment_id: UUID, comment_in: CommentUpdate) -> Comment:
        comment = await self.find_one(db, comment_id)
        comment.content = comment_in.content
        return await self.comments.save(db, comment)

    async def remove(self, db: AsyncSession, comment_id: UUID) -> None:
        comment = await self.find_one(db, comment_id)
        await self.comments.delete(db, comment)


comment_service = CommentService()
