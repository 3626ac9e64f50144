from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel
from app.modules.users.schemas import UserSummary


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=1)


class CommentUpdate(CamelModel):
    content: str = Field(..., min_length=1)


class CommentResponse(CamelModel):
    id: UUID
    content: str
    author_id: UUID
    post_id: UUID
    created_at: datetime
    updated_at: datetime
    author: Optional[UserSummary] = None


class CommentPostSummary(CamelModel):
    id: UUID
    title: str


class CommentWithPost(CommentResponse):
    """用户评论列表和最新评论中附带所属帖子"""
    post: Optional[CommentPostSummary] = None
