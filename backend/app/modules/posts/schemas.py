from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import Field, field_validator

from app.schemas.common import CamelModel
from app.modules.posts.models import PostStatus
from app.modules.users.schemas import UserSummary
from app.modules.comments.schemas import CommentResponse

# 已发布帖子修改时允许变更的字段
MUTABLE_POST_FIELDS = ("title", "content", "image")


class PostBase(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    image: Optional[str] = Field(None, max_length=1000)


class PostCreate(PostBase):
    """直接创建帖子，status 缺省为草稿"""
    status: PostStatus = PostStatus.DRAFT


class DraftCreate(PostBase):
    pass


class PostChanges(CamelModel):
    """部分更新；未出现在白名单中的字段（authorId、views 等）被忽略"""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = Field(None, max_length=1000)

    @field_validator("title", "content")
    def reject_null(cls, value: Optional[str]) -> Optional[str]:
        # 标题和内容不可为空；image 允许显式 null 以清除图片
        if value is None:
            raise ValueError("标题和内容不能为 null")
        return value

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if k in MUTABLE_POST_FIELDS}


class DraftUpdate(PostChanges):
    pass


class PublishDraft(PostChanges):
    """发布时可选覆盖标题、内容、图片"""


class PostUpdate(PostChanges):
    pass


class PostsQuery(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: Optional[str] = None
    sort_by: Literal["createdAt", "publishedAt", "title", "views", "likes", "comments"] = "createdAt"
    sort_order: Literal["ASC", "DESC"] = "DESC"


class DraftsQuery(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: Optional[str] = None
    sort_by: Literal["createdAt", "updatedAt", "title"] = "updatedAt"
    sort_order: Literal["ASC", "DESC"] = "DESC"


class PostResponse(CamelModel):
    id: UUID
    title: str
    content: str
    image: Optional[str] = None
    views: int
    likes: int
    status: PostStatus
    published_at: Optional[datetime] = None
    author_id: UUID
    created_at: datetime
    updated_at: datetime


class PostWithAuthor(PostResponse):
    author: Optional[UserSummary] = None


class PostDetailResponse(PostWithAuthor):
    comments: List[CommentResponse] = []


class LikeStatusResponse(CamelModel):
    liked: bool
    likes: int


class ImageUploadResponse(CamelModel):
    filename: str
    url: str
