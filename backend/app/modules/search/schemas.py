import enum
from datetime import datetime
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel
from app.modules.users.schemas import UserSummary


class SearchType(str, enum.Enum):
    ALL = "all"
    USER = "user"
    POST = "post"


class SearchQuery(CamelModel):
    q: str = ""
    type: SearchType = SearchType.ALL
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    sort_by: Literal["relevance", "date", "likes"] = "relevance"
    sort_order: Literal["ASC", "DESC"] = "DESC"


class SearchResultUser(CamelModel):
    id: UUID
    type: Literal["user"] = "user"
    title: str
    excerpt: Optional[str] = None
    avatar: Optional[str] = None
    created_at: datetime


class SearchResultPost(CamelModel):
    id: UUID
    type: Literal["post"] = "post"
    title: str
    excerpt: Optional[str] = None
    image: Optional[str] = None
    author: Optional[UserSummary] = None
    created_at: datetime
    likes: int = 0
    views: int = 0


SearchResult = Union[SearchResultUser, SearchResultPost]


class SearchResponse(CamelModel):
    results: List[SearchResult] = Field(default_factory=list)
    total: int
    page: int
    limit: int
    total_pages: int
    query: str


class SearchSuggestion(CamelModel):
    id: UUID
    type: Literal["user", "post"]
    title: str
    avatar: Optional[str] = None
