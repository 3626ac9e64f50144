from typing import Annotated, Literal, Optional

from fastapi import Query

from app.modules.posts.schemas import DraftsQuery, PostsQuery
from app.modules.search.schemas import SearchQuery, SearchType

SortOrder = Literal["ASC", "DESC"]


async def get_posts_query(
    page: Annotated[int, Query(ge=1, description="页码")] = 1,
    limit: Annotated[int, Query(ge=1, le=100, description="每页数量")] = 10,
    search: Annotated[Optional[str], Query(description="标题或内容包含的文本")] = None,
    sort_by: Annotated[
        Literal["createdAt", "publishedAt", "title", "views", "likes", "comments"],
        Query(alias="sortBy", description="排序字段"),
    ] = "createdAt",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder", description="排序方向")] = "DESC",
) -> PostsQuery:
    """已发布帖子列表的分页、过滤和排序参数"""
    return PostsQuery(page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order)


async def get_drafts_query(
    page: Annotated[int, Query(ge=1, description="页码")] = 1,
    limit: Annotated[int, Query(ge=1, le=100, description="每页数量")] = 10,
    search: Annotated[Optional[str], Query(description="标题或内容包含的文本")] = None,
    sort_by: Annotated[
        Literal["createdAt", "updatedAt", "title"],
        Query(alias="sortBy", description="排序字段"),
    ] = "updatedAt",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder", description="排序方向")] = "DESC",
) -> DraftsQuery:
    return DraftsQuery(page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order)


async def get_search_query(
    q: Annotated[str, Query(description="搜索关键字")] = "",
    type: Annotated[SearchType, Query(description="结果类型")] = SearchType.ALL,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
    sort_by: Annotated[
        Literal["relevance", "date", "likes"], Query(alias="sortBy")
    ] = "relevance",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = "DESC",
) -> SearchQuery:
    return SearchQuery(q=q, type=type, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
