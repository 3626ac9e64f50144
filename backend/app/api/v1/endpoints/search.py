from typing import Annotated, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.constant.constants import ErrorMessages
from app.infrastructure.database.postgres_base import get_async_session
from app.infrastructure.utils.common import handle_error
from app.api.dependencies import get_search_service
from app.api.v1.dependencies.pagination import get_search_query
from app.modules.search.schemas import SearchQuery, SearchResponse, SearchSuggestion
from app.modules.search.service import SearchService

router = APIRouter(prefix="/search", tags=["search"])

QUICK_SEARCH_MAX = 20


@router.get("", response_model=SearchResponse)
async def search(
    params: SearchQuery = Depends(get_search_query),
    db: AsyncSession = Depends(get_async_session),
    search_service: SearchService = Depends(get_search_service),
):
    """
    搜索用户和已发布帖子

    type=all 时每类各取 ceil(limit/2) 条，sortBy=relevance 时合并后按相关度重排。
    """
    try:
        return await search_service.search(db, params)
    except Exception as e:
        raise handle_error(e, ErrorMessages.SEARCH_FAILED)


@router.get("/suggestions", response_model=List[SearchSuggestion])
async def suggestions(
    q: Annotated[str, Query()] = "",
    db: AsyncSession = Depends(get_async_session),
    search_service: SearchService = Depends(get_search_service),
):
    return await search_service.suggestions(db, q)


@router.get("/quick", response_model=List[SearchSuggestion])
async def quick_search(
    q: Annotated[str, Query()] = "",
    limit: Annotated[int, Query()] = 5,
    search_service: SearchService = Depends(get_search_service),
):
    limit = max(1, min(limit, QUICK_SEARCH_MAX))
    return await search_service.quick_search(q, limit)
