"""
搜索与排序

search 会把存储层错误继续抛出；suggestions 和 quick_search 只服务于
输入联想，出错时记录日志并返回空列表。
"""
import asyncio
import logging
import math
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.modules.posts.models import Post
from app.modules.search.ranking import calculate_relevance
from app.modules.search.repository import crud_search, CRUDSearch
from app.modules.search.schemas import (
    SearchQuery,
    SearchResponse,
    SearchResult,
    SearchResultPost,
    SearchResultUser,
    SearchSuggestion,
    SearchType,
)
from app.modules.users.models import User
from app.modules.users.schemas import UserSummary
from app.infrastructure.database.postgres_base import get_session_factory
from app.infrastructure.utils.common import total_pages

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 3
EXCERPT_LENGTH = 150


def user_result(user: User) -> SearchResultUser:
    return SearchResultUser(
        id=user.id,
        title=user.name,
        excerpt=user.email,
        avatar=user.avatar,
        created_at=user.created_at,
    )


def post_result(post: Post) -> SearchResultPost:
    excerpt = post.content[:EXCERPT_LENGTH]
    if len(post.content) > EXCERPT_LENGTH:
        excerpt += "..."
    return SearchResultPost(
        id=post.id,
        title=post.title,
        excerpt=excerpt,
        image=post.image,
        author=UserSummary.model_validate(post.author) if post.author else None,
        created_at=post.published_at or post.created_at,
        likes=post.likes,
        views=post.views,
    )


def _user_suggestion(user: User) -> SearchSuggestion:
    return SearchSuggestion(id=user.id, type="user", title=user.name, avatar=user.avatar)


def _post_suggestion(post: Post) -> SearchSuggestion:
    avatar = post.author.avatar if post.author else None
    return SearchSuggestion(id=post.id, type="post", title=post.title, avatar=avatar)


class SearchService:
    def __init__(
        self,
        repository: CRUDSearch = crud_search,
        session_factory: Optional[async_sessionmaker] = None,
    ):
        self.repository = repository
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def search(self, db: AsyncSession, params: SearchQuery) -> SearchResponse:
        q = params.q.strip()
        if not q:
            return SearchResponse(
                results=[], total=0, page=params.page, limit=params.limit, total_pages=0, query=params.q
            )

        logger.info(f"搜索: q={q!r} type={params.type.value} page={params.page}")
        skip = (params.page - 1) * params.limit
        results: List[SearchResult] = []
        total = 0

        if params.type == SearchType.USER:
            users, total = await self.repository.search_users(
                db, q, skip=skip, limit=params.limit,
                sort_by=params.sort_by, sort_order=params.sort_order,
            )
            results = [user_result(u) for u in users]

        elif params.type == SearchType.POST:
            posts, total = await self.repository.search_posts(
                db, q, skip=skip, limit=params.limit,
                sort_by=params.sort_by, sort_order=params.sort_order,
            )
            results = [post_result(p) for p in posts]

        else:
            # 每类各取 ceil(limit/2)，合并后再截断；跨页边界是近似的
            per_type = math.ceil(params.limit / 2)
            users, user_total = await self.repository.search_users(
                db, q, skip=skip, limit=per_type,
                sort_by=params.sort_by, sort_order=params.sort_order,
            )
            posts, post_total = await self.repository.search_posts(
                db, q, skip=skip, limit=per_type,
                sort_by=params.sort_by, sort_order=params.sort_order,
            )
            results = [user_result(u) for u in users] + [post_result(p) for p in posts]
            total = user_total + post_total

            if params.sort_by == "relevance":
                # sorted 是稳定排序，同分时保持查询顺序
                results = sorted(results, key=lambda r: calculate_relevance(r, q), reverse=True)
            results = results[:params.limit]

        return SearchResponse(
            results=results,
            total=total,
            page=params.page,
            limit=params.limit,
            total_pages=total_pages(total, params.limit),
            query=params.q,
        )

    async def suggestions(self, db: AsyncSession, q: str) -> List[SearchSuggestion]:
        q = (q or "").strip()
        if not q:
            return []
        try:
            users = await self.repository.suggest_users(db, q, SUGGESTION_LIMIT)
            posts = await self.repository.suggest_posts(db, q, SUGGESTION_LIMIT)
        except Exception as e:
            logger.error(f"获取搜索建议失败: {e}")
            return []
        return [_user_suggestion(u) for u in users] + [_post_suggestion(p) for p in posts]

    async def _quick_users(self, q: str, limit: int) -> List[SearchSuggestion]:
        async with self.session_factory() as session:
            users = await self.repository.suggest_users(session, q, limit)
            return [_user_suggestion(u) for u in users]

    async def _quick_posts(self, q: str, limit: int) -> List[SearchSuggestion]:
        if limit <= 0:
            return []
        async with self.session_factory() as session:
            posts = await self.repository.suggest_posts(session, q, limit)
            return [_post_suggestion(p) for p in posts]

    async def quick_search(self, q: str, limit: int = 5) -> List[SearchSuggestion]:
        """用户和帖子各占一半名额，两条查询各用一个会话并发执行"""
        q = (q or "").strip()
        if not q:
            return []
        user_limit = math.ceil(limit / 2)
        post_limit = limit - user_limit
        try:
            users, posts = await asyncio.gather(
                self._quick_users(q, user_limit),
                self._quick_posts(q, post_limit),
            )
        except Exception as e:
            logger.error(f"快速搜索失败: {e}")
            return []
        return users + posts


search_service = SearchService()
