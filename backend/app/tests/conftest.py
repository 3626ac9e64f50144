import os

os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_DB", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm.attributes import set_committed_value

from app.infrastructure.database import models  # noqa: F401
from app.infrastructure.storage.asset_store import AssetStore
from app.core.exceptions import StorageError
from app.modules.posts.models import Post, PostStatus
from app.modules.posts.service import PostService
from app.modules.users.models import User

STORAGE_BASE = "https://storage.test/storage/v1/object/public/posts"


class FakeAssetStore(AssetStore):
    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_delete = False

    def public_url(self, key: str) -> str:
        return f"{STORAGE_BASE}/{key}"

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        self.objects[key] = data
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        self.deleted.append(key)
        if self.fail_delete:
            raise StorageError("storage unavailable")
        self.objects.pop(key, None)


class FakePostRepository:
    """与 CRUDPost 相同的查询语义，数据保存在内存中"""

    def __init__(self) -> None:
        self.posts: Dict[UUID, Post] = {}
        self.fail_save = False
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def add(self, **fields) -> Post:
        fields.setdefault("views", 0)
        fields.setdefault("likes", 0)
        fields.setdefault("status", PostStatus.DRAFT)
        if fields["status"] == PostStatus.PUBLISHED:
            fields.setdefault("published_at", self._tick())
        post = Post(id=uuid4(), **fields)
        post.created_at = post.updated_at = self._tick()
        self.posts[post.id] = post
        return post

    async def get(self, db, post_id, *, status=None, author_id=None, with_comments=False) -> Optional[Post]:
        post = self.posts.get(post_id)
        if post is None:
            return None
        if status is not None and post.status != status:
            return None
        if author_id is not None and post.author_id != author_id:
            return None
        return post

    async def get_published(self, db, post_id, *, with_comments=False):
        return await self.get(db, post_id, status=PostStatus.PUBLISHED)

    async def get_owned_draft(self, db, post_id, author_id):
        return await self.get(db, post_id, status=PostStatus.DRAFT, author_id=author_id)

    async def get_multi_published(self, db, *, search=None, sort_by="createdAt", sort_order="DESC", skip=0, limit=10):
        items = [p for p in self.posts.values() if p.status == PostStatus.PUBLISHED]
        if search:
            needle = search.lower()
            items = [p for p in items if needle in p.title.lower() or needle in p.content.lower()]
        items.sort(key=lambda p: p.created_at, reverse=sort_order == "DESC")
        return items[skip:skip + limit], len(items)

    async def get_drafts(self, db, author_id, *, search=None, sort_by="updatedAt", sort_order="DESC", skip=0, limit=10):
        items = [
            p for p in self.posts.values()
            if p.status == PostStatus.DRAFT and p.author_id == author_id
        ]
        items.sort(key=lambda p: p.updated_at, reverse=sort_order == "DESC")
        return items[skip:skip + limit], len(items)

    async def get_popular(self, db, limit):
        items = [p for p in self.posts.values() if p.status == PostStatus.PUBLISHED]
        items.sort(key=lambda p: (p.likes, p.views), reverse=True)
        return items[:limit]

    async def get_recent(self, db, limit):
        items = [p for p in self.posts.values() if p.status == PostStatus.PUBLISHED]
        items.sort(key=lambda p: p.published_at, reverse=True)
        return items[:limit]

    async def save(self, db, db_obj: Post) -> Post:
        if self.fail_save:
            raise RuntimeError("database unavailable")
        if db_obj.id is None:
            db_obj.id = uuid4()
            db_obj.created_at = self._tick()
        db_obj.updated_at = self._tick()
        self.posts[db_obj.id] = db_obj
        return db_obj

    async def delete(self, db, db_obj: Post) -> None:
        self.posts.pop(db_obj.id, None)

    async def increment_views(self, db, post_id) -> int:
        post = self.posts[post_id]
        views = post.views + 1
        set_committed_value(post, "views", views)
        return views


class FakePostLikeRepository:
    """(post_id, user_id) 集合即唯一约束"""

    def __init__(self, posts: FakePostRepository) -> None:
        self.posts = posts
        self.likes: Set[Tuple[UUID, UUID]] = set()

    def _sync_counter(self, post_id) -> int:
        count = sum(1 for p, _ in self.likes if p == post_id)
        set_committed_value(self.posts.posts[post_id], "likes", count)
        return count

    async def exists(self, db, post_id, user_id) -> bool:
        return (post_id, user_id) in self.likes

    async def add(self, db, post_id, user_id):
        inserted = (post_id, user_id) not in self.likes
        self.likes.add((post_id, user_id))
        return inserted, self._sync_counter(post_id)

    async def remove(self, db, post_id, user_id):
        removed = (post_id, user_id) in self.likes
        self.likes.discard((post_id, user_id))
        return removed, self._sync_counter(post_id)


def make_user(name: str, email: Optional[str] = None, avatar: Optional[str] = None) -> User:
    user = User(
        id=uuid4(),
        name=name,
        email=email or f"{name.lower().replace(' ', '.')}@example.com",
        hashed_password="x",
        avatar=avatar,
    )
    user.created_at = user.updated_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return user


@pytest.fixture()
def asset_store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture()
def post_repo() -> FakePostRepository:
    return FakePostRepository()


@pytest.fixture()
def like_repo(post_repo: FakePostRepository) -> FakePostLikeRepository:
    return FakePostLikeRepository(post_repo)


@pytest.fixture()
def post_service(asset_store, post_repo, like_repo) -> PostService:
    return PostService(asset_store, posts=post_repo, post_likes=like_repo)


@pytest.fixture()
def alice() -> User:
    return make_user("Alice Brown")


@pytest.fixture()
def bob() -> User:
    return make_user("Bob")
