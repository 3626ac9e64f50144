from uuid import uuid4

import pytest
from pydantic import ValidationError

from app.core.exceptions import (
    InsufficientPermissionsError,
    InvalidUploadError,
    ResourceNotFoundError,
)
from app.modules.posts.images import ImageUpload
from app.modules.posts.models import PostStatus
from app.modules.posts.schemas import (
    DraftCreate,
    DraftsQuery,
    DraftUpdate,
    PostCreate,
    PostsQuery,
    PostUpdate,
    PublishDraft,
)

STORAGE_BASE = "https://storage.test/storage/v1/object/public/posts"


def png(name: str = "cover.png", size: int = 16) -> ImageUpload:
    return ImageUpload(filename=name, content_type="image/png", data=b"\x89PNG" + b"0" * size)


# ---- 创建与发布 ----

@pytest.mark.asyncio
async def test_create_published_post_sets_published_at(post_service, alice):
    post = await post_service.create_post(
        None, PostCreate(title="Hello", content="World", status=PostStatus.PUBLISHED), alice.id
    )

    assert post.status == PostStatus.PUBLISHED
    assert post.published_at is not None
    assert post.views == 0 and post.likes == 0


@pytest.mark.asyncio
async def test_create_post_defaults_to_draft_without_published_at(post_service, alice):
    post = await post_service.create_post(None, PostCreate(title="Hello", content="World"), alice.id)

    assert post.status == PostStatus.DRAFT
    assert post.published_at is None


@pytest.mark.asyncio
async def test_publish_applies_only_non_empty_overrides(post_service, alice):
    image = f"{STORAGE_BASE}/post-1.png"
    draft = await post_service.create_draft(
        None, DraftCreate(title="Old", content="Body", image=image), alice.id
    )

    published = await post_service.publish(
        None, draft.id, PublishDraft(title="New", image=""), alice.id
    )

    assert published.status == PostStatus.PUBLISHED
    assert published.published_at is not None
    assert published.title == "New"
    assert published.content == "Body"
    assert published.image == image


@pytest.mark.asyncio
async def test_published_post_cannot_be_published_again(post_service, alice):
    draft = await post_service.create_draft(None, DraftCreate(title="T", content="C"), alice.id)
    await post_service.publish(None, draft.id, PublishDraft(), alice.id)

    with pytest.raises(ResourceNotFoundError):
        await post_service.publish(None, draft.id, PublishDraft(), alice.id)


@pytest.mark.asyncio
async def test_update_published_keeps_status_and_published_at(post_service, post_repo, alice):
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id)
    published_at = post.published_at

    updated = await post_service.update_published(None, post.id, PostUpdate(title="T2"), alice.id)

    assert updated.status == PostStatus.PUBLISHED
    assert updated.published_at == published_at
    assert updated.title == "T2"


@pytest.mark.asyncio
async def test_update_ignores_fields_outside_whitelist(post_service, post_repo, alice, bob):
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id, views=7)

    changes = PostUpdate.model_validate({"title": "T2", "authorId": str(bob.id), "views": 0})
    updated = await post_service.update_published(None, post.id, changes, alice.id)

    assert updated.author_id == alice.id
    assert updated.views == 7


@pytest.mark.parametrize("schema", [PostUpdate, DraftUpdate, PublishDraft])
@pytest.mark.parametrize("field", ["title", "content"])
def test_explicit_null_title_or_content_is_rejected(schema, field):
    with pytest.raises(ValidationError):
        schema.model_validate({field: None})


@pytest.mark.asyncio
async def test_explicit_null_image_clears_image(post_service, post_repo, asset_store, alice):
    post = post_repo.add(
        title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id,
        image=f"{STORAGE_BASE}/post-old.png",
    )

    changes = PostUpdate.model_validate({"image": None})
    updated = await post_service.update_published(None, post.id, changes, alice.id)

    assert changes.changes() == {"image": None}
    assert updated.image is None
    assert updated.title == "T"
    assert asset_store.deleted == ["post-old.png"]


# ---- 草稿 ----

@pytest.mark.asyncio
async def test_discard_draft_of_other_user_is_not_found(post_service, post_repo, alice, bob):
    draft = post_repo.add(title="T", content="C", author_id=alice.id)

    with pytest.raises(ResourceNotFoundError):
        await post_service.discard_draft(None, draft.id, bob.id)
    with pytest.raises(ResourceNotFoundError):
        await post_service.discard_draft(None, uuid4(), alice.id)

    assert draft.id in post_repo.posts


@pytest.mark.asyncio
async def test_discard_draft_removes_row_then_image(post_service, post_repo, asset_store, alice):
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=f"{STORAGE_BASE}/post-1.png")

    await post_service.discard_draft(None, draft.id, alice.id)

    assert draft.id not in post_repo.posts
    assert asset_store.deleted == ["post-1.png"]


@pytest.mark.asyncio
async def test_asset_delete_failure_does_not_fail_discard(post_service, post_repo, asset_store, alice):
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=f"{STORAGE_BASE}/post-1.png")
    asset_store.fail_delete = True

    await post_service.discard_draft(None, draft.id, alice.id)

    assert draft.id not in post_repo.posts


@pytest.mark.asyncio
async def test_get_draft_hides_published_posts(post_service, post_repo, alice):
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id)

    with pytest.raises(ResourceNotFoundError):
        await post_service.get_draft(None, post.id, alice.id)


@pytest.mark.asyncio
async def test_list_drafts_only_returns_own_drafts(post_service, post_repo, alice, bob):
    post_repo.add(title="mine", content="C", author_id=alice.id)
    post_repo.add(title="theirs", content="C", author_id=bob.id)
    post_repo.add(title="published", content="C", status=PostStatus.PUBLISHED, author_id=alice.id)

    page = await post_service.list_drafts(None, DraftsQuery(), alice.id)

    assert page["total"] == 1
    assert [p.title for p in page["items"]] == ["mine"]


@pytest.mark.asyncio
async def test_update_draft_applies_whitelisted_changes(post_service, post_repo, alice):
    draft = post_repo.add(title="T", content="C", author_id=alice.id, views=3)

    changes = DraftUpdate.model_validate({"content": "C2", "status": "published", "views": 0})
    updated = await post_service.update_draft(None, draft.id, changes, alice.id)

    assert updated.content == "C2"
    assert updated.title == "T"
    assert updated.status == PostStatus.DRAFT
    assert updated.views == 3


@pytest.mark.asyncio
async def test_update_draft_of_other_user_is_not_found(post_service, post_repo, asset_store, alice, bob):
    draft = post_repo.add(title="T", content="C", author_id=alice.id)

    with pytest.raises(ResourceNotFoundError):
        await post_service.update_draft(None, draft.id, DraftUpdate(title="x"), bob.id, png())

    assert post_repo.posts[draft.id].title == "T"
    assert asset_store.objects == {}


@pytest.mark.asyncio
async def test_update_draft_replacing_image_deletes_old_once(post_service, post_repo, asset_store, alice):
    old = f"{STORAGE_BASE}/post-old.png"
    new = f"{STORAGE_BASE}/post-new.png"
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=old)

    updated = await post_service.update_draft(None, draft.id, DraftUpdate(image=new), alice.id)

    assert updated.image == new
    assert asset_store.deleted == ["post-old.png"]


@pytest.mark.asyncio
async def test_update_draft_with_upload_deletes_old_after_write(post_service, post_repo, asset_store, alice):
    old = f"{STORAGE_BASE}/post-old.png"
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=old)

    updated = await post_service.update_draft(None, draft.id, DraftUpdate(), alice.id, png())

    assert updated.image != old
    assert asset_store.deleted == ["post-old.png"]
    assert list(asset_store.objects) == [asset_store.key_from_url(updated.image)]


@pytest.mark.asyncio
async def test_update_draft_same_image_url_issues_no_delete(post_service, post_repo, asset_store, alice):
    image = f"{STORAGE_BASE}/post-same.png"
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=image)

    await post_service.update_draft(None, draft.id, DraftUpdate(image=image, title="T2"), alice.id)

    assert asset_store.deleted == []


@pytest.mark.asyncio
async def test_failed_draft_write_keeps_old_image(post_service, post_repo, asset_store, alice):
    old = f"{STORAGE_BASE}/post-old.png"
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=old)
    post_repo.fail_save = True

    with pytest.raises(RuntimeError):
        await post_service.update_draft(None, draft.id, DraftUpdate(), alice.id, png())

    assert asset_store.deleted == []


# ---- 权限 ----

@pytest.mark.asyncio
async def test_update_by_non_owner_is_forbidden_and_changes_nothing(post_service, post_repo, asset_store, alice, bob):
    image = f"{STORAGE_BASE}/post-1.png"
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id, image=image)

    with pytest.raises(InsufficientPermissionsError):
        await post_service.update_published(None, post.id, PostUpdate(title="hacked"), bob.id)
    with pytest.raises(InsufficientPermissionsError):
        await post_service.remove(None, post.id, bob.id)

    assert post_repo.posts[post.id].title == "T"
    assert post_repo.posts[post.id].image == image
    assert asset_store.deleted == []


@pytest.mark.asyncio
async def test_update_of_draft_via_published_path_is_not_found(post_service, post_repo, alice):
    draft = post_repo.add(title="T", content="C", author_id=alice.id)

    with pytest.raises(ResourceNotFoundError):
        await post_service.update_published(None, draft.id, PostUpdate(title="x"), alice.id)


@pytest.mark.asyncio
async def test_remove_deletes_row_and_image(post_service, post_repo, asset_store, alice):
    post = post_repo.add(
        title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id,
        image=f"{STORAGE_BASE}/post-9.png",
    )

    await post_service.remove(None, post.id, alice.id)

    assert post.id not in post_repo.posts
    assert asset_store.deleted == ["post-9.png"]


# ---- 图片替换 ----

@pytest.mark.asyncio
async def test_replacing_image_deletes_old_asset_exactly_once(post_service, post_repo, asset_store, alice):
    old = f"{STORAGE_BASE}/post-old.png"
    new = f"{STORAGE_BASE}/post-new.png"
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id, image=old)

    updated = await post_service.update_published(None, post.id, PostUpdate(image=new), alice.id)

    assert updated.image == new
    assert asset_store.deleted == ["post-old.png"]


@pytest.mark.asyncio
async def test_same_image_url_issues_no_delete(post_service, post_repo, asset_store, alice):
    image = f"{STORAGE_BASE}/post-same.png"
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id, image=image)

    await post_service.update_published(None, post.id, PostUpdate(image=image, title="T2"), alice.id)

    assert asset_store.deleted == []


@pytest.mark.asyncio
async def test_uploaded_image_replaces_old_after_row_update(post_service, post_repo, asset_store, alice):
    old = f"{STORAGE_BASE}/post-old.png"
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id, image=old)

    updated = await post_service.update_published(None, post.id, PostUpdate(), alice.id, png())

    assert updated.image != old
    assert updated.image.startswith(STORAGE_BASE)
    assert asset_store.deleted == ["post-old.png"]
    assert len(asset_store.objects) == 1


@pytest.mark.asyncio
async def test_failed_row_write_keeps_old_image(post_service, post_repo, asset_store, alice):
    old = f"{STORAGE_BASE}/post-old.png"
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id, image=old)
    post_repo.fail_save = True

    with pytest.raises(RuntimeError):
        await post_service.update_published(None, post.id, PostUpdate(), alice.id, png())

    assert asset_store.deleted == []


@pytest.mark.asyncio
async def test_publish_with_upload_replaces_draft_image_once(post_service, post_repo, asset_store, alice):
    old = f"{STORAGE_BASE}/post-old.png"
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=old)

    published = await post_service.publish(None, draft.id, PublishDraft(), alice.id, png())

    assert published.status == PostStatus.PUBLISHED
    assert published.image != old
    assert published.image.startswith(STORAGE_BASE)
    assert asset_store.deleted == ["post-old.png"]


@pytest.mark.asyncio
async def test_publish_with_image_override_deletes_old_once(post_service, post_repo, asset_store, alice):
    old = f"{STORAGE_BASE}/post-old.png"
    new = f"{STORAGE_BASE}/post-new.png"
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=old)

    published = await post_service.publish(None, draft.id, PublishDraft(image=new), alice.id)

    assert published.image == new
    assert asset_store.deleted == ["post-old.png"]


@pytest.mark.asyncio
async def test_publish_with_same_image_issues_no_delete(post_service, post_repo, asset_store, alice):
    image = f"{STORAGE_BASE}/post-same.png"
    draft = post_repo.add(title="T", content="C", author_id=alice.id, image=image)

    published = await post_service.publish(None, draft.id, PublishDraft(image=image), alice.id)

    assert published.image == image
    assert asset_store.deleted == []


# ---- 图片上传校验 ----

@pytest.mark.asyncio
async def test_upload_image_returns_generated_key_and_url(post_service, asset_store):
    result = await post_service.upload_image(png("photo.PNG"))

    assert result["filename"].startswith("post-")
    assert result["filename"].endswith(".png")
    assert result["url"] == f"{STORAGE_BASE}/{result['filename']}"
    assert result["filename"] in asset_store.objects


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "upload",
    [
        None,
        ImageUpload(filename="notes.txt", content_type="text/plain", data=b"hello"),
        ImageUpload(filename="fake.png", content_type="application/pdf", data=b"%PDF"),
    ],
)
async def test_upload_image_rejects_missing_or_non_image(post_service, asset_store, upload):
    with pytest.raises(InvalidUploadError):
        await post_service.upload_image(upload)
    assert asset_store.objects == {}


@pytest.mark.asyncio
async def test_upload_image_rejects_oversize_file(post_service, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings.storage, "MAX_IMAGE_SIZE", 8)

    with pytest.raises(InvalidUploadError):
        await post_service.upload_image(png(size=64))


# ---- 读取 ----

@pytest.mark.asyncio
async def test_find_one_records_every_view(post_service, post_repo, alice):
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id)

    await post_service.find_one(None, post.id)
    result = await post_service.find_one(None, post.id)

    assert result.views == 2


@pytest.mark.asyncio
async def test_find_one_hides_drafts(post_service, post_repo, alice):
    draft = post_repo.add(title="T", content="C", author_id=alice.id)

    with pytest.raises(ResourceNotFoundError):
        await post_service.find_one(None, draft.id)
    assert draft.views == 0


@pytest.mark.asyncio
async def test_find_all_pagination_arithmetic(post_service, post_repo, alice):
    for i in range(23):
        post_repo.add(title=f"post {i}", content="C", status=PostStatus.PUBLISHED, author_id=alice.id)
    post_repo.add(title="draft", content="C", author_id=alice.id)

    page = await post_service.find_all(None, PostsQuery(page=3, limit=10))

    assert page["total"] == 23
    assert page["total_pages"] == 3
    assert len(page["items"]) == 3


# ---- 点赞 ----

@pytest.mark.asyncio
async def test_like_on_draft_is_not_found(post_service, post_repo, alice, bob):
    draft = post_repo.add(title="T", content="C", author_id=alice.id)

    with pytest.raises(ResourceNotFoundError):
        await post_service.like(None, draft.id, bob.id)
    with pytest.raises(ResourceNotFoundError):
        await post_service.toggle_like(None, draft.id, bob.id)


@pytest.mark.asyncio
async def test_like_is_idempotent_per_user(post_service, post_repo, alice, bob):
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id)

    await post_service.like(None, post.id, bob.id)
    result = await post_service.like(None, post.id, bob.id)

    assert result.liked is True
    assert result.likes == 1


@pytest.mark.asyncio
async def test_toggle_like_flips_state_and_counter(post_service, post_repo, alice, bob):
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id)

    first = await post_service.toggle_like(None, post.id, bob.id)
    status = await post_service.like_status(None, post.id, bob.id)
    second = await post_service.toggle_like(None, post.id, bob.id)

    assert (first.liked, first.likes) == (True, 1)
    assert (status.liked, status.likes) == (True, 1)
    assert (second.liked, second.likes) == (False, 0)


@pytest.mark.asyncio
async def test_each_user_is_counted_once_across_repeated_likes(post_service, post_repo, alice):
    post = post_repo.add(title="T", content="C", status=PostStatus.PUBLISHED, author_id=alice.id)
    users = [uuid4() for _ in range(10)]

    for user_id in users:
        await post_service.like(None, post.id, user_id)
    for _ in range(5):
        await post_service.like(None, post.id, users[0])

    status = await post_service.like_status(None, post.id, users[0])
    assert status.likes == 10
    assert post_repo.posts[post.id].likes == 10
