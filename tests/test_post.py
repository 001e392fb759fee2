import uuid
from dataclasses import dataclass
from http import HTTPStatus
from unittest.mock import AsyncMock

import pytest

from portfolio_backend.common import NotFoundError, ValidationError
from portfolio_backend.post import (
    PostState,
    create_post,
    delete_post,
    get_all_posts,
    get_featured_posts,
    get_post,
    get_post_by_slug,
    get_post_stats,
    get_posts_by_category,
    get_posts_by_tags,
    get_published_posts,
    update_post,
    update_published_status,
)


@dataclass
class Payload:
    title: str
    valid: bool = True

    def validate(self):
        if not self.valid:
            raise ValueError("title: required")


def make_state():
    service = AsyncMock()
    return PostState(blog_service=service), service


@pytest.mark.asyncio
async def test_get_all_posts():
    state, service = make_state()
    service.get_all_posts.return_value = {"posts": []}
    response = await get_all_posts(state, {"page": 2})
    assert response.body == {"posts": []}
    service.get_all_posts.assert_awaited_once_with({"page": 2})


@pytest.mark.asyncio
async def test_get_post_counts_view():
    state, service = make_state()
    post_id = uuid.uuid4()
    service.get_post_by_id.return_value = {"id": post_id, "published": True}
    response = await get_post(state, post_id)
    assert response.body == {"id": str(post_id), "published": True}
    service.increment_view_count.assert_awaited_once_with(post_id)


@pytest.mark.asyncio
async def test_get_post_ignores_view_count_failure():
    state, service = make_state()
    post_id = uuid.uuid4()
    service.get_post_by_id.return_value = {"title": "t"}
    service.increment_view_count.side_effect = RuntimeError("db down")
    response = await get_post(state, post_id)
    assert response.body == {"title": "t"}


@pytest.mark.asyncio
async def test_get_post_not_found():
    state, service = make_state()
    service.get_post_by_id.return_value = None
    with pytest.raises(NotFoundError, match="Post not found"):
        await get_post(state, uuid.uuid4())
    service.increment_view_count.assert_not_awaited()


@pytest.mark.asyncio
async def test_slug_unpublished_is_hidden():
    state, service = make_state()
    service.get_post_by_slug.return_value = {"id": uuid.uuid4(), "published": False}
    with pytest.raises(NotFoundError):
        await get_post_by_slug(state, "draft", {})
    service.increment_view_count.assert_not_awaited()


@pytest.mark.asyncio
async def test_slug_preview_shows_draft_without_counting():
    state, service = make_state()
    service.get_post_by_slug.return_value = {"slug": "draft", "published": False}
    response = await get_post_by_slug(state, "draft", {"preview": "true"})
    assert response.body == {"slug": "draft", "published": False}
    service.increment_view_count.assert_not_awaited()


@pytest.mark.asyncio
async def test_slug_preview_of_published_does_not_count():
    state, service = make_state()
    service.get_post_by_slug.return_value = {"slug": "live", "published": True}
    response = await get_post_by_slug(state, "live", {"preview": "true"})
    assert response.body["published"] is True
    service.increment_view_count.assert_not_awaited()


@pytest.mark.asyncio
async def test_slug_published_counts_view_by_post_id():
    state, service = make_state()
    post_id = uuid.uuid4()
    service.get_post_by_slug.return_value = {"id": post_id, "published": True}
    await get_post_by_slug(state, "live", {"preview": "false"})
    service.increment_view_count.assert_awaited_once_with(post_id)


@pytest.mark.asyncio
async def test_slug_missing():
    state, service = make_state()
    service.get_post_by_slug.return_value = None
    with pytest.raises(NotFoundError):
        await get_post_by_slug(state, "nope", {"preview": "true"})


@pytest.mark.asyncio
async def test_create_post():
    state, service = make_state()
    service.create_post.return_value = {"title": "Hello"}
    response = await create_post(state, Payload("Hello"))
    assert response.status == int(HTTPStatus.CREATED)
    assert response.body == {"message": "Post created successfully", "post": {"title": "Hello"}}


@pytest.mark.asyncio
async def test_create_post_invalid():
    state, service = make_state()
    with pytest.raises(ValidationError, match="title: required"):
        await create_post(state, Payload("", valid=False))
    service.create_post.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_and_delete_post():
    state, service = make_state()
    post_id = uuid.uuid4()
    service.update_post.return_value = {"title": "New"}
    updated = await update_post(state, post_id, Payload("New"))
    deleted = await delete_post(state, post_id)
    assert updated.body["message"] == "Post updated successfully"
    assert updated.body["post"] == {"title": "New"}
    assert deleted.body == {"message": "Post deleted successfully"}
    service.delete_post.assert_awaited_once_with(post_id)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query, expected", [({"limit": 5}, 5), ({}, None), ({"limit": -1}, None), ({"limit": True}, None)]
)
async def test_published_posts_limit(query, expected):
    state, service = make_state()
    service.get_published_posts.return_value = [{"t": 1}]
    response = await get_published_posts(state, query)
    assert response.body == {"posts": [{"t": 1}], "total": 1}
    service.get_published_posts.assert_awaited_once_with(expected)


@pytest.mark.asyncio
async def test_published_posts_error_propagates():
    state, service = make_state()
    service.get_published_posts.side_effect = NotFoundError("gone")
    with pytest.raises(NotFoundError, match="gone"):
        await get_published_posts(state, {})


@pytest.mark.asyncio
async def test_featured_posts():
    state, service = make_state()
    service.get_featured_posts.return_value = []
    response = await get_featured_posts(state, {"limit": 3})
    assert response.body == {"posts": [], "total": 0}
    service.get_featured_posts.assert_awaited_once_with(3)


@pytest.mark.asyncio
async def test_posts_by_category():
    state, service = make_state()
    service.get_posts_by_category.return_value = [{"a": 1}, {"b": 2}]
    response = await get_posts_by_category(state, "rust", {})
    assert response.body["category"] == "rust"
    assert response.body["total"] == len(response.body["posts"])
    service.get_posts_by_category.assert_awaited_once_with("rust", None)


@pytest.mark.asyncio
async def test_posts_by_tags_requires_array():
    state, _ = make_state()
    with pytest.raises(ValidationError, match="Tags array is required"):
        await get_posts_by_tags(state, {"tags": "python"})


@pytest.mark.asyncio
async def test_posts_by_tags_keeps_strings_only():
    state, service = make_state()
    service.get_posts_by_tags.return_value = []
    response = await get_posts_by_tags(state, {"tags": ["web", 3, None, "api"], "limit": 10})
    assert response.body["tags"] == ["web", "api"]
    service.get_posts_by_tags.assert_awaited_once_with(["web", "api"], 10)


@pytest.mark.asyncio
async def test_post_stats():
    state, service = make_state()
    service.get_blog_statistics.return_value = {"total": 4}
    response = await get_post_stats(state)
    assert response.body == {"total": 4}


@pytest.mark.asyncio
async def test_update_published_status_publish_and_unpublish():
    state, service = make_state()
    post_id = uuid.uuid4()
    published = await update_published_status(state, post_id, {"published": True})
    await update_published_status(state, post_id, {"published": False})
    assert published.body == {"message": "Published status updated successfully"}
    service.publish_post.assert_awaited_once_with(post_id)
    service.unpublish_post.assert_awaited_once_with(post_id)


@pytest.mark.asyncio
async def test_update_published_status_requires_bool():
    state, service = make_state()
    with pytest.raises(ValidationError, match="Published status is required"):
        await update_published_status(state, uuid.uuid4(), {"published": "yes"})
    service.publish_post.assert_not_awaited()