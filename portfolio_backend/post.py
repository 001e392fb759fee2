"""Handlers for the blog post endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping

from .common import AppError, JsonResponse, NotFoundError, ValidationError, to_json

logger = logging.getLogger(__name__)

_NOT_FOUND = "Post not found"


@dataclass
class PostState:
    """Dependencies of the post handlers."""

    blog_service: Any


def _validate(payload: Any) -> None:
    validate = getattr(payload, "validate", None)
    if not callable(validate):
        return
    try:
        validate()
    except AppError:
        raise
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _unsigned(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


async def _count_view(state: PostState, post_id: Any) -> None:
    try:
        await state.blog_service.increment_view_count(post_id)
    except Exception as exc:
        logger.debug("Failed to increment view count for %s: %s", post_id, exc)


async def get_all_posts(state: PostState, query: Any) -> JsonResponse:
    """List posts matching the query."""
    response = await state.blog_service.get_all_posts(query)
    return JsonResponse(body=to_json(response))


async def get_post(state: PostState, post_id: Any) -> JsonResponse:
    """Return one post by id and count the view."""
    post = await state.blog_service.get_post_by_id(post_id)
    if post is None:
        raise NotFoundError(_NOT_FOUND)
    await _count_view(state, post_id)
    return JsonResponse(body=to_json(post))


async def get_post_by_slug(
    state: PostState, slug: str, query: Mapping[str, Any]
) -> JsonResponse:
    """Return a published post by slug, or any post when previewing."""
    post = await state.blog_service.get_post_by_slug(slug)
    if post is None:
        raise NotFoundError(_NOT_FOUND)

    is_preview = query.get("preview") == "true"
    published = bool(_field(post, "published"))

    if not is_preview and not published:
        raise NotFoundError(_NOT_FOUND)

    if published and not is_preview:
        await _count_view(state, _field(post, "id"))

    return JsonResponse(body=to_json(post))


async def create_post(state: PostState, payload: Any) -> JsonResponse:
    """Validate and create a post."""
    _validate(payload)
    post = await state.blog_service.create_post(payload)
    return JsonResponse(
        body={"message": "Post created successfully", "post": to_json(post)},
        status=int(HTTPStatus.CREATED),
    )


async def update_post(state: PostState, post_id: Any, payload: Any) -> JsonResponse:
    """Validate and apply an update to a post."""
    _validate(payload)
    post = await state.blog_service.update_post(post_id, payload)
    return JsonResponse(
        body={"message": "Post updated successfully", "post": to_json(post)}
    )


async def delete_post(state: PostState, post_id: Any) -> JsonResponse:
    """Delete a post."""
    await state.blog_service.delete_post(post_id)
    return JsonResponse(body={"message": "Post deleted successfully"})


async def get_published_posts(
    state: PostState, query: Mapping[str, Any]
) -> JsonResponse:
    """List published posts, optionally limited."""
    logger.info("get_published_posts: Starting request with query: %r", query)
    limit = _unsigned(query.get("limit"))
    logger.info("get_published_posts: Parsed limit: %r", limit)
    try:
        posts = list(await state.blog_service.get_published_posts(limit))
    except Exception as exc:
        logger.error("get_published_posts: Error fetching posts: %r", exc)
        raise
    logger.info("get_published_posts: Returning response with %d posts", len(posts))
    return JsonResponse(body={"posts": to_json(posts), "total": len(posts)})


async def get_featured_posts(state: PostState, query: Mapping[str, Any]) -> JsonResponse:
    """List featured posts, optionally limited."""
    limit = _unsigned(query.get("limit"))
    posts = list(await state.blog_service.get_featured_posts(limit))
    return JsonResponse(body={"posts": to_json(posts), "total": len(posts)})


async def get_posts_by_category(
    state: PostState, category: str, query: Mapping[str, Any]
) -> JsonResponse:
    """List posts in a category, optionally limited."""
    limit = _unsigned(query.get("limit"))
    posts = list(await state.blog_service.get_posts_by_category(category, limit))
    return JsonResponse(
        body={"posts": to_json(posts), "category": category, "total": len(posts)}
    )


async def get_posts_by_tags(state: PostState, payload: Any) -> JsonResponse:
    """List posts carrying any of the given tags, optionally limited."""
    data: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
    raw_tags = data.get("tags")
    if not isinstance(raw_tags, list):
        raise ValidationError("Tags array is required")
    tags = [tag for tag in raw_tags if isinstance(tag, str)]
    limit = _unsigned(data.get("limit"))
    posts = list(await state.blog_service.get_posts_by_tags(list(tags), limit))
    return JsonResponse(
        body={"posts": to_json(posts), "tags": tags, "total": len(posts)}
    )


async def get_post_stats(state: PostState) -> JsonResponse:
    """Return blog statistics."""
    stats = await state.blog_service.get_blog_statistics()
    return JsonResponse(body=to_json(stats))


async def update_published_status(
    state: PostState, post_id: Any, payload: Mapping[str, Any]
) -> JsonResponse:
    """Publish or unpublish a post."""
    published = payload.get("published") if isinstance(payload, Mapping) else None
    if not isinstance(published, bool):
        raise ValidationError("Published status is required")
    if published:
        await state.blog_service.publish_post(post_id)
    else:
        await state.blog_service.unpublish_post(post_id)
    return JsonResponse(body={"message": "Published status updated successfully"})