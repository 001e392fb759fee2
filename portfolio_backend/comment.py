"""Handlers for the blog comment endpoints."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping, Sequence

from .auth import get_user_agent
from .common import AppError, JsonResponse, NotFoundError, ValidationError, to_json


@dataclass
class CommentState:
    """Dependencies of the comment handlers."""

    comment_service: Any


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


def _parse_ids(values: Sequence[Any]) -> list[uuid.UUID]:
    ids = []
    for value in values:
        if not isinstance(value, str):
            continue
        try:
            ids.append(uuid.UUID(value))
        except ValueError:
            continue
    return ids


async def get_all_comments(state: CommentState, query: Any) -> JsonResponse:
    """List comments matching the query."""
    response = await state.comment_service.get_all_comments(query)
    return JsonResponse(body=to_json(response))


async def get_comment(state: CommentState, comment_id: Any) -> JsonResponse:
    """Return one comment by id."""
    comment = await state.comment_service.get_comment_by_id(comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return JsonResponse(body=to_json(comment))


async def create_comment(
    state: CommentState,
    client_addr: Sequence[Any] | None,
    headers: Mapping[str, Any],
    payload: Any,
) -> JsonResponse:
    """Validate and submit a comment for moderation."""
    _validate(payload)
    ip_address = str(client_addr[0]) if client_addr is not None else None
    user_agent = get_user_agent(headers)
    comment = await state.comment_service.create_comment(
        payload, ip_address, user_agent
    )
    return JsonResponse(
        body={
            "message": "Comment submitted successfully and is pending moderation",
            "comment": to_json(comment),
        },
        status=int(HTTPStatus.CREATED),
    )


async def update_comment_status(
    state: CommentState, comment_id: Any, payload: Any
) -> JsonResponse:
    """Validate and apply a status change to a comment."""
    _validate(payload)
    comment = await state.comment_service.update_comment_status(comment_id, payload)
    return JsonResponse(
        body={
            "message": "Comment status updated successfully",
            "comment": to_json(comment),
        }
    )


async def delete_comment(state: CommentState, comment_id: Any) -> JsonResponse:
    """Delete a comment."""
    await state.comment_service.delete_comment(comment_id)
    return JsonResponse(body={"message": "Comment deleted successfully"})


async def get_comments_by_post(
    state: CommentState, post_id: Any, query: Mapping[str, Any]
) -> JsonResponse:
    """List the comments on a post, with replies unless asked otherwise."""
    include_replies = query.get("include_replies")
    if not isinstance(include_replies, bool):
        include_replies = True
    comments = list(
        await state.comment_service.get_comments_by_post(post_id, include_replies)
    )
    return JsonResponse(
        body={
            "comments": to_json(comments),
            "post_id": to_json(post_id),
            "total": len(comments),
            "include_replies": include_replies,
        }
    )


async def get_comment_replies(state: CommentState, comment_id: Any) -> JsonResponse:
    """List the replies to a comment."""
    replies = list(await state.comment_service.get_comment_replies(comment_id))
    return JsonResponse(
        body={
            "replies": to_json(replies),
            "parent_id": to_json(comment_id),
            "total": len(replies),
        }
    )


async def get_pending_comments(state: CommentState) -> JsonResponse:
    """List comments awaiting moderation."""
    comments = list(await state.comment_service.get_pending_comments())
    return JsonResponse(body={"comments": to_json(comments), "total": len(comments)})


async def get_comment_stats(state: CommentState) -> JsonResponse:
    """Return comment statistics."""
    stats = await state.comment_service.get_comment_statistics()
    return JsonResponse(body=to_json(stats))


async def bulk_update_comment_status(state: CommentState, payload: Any) -> JsonResponse:
    """Set the status of several comments at once."""
    data: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
    raw_ids = data.get("ids")
    if not isinstance(raw_ids, list):
        raise ValidationError("Comment IDs array is required")
    ids = _parse_ids(raw_ids)

    status = data.get("status")
    if not isinstance(status, str):
        raise ValidationError("Status is required")

    if not ids:
        raise ValidationError("At least one comment ID is required")

    affected_rows = await state.comment_service.bulk_moderate_comments(
        list(ids), status
    )
    return JsonResponse(
        body={
            "message": "Comments updated successfully",
            "affected_rows": affected_rows,
            "status": status,
            "comment_ids": to_json(ids),
        }
    )


async def approve_comment(state: CommentState, comment_id: Any) -> JsonResponse:
    """Approve a comment."""
    await state.comment_service.approve_comment(comment_id)
    return JsonResponse(
        body={
            "message": "Comment approved successfully",
            "comment_id": to_json(comment_id),
        }
    )


async def reject_comment(state: CommentState, comment_id: Any) -> JsonResponse:
    """Reject a comment."""
    await state.comment_service.reject_comment(comment_id)
    return JsonResponse(
        body={
            "message": "Comment rejected successfully",
            "comment_id": to_json(comment_id),
        }
    )