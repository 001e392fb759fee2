import uuid
from dataclasses import dataclass
from http import HTTPStatus
from unittest.mock import AsyncMock

import pytest

from portfolio_backend.comment import (
    CommentState,
    approve_comment,
    bulk_update_comment_status,
    create_comment,
    delete_comment,
    get_all_comments,
    get_comment,
    get_comment_replies,
    get_comment_stats,
    get_comments_by_post,
    get_pending_comments,
    reject_comment,
    update_comment_status,
)
from portfolio_backend.common import NotFoundError, ValidationError


@dataclass
class Payload:
    content: str
    valid: bool = True

    def validate(self):
        if not self.valid:
            raise ValueError("content: too short")


def make_state():
    service = AsyncMock()
    return CommentState(comment_service=service), service


@pytest.mark.asyncio
async def test_get_all_comments_passes_query():
    state, service = make_state()
    service.get_all_comments.return_value = {"comments": [], "total": 0}
    response = await get_all_comments(state, {"page": 1})
    assert response.body == {"comments": [], "total": 0}
    service.get_all_comments.assert_awaited_once_with({"page": 1})


@pytest.mark.asyncio
async def test_get_comment_not_found():
    state, service = make_state()
    service.get_comment_by_id.return_value = None
    with pytest.raises(NotFoundError, match="Comment not found"):
        await get_comment(state, uuid.uuid4())


@pytest.mark.asyncio
async def test_get_comment_found():
    state, service = make_state()
    comment_id = uuid.uuid4()
    service.get_comment_by_id.return_value = {"id": comment_id, "content": "hi"}
    response = await get_comment(state, comment_id)
    assert response.body == {"id": str(comment_id), "content": "hi"}


@pytest.mark.asyncio
async def test_create_comment_passes_ip_and_user_agent():
    state, service = make_state()
    service.create_comment.return_value = {"content": "hello"}
    payload = Payload("hello")
    response = await create_comment(
        state, ("203.0.113.9", 5000), {"User-Agent": "tester/1.0"}, payload
    )
    assert response.status == int(HTTPStatus.CREATED)
    assert response.body["comment"] == {"content": "hello"}
    assert (
        response.body["message"]
        == "Comment submitted successfully and is pending moderation"
    )
    service.create_comment.assert_awaited_once_with(payload, "203.0.113.9", "tester/1.0")


@pytest.mark.asyncio
async def test_create_comment_without_user_agent():
    state, service = make_state()
    service.create_comment.return_value = {}
    payload = Payload("hello")
    await create_comment(state, ("198.51.100.1", 80), {}, payload)
    service.create_comment.assert_awaited_once_with(payload, "198.51.100.1", None)


@pytest.mark.asyncio
async def test_create_comment_invalid_payload():
    state, service = make_state()
    with pytest.raises(ValidationError, match="too short"):
        await create_comment(state, ("198.51.100.1", 80), {}, Payload("", valid=False))
    service.create_comment.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_comment_status():
    state, service = make_state()
    comment_id = uuid.uuid4()
    service.update_comment_status.return_value = {"status": "approved"}
    payload = Payload("x")
    response = await update_comment_status(state, comment_id, payload)
    assert response.body == {
        "message": "Comment status updated successfully",
        "comment": {"status": "approved"},
    }
    service.update_comment_status.assert_awaited_once_with(comment_id, payload)


@pytest.mark.asyncio
async def test_update_comment_status_invalid():
    state, service = make_state()
    with pytest.raises(ValidationError):
        await update_comment_status(state, uuid.uuid4(), Payload("", valid=False))
    service.update_comment_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_comment():
    state, service = make_state()
    comment_id = uuid.uuid4()
    response = await delete_comment(state, comment_id)
    assert response.body == {"message": "Comment deleted successfully"}
    service.delete_comment.assert_awaited_once_with(comment_id)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query, expected",
    [({}, True), ({"include_replies": False}, False), ({"include_replies": "no"}, True)],
)
async def test_get_comments_by_post_include_replies(query, expected):
    state, service = make_state()
    post_id = uuid.uuid4()
    service.get_comments_by_post.return_value = [{"a": 1}, {"b": 2}]
    response = await get_comments_by_post(state, post_id, query)
    assert response.body["include_replies"] is expected
    assert response.body["total"] == len(response.body["comments"])
    assert response.body["post_id"] == str(post_id)
    service.get_comments_by_post.assert_awaited_once_with(post_id, expected)


@pytest.mark.asyncio
async def test_get_comment_replies():
    state, service = make_state()
    comment_id = uuid.uuid4()
    service.get_comment_replies.return_value = [{"content": "reply"}]
    response = await get_comment_replies(state, comment_id)
    assert response.body["parent_id"] == str(comment_id)
    assert response.body["total"] == len(response.body["replies"])


@pytest.mark.asyncio
async def test_get_pending_comments():
    state, service = make_state()
    service.get_pending_comments.return_value = []
    response = await get_pending_comments(state)
    assert response.body == {"comments": [], "total": 0}


@pytest.mark.asyncio
async def test_get_comment_stats():
    state, service = make_state()
    service.get_comment_statistics.return_value = {"pending": 3}
    response = await get_comment_stats(state)
    assert response.body == {"pending": 3}


@pytest.mark.asyncio
async def test_bulk_requires_ids_array():
    state, _ = make_state()
    with pytest.raises(ValidationError, match="Comment IDs array is required"):
        await bulk_update_comment_status(state, {"status": "approved"})


@pytest.mark.asyncio
async def test_bulk_requires_status():
    state, _ = make_state()
    with pytest.raises(ValidationError, match="Status is required"):
        await bulk_update_comment_status(state, {"ids": [str(uuid.uuid4())]})


@pytest.mark.asyncio
async def test_bulk_requires_a_valid_id():
    state, service = make_state()
    with pytest.raises(ValidationError, match="At least one comment ID is required"):
        await bulk_update_comment_status(
            state, {"ids": ["not-a-uuid", 7], "status": "approved"}
        )
    service.bulk_moderate_comments.assert_not_awaited()


@pytest.mark.asyncio
async def test_bulk_filters_invalid_ids():
    state, service = make_state()
    good = uuid.uuid4()
    service.bulk_moderate_comments.return_value = 1
    response = await bulk_update_comment_status(
        state, {"ids": [str(good), "bad", None], "status": "rejected"}
    )
    assert response.body["comment_ids"] == [str(good)]
    assert response.body["status"] == "rejected"
    assert response.body["affected_rows"] == 1
    service.bulk_moderate_comments.assert_awaited_once_with([good], "rejected")


@pytest.mark.asyncio
async def test_approve_and_reject():
    state, service = make_state()
    comment_id = uuid.uuid4()
    approved = await approve_comment(state, comment_id)
    rejected = await reject_comment(state, comment_id)
    assert approved.body == {
        "message": "Comment approved successfully",
        "comment_id": str(comment_id),
    }
    assert rejected.body == {
        "message": "Comment rejected successfully",
        "comment_id": str(comment_id),
    }
    service.approve_comment.assert_awaited_once_with(comment_id)
    service.reject_comment.assert_awaited_once_with(comment_id)