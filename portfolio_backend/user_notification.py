"""Handlers for the signed-in user's notification endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .common import Claims, JsonResponse, parse_user_id, to_json

logger = logging.getLogger(__name__)


@dataclass
class UserNotificationState:
    """Dependencies of the user notification handlers."""

    user_notification_service: Any


@dataclass
class NotificationQuery:
    """Paging options for the notification listing."""

    limit: int | None = None
    offset: int | None = None
    unread_only: bool | None = None


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


async def get_user_notifications(
    state: UserNotificationState, claims: Claims, query: NotificationQuery | None
) -> JsonResponse:
    """List the user's notifications, paged by limit and offset."""
    logger.info(
        "get_user_notifications: Fetching notifications for user: %s", claims.sub
    )
    user_id = parse_user_id(claims)
    query = query if query is not None else NotificationQuery()
    response = await state.user_notification_service.get_user_notifications(
        user_id, query.limit, query.offset
    )
    notifications = _field(response, "notifications") or []
    logger.info(
        "get_user_notifications: Successfully fetched %d notifications",
        len(notifications),
    )
    return JsonResponse(body=to_json(response))


async def mark_notification_read(
    state: UserNotificationState, claims: Claims, payload: Any
) -> JsonResponse:
    """Mark one notification as read for the user."""
    logger.info(
        "mark_notification_read: Marking notification %s as read for user: %s",
        _field(payload, "audit_log_id"),
        claims.sub,
    )
    user_id = parse_user_id(claims)
    result = await state.user_notification_service.mark_notification_read(
        user_id, payload
    )
    logger.info("mark_notification_read: Successfully marked notification as read")
    return JsonResponse(
        body={"message": "Notification marked as read", "read_record": to_json(result)}
    )


async def mark_notifications_read(
    state: UserNotificationState, claims: Claims, payload: Any
) -> JsonResponse:
    """Mark several notifications as read for the user."""
    ids = _field(payload, "audit_log_ids") or []
    logger.info(
        "mark_notifications_read: Marking %d notifications as read for user: %s",
        len(ids),
        claims.sub,
    )
    user_id = parse_user_id(claims)
    count = await state.user_notification_service.mark_notifications_read(
        user_id, payload
    )
    logger.info(
        "mark_notifications_read: Successfully marked %s notifications as read", count
    )
    return JsonResponse(
        body={"message": f"Marked {count} notifications as read", "count": count}
    )


async def mark_all_notifications_read(
    state: UserNotificationState, claims: Claims
) -> JsonResponse:
    """Mark every notification as read for the user."""
    logger.info(
        "mark_all_notifications_read: Marking all notifications as read for user: %s",
        claims.sub,
    )
    user_id = parse_user_id(claims)
    count = await state.user_notification_service.mark_all_notifications_read(user_id)
    logger.info(
        "mark_all_notifications_read: Successfully marked %s notifications as read",
        count,
    )
    return JsonResponse(
        body={"message": f"Marked {count} notifications as read", "count": count}
    )


async def get_notification_stats(
    state: UserNotificationState, claims: Claims
) -> JsonResponse:
    """Return notification statistics for the user."""
    logger.info(
        "get_notification_stats: Fetching notification stats for user: %s", claims.sub
    )
    user_id = parse_user_id(claims)
    stats = await state.user_notification_service.get_notification_stats(user_id)
    logger.info("get_notification_stats: Successfully fetched notification stats")
    return JsonResponse(body=to_json(stats))


async def get_unread_count(
    state: UserNotificationState, claims: Claims
) -> JsonResponse:
    """Return how many notifications the user has not read."""
    user_id = parse_user_id(claims)
    count = await state.user_notification_service.get_unread_count(user_id)
    return JsonResponse(body={"unread_count": count})


async def get_notification_preferences(
    state: UserNotificationState, claims: Claims
) -> JsonResponse:
    """Return the user's notification preferences."""
    logger.info(
        "get_notification_preferences: Fetching notification preferences for user: %s",
        claims.sub,
    )
    user_id = parse_user_id(claims)
    preferences = list(
        await state.user_notification_service.get_user_preferences(user_id)
    )
    logger.info(
        "get_notification_preferences: Successfully fetched %d preferences",
        len(preferences),
    )
    return JsonResponse(body={"preferences": to_json(preferences)})


async def update_notification_preference(
    state: UserNotificationState, claims: Claims, payload: Any
) -> JsonResponse:
    """Change one of the user's notification preferences."""
    logger.info(
        "update_notification_preference: Updating preference '%s' for user: %s",
        _field(payload, "notification_type"),
        claims.sub,
    )
    user_id = parse_user_id(claims)
    preference = await state.user_notification_service.update_notification_preference(
        user_id, payload
    )
    logger.info("update_notification_preference: Successfully updated preference")
    return JsonResponse(
        body={
            "message": "Notification preference updated successfully",
            "preference": to_json(preference),
        }
    )