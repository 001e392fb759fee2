"""Handlers for the admin settings, IP blocking and public settings endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from .common import (
    BadRequestError,
    Claims,
    InternalError,
    JsonResponse,
    NotFoundError,
    ValidationError,
    parse_user_id,
    to_json,
)
from .rate_limiter import BlockedIpInfo

logger = logging.getLogger(__name__)

_NO_LIMITER = "Rate limiter not available"


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj[name]
    return getattr(obj, name)


@dataclass
class PublicSiteSettings:
    """Site settings that are safe to expose without authentication."""

    site_name: str
    site_description: str
    maintenance_mode: bool
    maintenance_message: str | None
    photo_profile: str | None
    social_media_links: Any
    files: Any

    def to_dict(self) -> dict[str, Any]:
        """Return the settings as JSON data; the message is left out when absent."""
        data: dict[str, Any] = {
            "site_name": self.site_name,
            "site_description": self.site_description,
            "maintenance_mode": self.maintenance_mode,
        }
        if self.maintenance_message is not None:
            data["maintenance_message"] = self.maintenance_message
        data["photo_profile"] = self.photo_profile
        data["social_media_links"] = to_json(self.social_media_links)
        data["files"] = to_json(self.files)
        return data


@dataclass
class PublicFeatureSettings:
    """Feature switches visible to the public site."""

    portfolio_enabled: bool
    services_enabled: bool
    blog_enabled: bool
    contact_form_enabled: bool
    comments_enabled: bool


@dataclass
class PublicSettingsResponse:
    """The body of the public settings endpoint."""

    site: PublicSiteSettings
    features: PublicFeatureSettings

    def to_dict(self) -> dict[str, Any]:
        """Return the response as JSON data."""
        return {"site": self.site.to_dict(), "features": to_json(self.features)}


@dataclass
class AdminSettingsState:
    """Dependencies of the admin settings handlers."""

    admin_settings_service: Any
    rate_limiter: Any = None


@dataclass
class BlockIpRequest:
    """A request to block an IP address."""

    ip: str
    reason: str
    permanent: bool | None = None

    def validate(self) -> None:
        """Raise ValidationError if the IP or reason has an invalid length."""
        errors = []
        if not 7 <= len(self.ip) <= 45:
            errors.append("ip: Invalid IP address format")
        if not 1 <= len(self.reason) <= 255:
            errors.append("reason: Reason is required")
        if errors:
            raise ValidationError("\n".join(errors))


@dataclass
class SecurityQuery:
    """Paging and status filter for the blocked IP listing."""

    page: int | None = None
    limit: int | None = None
    status: str | None = None


def _require_limiter(state: AdminSettingsState) -> Any:
    if state.rate_limiter is None:
        raise InternalError(_NO_LIMITER)
    return state.rate_limiter


async def _fetch_blocked(limiter: Any, what: str) -> list[BlockedIpInfo]:
    try:
        return list(await limiter.get_blocked_ips())
    except Exception as exc:
        raise InternalError(f"Failed to fetch {what}: {exc}") from exc


def _is_active(info: BlockedIpInfo, now: datetime) -> bool:
    return info.expires_at is None or now < info.expires_at


async def get_settings(state: AdminSettingsState) -> JsonResponse:
    """Return every admin setting."""
    logger.info("get_settings: Fetching all admin settings")
    settings = await state.admin_settings_service.get_all_settings()
    logger.info("get_settings: Successfully fetched admin settings")
    return JsonResponse(body=to_json(settings))


async def get_setting(state: AdminSettingsState, key: str) -> JsonResponse:
    """Return one setting by key."""
    logger.info("get_setting: Fetching setting with key: %s", key)
    setting = await state.admin_settings_service.get_setting(key)
    if setting is None:
        raise NotFoundError(f"Setting '{key}' not found")
    return JsonResponse(body=to_json(setting))


async def _update(
    state: AdminSettingsState,
    claims: Claims,
    method: str,
    payload: Any,
    message: str,
) -> JsonResponse:
    logger.info("%s: Updating settings for user: %s", method, claims.sub)
    user_id = parse_user_id(claims)
    updated = await getattr(state.admin_settings_service, method)(payload, user_id)
    logger.info("%s: Successfully updated settings", method)
    return JsonResponse(body={"message": message, "settings": to_json(updated)})


async def update_settings(
    state: AdminSettingsState, claims: Claims, payload: Any
) -> JsonResponse:
    """Update all settings at once."""
    return await _update(
        state, claims, "update_settings", payload, "Settings updated successfully"
    )


async def update_general_settings(
    state: AdminSettingsState, claims: Claims, payload: Any
) -> JsonResponse:
    """Update the general settings."""
    return await _update(
        state,
        claims,
        "update_general_settings",
        payload,
        "General settings updated successfully",
    )


async def update_feature_settings(
    state: AdminSettingsState, claims: Claims, payload: Any
) -> JsonResponse:
    """Update the feature switches."""
    return await _update(
        state,
        claims,
        "update_feature_settings",
        payload,
        "Feature settings updated successfully",
    )


async def update_notification_settings(
    state: AdminSettingsState, claims: Claims, payload: Any
) -> JsonResponse:
    """Update the notification settings."""
    return await _update(
        state,
        claims,
        "update_notification_settings",
        payload,
        "Notification settings updated successfully",
    )


async def update_security_settings(
    state: AdminSettingsState, claims: Claims, payload: Any
) -> JsonResponse:
    """Update the security settings."""
    return await _update(
        state,
        claims,
        "update_security_settings",
        payload,
        "Security settings updated successfully",
    )


async def reset_settings(state: AdminSettingsState, claims: Claims) -> JsonResponse:
    """Reset every setting to its default."""
    logger.info("reset_settings: Resetting all settings for user: %s", claims.sub)
    user_id = parse_user_id(claims)
    defaults = await state.admin_settings_service.reset_to_defaults(user_id)
    return JsonResponse(
        body={
            "message": "All settings have been reset to defaults",
            "settings": to_json(defaults),
        }
    )


async def is_feature_enabled(state: AdminSettingsState, feature: str) -> JsonResponse:
    """Report whether a feature is switched on."""
    enabled = await state.admin_settings_service.is_feature_enabled(feature)
    return JsonResponse(body={"feature": feature, "enabled": enabled})


async def get_maintenance_mode(state: AdminSettingsState) -> JsonResponse:
    """Report maintenance mode and, when on, its message."""
    service = state.admin_settings_service
    maintenance_mode = await service.is_maintenance_mode()
    message = await service.get_maintenance_message() if maintenance_mode else None
    return JsonResponse(
        body={"maintenance_mode": maintenance_mode, "maintenance_message": message}
    )


async def update_setting(
    state: AdminSettingsState, claims: Claims, key: str, payload: Any
) -> JsonResponse:
    """Update one setting by key."""
    logger.info("update_setting: Updating setting '%s' for user: %s", key, claims.sub)
    user_id = parse_user_id(claims)
    updated = await state.admin_settings_service.update_setting(key, payload, user_id)
    return JsonResponse(
        body={
            "message": f"Setting '{key}' updated successfully",
            "setting": to_json(updated),
        }
    )


async def get_blocked_ips(
    state: AdminSettingsState, query: SecurityQuery, claims: Claims
) -> JsonResponse:
    """List blocked IPs, filtered by status and paginated."""
    limiter = _require_limiter(state)
    blocked = await _fetch_blocked(limiter, "blocked IPs")

    now = datetime.now(timezone.utc)
    if query.status == "active":
        filtered = [info for info in blocked if _is_active(info, now)]
    elif query.status == "expired":
        filtered = [
            info
            for info in blocked
            if info.expires_at is not None and now >= info.expires_at
        ]
    else:
        filtered = blocked

    limit = min(20 if query.limit is None else query.limit, 100)
    if limit <= 0:
        raise BadRequestError("limit must be positive")
    page = max(1 if query.page is None else query.page, 1)
    offset = (page - 1) * limit
    total = len(filtered)

    return JsonResponse(
        body={
            "success": True,
            "data": {
                "blocked_ips": to_json(filtered[offset : offset + limit]),
                "pagination": {
                    "current_page": page,
                    "total_pages": -(-total // limit),
                    "total_items": total,
                    "items_per_page": limit,
                },
            },
        }
    )


async def block_ip(
    state: AdminSettingsState, claims: Claims, request: BlockIpRequest
) -> JsonResponse:
    """Block an IP address, temporarily or permanently."""
    request.validate()
    limiter = _require_limiter(state)
    permanent = bool(request.permanent)
    try:
        await limiter.block_ip(request.ip, request.reason, permanent)
    except Exception as exc:
        raise InternalError(f"Failed to block IP: {exc}") from exc
    qualifier = "permanently " if permanent else ""
    return JsonResponse(
        body={
            "success": True,
            "message": f"IP {request.ip} has been {qualifier}blocked",
        }
    )


async def unblock_ip(state: AdminSettingsState, ip: str, claims: Claims) -> JsonResponse:
    """Lift the block on an IP address."""
    limiter = _require_limiter(state)
    try:
        await limiter.unblock_ip(ip)
    except Exception as exc:
        raise InternalError(f"Failed to unblock IP: {exc}") from exc
    return JsonResponse(
        body={"success": True, "message": f"IP {ip} has been unblocked"}
    )


async def get_security_stats(state: AdminSettingsState, claims: Claims) -> JsonResponse:
    """Summarise the current IP blocks."""
    limiter = _require_limiter(state)
    blocked = await _fetch_blocked(limiter, "security stats")
    now = datetime.now(timezone.utc)
    day_ago = now - timedelta(hours=24)
    return JsonResponse(
        body={
            "success": True,
            "data": {
                "total_blocked_ips": len(blocked),
                "active_blocks": sum(_is_active(info, now) for info in blocked),
                "permanent_blocks": sum(info.expires_at is None for info in blocked),
                "temporary_blocks": sum(
                    info.expires_at is not None for info in blocked
                ),
                "recent_blocks_24h": sum(info.blocked_at > day_ago for info in blocked),
                "last_updated": to_json(now),
            },
        }
    )


async def get_public_settings(state: AdminSettingsState) -> JsonResponse:
    """Return the non-sensitive settings the public site needs."""
    logger.info("get_public_settings: Fetching public settings")
    settings = await state.admin_settings_service.get_all_settings()
    general = _get(settings, "general")
    features = _get(settings, "features")
    maintenance_mode = _get(general, "maintenance_mode")

    response = PublicSettingsResponse(
        site=PublicSiteSettings(
            site_name=_get(general, "site_name"),
            site_description=_get(general, "site_description"),
            maintenance_mode=maintenance_mode,
            maintenance_message=(
                _get(general, "maintenance_message") if maintenance_mode else None
            ),
            photo_profile=_get(general, "photo_profile"),
            social_media_links=_get(general, "social_media_links"),
            files=_get(general, "files"),
        ),
        features=PublicFeatureSettings(
            portfolio_enabled=_get(features, "portfolio_enabled"),
            services_enabled=_get(features, "services_enabled"),
            blog_enabled=_get(features, "blog_enabled"),
            contact_form_enabled=_get(features, "contact_form_enabled"),
            comments_enabled=_get(features, "comments_enabled"),
        ),
    )
    return JsonResponse(body=response.to_dict())