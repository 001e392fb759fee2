"""Authentication helpers and the logout handler."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .common import Claims, JsonResponse

logger = logging.getLogger(__name__)

COOKIE_NAME = "admin_token"
SESSION_MAX_AGE = 24 * 60 * 60
_COOKIE_ATTRIBUTES = "HttpOnly; Secure; SameSite=Strict; Path=/"
CLEAR_COOKIE = f"{COOKIE_NAME}=; {_COOKIE_ATTRIBUTES}; Max-Age=0"


@dataclass
class AuthState:
    """Dependencies of the authentication handlers."""

    auth_service: Any
    audit_log_service: Any
    rate_limiter: Any = None


def _header(headers: Mapping[str, Any], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() != wanted:
            continue
        if isinstance(value, (bytes, bytearray)):
            try:
                return bytes(value).decode("ascii")
            except UnicodeDecodeError:
                return None
        return str(value)
    return None


def get_client_ip(
    headers: Mapping[str, Any], addr: Sequence[Any] | None = None
) -> str:
    """Return the client IP: X-Forwarded-For, then X-Real-IP, then the peer address."""
    forwarded = _header(headers, "x-forwarded-for")
    if forwarded is not None:
        return forwarded.split(",", 1)[0].strip()
    real_ip = _header(headers, "x-real-ip")
    if real_ip is not None:
        return real_ip
    if addr is not None:
        return str(addr[0])
    return "unknown"


def get_user_agent(headers: Mapping[str, Any]) -> str | None:
    """Return the User-Agent header, if present."""
    return _header(headers, "user-agent")


def session_cookie(token: str) -> str:
    """Return the Set-Cookie value that stores the session token for a day."""
    return f"{COOKIE_NAME}={token}; {_COOKIE_ATTRIBUTES}; Max-Age={SESSION_MAX_AGE}"


def _user_id_or_nil(sub: str) -> uuid.UUID:
    try:
        return uuid.UUID(sub)
    except (ValueError, TypeError, AttributeError):
        return uuid.UUID(int=0)


async def logout(state: AuthState, claims: Claims) -> JsonResponse:
    """Record the logout and clear the session cookie."""
    try:
        await state.audit_log_service.log_auth_event(
            _user_id_or_nil(claims.sub),
            claims.username,
            "logout",
            True,
            f"User {claims.username} logged out",
            None,
            None,
            None,
        )
    except Exception as exc:
        logger.error("Failed to log logout: %s", exc)

    return JsonResponse(
        body={"success": True, "message": "Successfully logged out"},
        headers={"Content-Type": "application/json", "Set-Cookie": CLEAR_COOKIE},
    )