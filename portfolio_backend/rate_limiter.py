"""Redis-backed login throttling and IP blocking."""

from __future__ import annotations

import json
import logging
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from redis import asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

BLOCKED_IP_PREFIX = "blocked_ip:"

_FRACTION = re.compile(r"\.(\d+)")


def _blocked_key(ip: str) -> str:
    return f"{BLOCKED_IP_PREFIX}{ip}"


def _ip_key(ip: str) -> str:
    return f"auth_rate_limit:ip:{ip}"


def _user_key(username: str) -> str:
    return f"auth_rate_limit:user:{username}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(text: str) -> datetime:
    normalized = text.strip()
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    # Sub-microsecond precision cannot be represented; keep six digits.
    normalized = _FRACTION.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), normalized, count=1
    )
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _as_text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else str(value)


@dataclass
class AuthRateLimitInfo:
    """The outcome of a login rate-limit check."""

    allowed: bool
    remaining_attempts: int
    reset_time: datetime
    lockout_seconds: int | None = None
    reason: str | None = None
    is_permanently_blocked: bool = False


@dataclass
class BlockedIpInfo:
    """A record of a blocked IP address; no expiry means a permanent block."""

    ip: str
    blocked_at: datetime
    reason: str
    attempt_count: int
    expires_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the record as JSON-compatible data."""
        return {
            "ip": self.ip,
            "blocked_at": _format_timestamp(self.blocked_at),
            "reason": self.reason,
            "attempt_count": self.attempt_count,
            "expires_at": (
                None if self.expires_at is None else _format_timestamp(self.expires_at)
            ),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlockedIpInfo:
        """Build a record from data produced by :meth:`to_dict`."""
        expires = data.get("expires_at")
        return cls(
            ip=str(data["ip"]),
            blocked_at=_parse_timestamp(str(data["blocked_at"])),
            reason=str(data["reason"]),
            attempt_count=int(data["attempt_count"]),
            expires_at=None if expires is None else _parse_timestamp(str(expires)),
        )


class RedisRateLimiter:
    """Tracks failed logins per IP and per user and blocks abusive IPs."""

    def __init__(
        self,
        client: Any,
        auth_ip_limit: int,
        auth_ip_window_seconds: int,
        auth_user_limit: int,
        auth_user_window_seconds: int,
        ip_block_threshold: int,
        ip_block_duration_hours: int,
        api_limit: int,
        api_window_seconds: int,
    ) -> None:
        self.client = client
        self.auth_ip_limit = auth_ip_limit
        self.auth_ip_window_seconds = auth_ip_window_seconds
        self.auth_user_limit = auth_user_limit
        self.auth_user_window_seconds = auth_user_window_seconds
        self.ip_block_threshold = ip_block_threshold
        self.ip_block_duration_hours = ip_block_duration_hours
        self.api_limit = api_limit
        self.api_window_seconds = api_window_seconds

    @classmethod
    def from_url(cls, redis_url: str, **kwargs: Any) -> RedisRateLimiter:
        """Create a limiter with a client for the given Redis URL."""
        return cls(aioredis.from_url(redis_url), **kwargs)

    async def is_blocked(self, ip: str) -> bool:
        """Return whether the IP currently has a block record."""
        return await self.client.get(_blocked_key(ip)) is not None

    async def _count_recent(self, key: str, cutoff: int) -> int:
        await self.client.zremrangebyscore(key, 0, cutoff)
        return int(await self.client.zcard(key))

    async def check_auth_rate_limit(
        self, ip: str, username: str | None = None
    ) -> tuple[bool, AuthRateLimitInfo]:
        """Check whether a login attempt from this IP and user may proceed."""
        if await self.is_blocked(ip):
            return False, AuthRateLimitInfo(
                allowed=False,
                remaining_attempts=0,
                reset_time=_utcnow(),
                lockout_seconds=None,
                reason="IP address is blocked due to suspicious activity",
                is_permanently_blocked=True,
            )

        now = int(time.time())
        cutoff = now - self.auth_ip_window_seconds

        ip_count = await self._count_recent(_ip_key(ip), cutoff)
        user_count = (
            await self._count_recent(_user_key(username), cutoff)
            if username is not None
            else 0
        )

        ip_exceeded = ip_count >= self.auth_ip_limit
        user_exceeded = user_count >= self.auth_user_limit

        if ip_exceeded or user_exceeded:
            remaining_time = self.auth_ip_window_seconds
            if ip_exceeded and user_exceeded:
                reason = (
                    f"Too many login attempts from this IP ({ip_count}/{self.auth_ip_limit}) "
                    f"and for this user ({user_count}/{self.auth_user_limit})"
                )
            elif ip_exceeded:
                reason = (
                    f"Too many login attempts from this IP ({ip_count}/{self.auth_ip_limit})"
                )
            else:
                reason = (
                    f"Too many login attempts for this user "
                    f"({user_count}/{self.auth_user_limit})"
                )
            return False, AuthRateLimitInfo(
                allowed=False,
                remaining_attempts=0,
                reset_time=_utcnow() + timedelta(seconds=remaining_time),
                lockout_seconds=remaining_time,
                reason=reason,
                is_permanently_blocked=False,
            )

        ip_remaining = max(self.auth_ip_limit - ip_count, 0)
        user_remaining = (
            max(self.auth_user_limit - user_count, 0)
            if username is not None
            else self.auth_user_limit
        )
        return True, AuthRateLimitInfo(
            allowed=True,
            remaining_attempts=min(ip_remaining, user_remaining),
            reset_time=_utcnow() + timedelta(seconds=self.auth_ip_window_seconds),
        )

    async def _attempt_count(self, ip: str) -> int:
        try:
            return int(await self.client.zcard(_ip_key(ip)))
        except RedisError:
            return 0

    async def block_ip(self, ip: str, reason: str, permanent: bool = False) -> None:
        """Block an IP, permanently or for the configured number of hours."""
        attempt_count = await self._attempt_count(ip)
        is_permanent = permanent or self.ip_block_duration_hours == 0
        now = _utcnow()
        info = BlockedIpInfo(
            ip=ip,
            blocked_at=now,
            reason=reason,
            attempt_count=attempt_count,
            expires_at=(
                None
                if is_permanent
                else now + timedelta(hours=self.ip_block_duration_hours)
            ),
        )
        serialized = json.dumps(info.to_dict())

        if is_permanent:
            await self.client.set(_blocked_key(ip), serialized)
        else:
            await self.client.setex(
                _blocked_key(ip), self.ip_block_duration_hours * 3600, serialized
            )

        logger.warning(
            "IP %s blocked. Reason: %s. Attempts: %s. Permanent: %s",
            ip,
            reason,
            attempt_count,
            is_permanent,
        )

    async def unblock_ip(self, ip: str) -> None:
        """Remove any block on the IP."""
        await self.client.delete(_blocked_key(ip))
        logger.info("IP %s unblocked", ip)

    async def get_blocked_ips(self) -> list[BlockedIpInfo]:
        """Return every stored block record, newest first."""
        records: list[BlockedIpInfo] = []
        async for raw_key in self.client.scan_iter(match=f"{BLOCKED_IP_PREFIX}*"):
            key = _as_text(raw_key)
            raw = await self.client.get(key)
            if raw is None:
                continue
            try:
                records.append(BlockedIpInfo.from_dict(json.loads(_as_text(raw))))
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("Skipping malformed block record %s: %s", key, exc)
        records.sort(key=lambda record: record.blocked_at, reverse=True)
        return records


async def record_auth_failure(
    limiter: RedisRateLimiter, identifier: str, username: str
) -> None:
    """Record a failed login for the IP and the user, then check for auto-blocking."""
    now = int(time.time())
    ip_key = _ip_key(identifier)
    user_key = _user_key(username)
    attempt_id = f"{now}:{uuid.uuid4()}"

    await limiter.client.zadd(ip_key, {attempt_id: float(now)})
    await limiter.client.zadd(user_key, {attempt_id: float(now)})
    await limiter.client.expire(ip_key, limiter.auth_ip_window_seconds)
    await limiter.client.expire(user_key, limiter.auth_user_window_seconds)

    await check_and_auto_block_ip(limiter, identifier)


async def clear_auth_rate_limit(
    limiter: RedisRateLimiter, identifier: str, username: str
) -> None:
    """Forget recorded failures for the IP and the user."""
    await limiter.client.delete(_ip_key(identifier))
    await limiter.client.delete(_user_key(username))


async def check_and_auto_block_ip(limiter: RedisRateLimiter, ip: str) -> None:
    """Block the IP once its failure count reaches the configured threshold."""
    attempt_count = await limiter._attempt_count(ip)
    if attempt_count >= limiter.ip_block_threshold:
        await limiter.block_ip(
            ip, f"Auto-blocked after {attempt_count} failed login attempts", False
        )