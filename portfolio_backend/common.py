"""Shared error types, token claims and JSON response helpers for the HTTP handlers."""

from __future__ import annotations

import dataclasses
import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from http import HTTPStatus
from typing import Any, Mapping

VERSION = "0.1.0"


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def _body(self) -> dict[str, Any]:
        return {"success": False, "error": self.message}

    def _headers(self) -> dict[str, str]:
        return {}

    def to_response(self) -> JsonResponse:
        """Render the error as a JSON response with the matching status code."""
        return JsonResponse(
            body=self._body(),
            status=int(self.status),
            headers=self._headers(),
        )


class NotFoundError(AppError):
    """The requested resource does not exist."""

    status = HTTPStatus.NOT_FOUND


class ValidationError(AppError):
    """The request body failed validation."""

    status = HTTPStatus.BAD_REQUEST


class BadRequestError(AppError):
    """The request cannot be served as given."""

    status = HTTPStatus.BAD_REQUEST


class InternalError(AppError):
    """Something went wrong on the server side."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR


class TooManyRequestsError(AppError):
    """The client is rate limited or blocked."""

    status = HTTPStatus.TOO_MANY_REQUESTS

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def _body(self) -> dict[str, Any]:
        body = super()._body()
        if self.retry_after is not None:
            body["retry_after"] = self.retry_after
        return body

    def _headers(self) -> dict[str, str]:
        if self.retry_after is None:
            return {}
        return {"Retry-After": str(self.retry_after)}


@dataclass(frozen=True)
class Claims:
    """The authenticated user's token claims."""

    sub: str
    username: str
    exp: int | None = None
    iat: int | None = None


@dataclass
class JsonResponse:
    """A JSON body with its status code and extra headers."""

    body: Any
    status: int = int(HTTPStatus.OK)
    headers: dict[str, str] = field(default_factory=dict)


def parse_user_id(claims: Claims) -> uuid.UUID:
    """Return the user id carried in the claims' subject."""
    try:
        return uuid.UUID(claims.sub)
    except (ValueError, TypeError, AttributeError):
        raise InternalError("Invalid user ID") from None


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def to_json(value: Any) -> Any:
    """Convert a value into plain JSON-compatible data."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, enum.Enum):
        return to_json(value.value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return _format_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_json(to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)
        }
    if isinstance(value, Mapping):
        return {str(key): to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json(item) for item in value]
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


async def health_check() -> JsonResponse:
    """Report that the server is up, with the current time and version."""
    return JsonResponse(
        body={
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": VERSION,
        }
    )