# portfolio_backend

Request handlers for the API of a portfolio website: projects, services,
blog posts, comments, admin settings and per-user notifications, together
with login rate limiting and IP blocking backed by Redis.

The handlers are plain `async` functions. Each group takes a small *state*
dataclass that carries the service object it works with (for example
`PostState(blog_service=...)`), so they can sit on top of any data layer and
any web framework. Every handler returns a `JsonResponse` holding a
JSON-ready body, a status code and any extra headers.

## Modules

| Module | What it holds |
| --- | --- |
| `portfolio_backend.common` | `AppError` and its subclasses (`NotFoundError`, `ValidationError`, `BadRequestError`, `InternalError`, `TooManyRequestsError`), `Claims`, `JsonResponse`, `parse_user_id`, `to_json`, `health_check` |
| `portfolio_backend.rate_limiter` | `RedisRateLimiter`, `AuthRateLimitInfo`, `BlockedIpInfo`, `record_auth_failure`, `clear_auth_rate_limit`, `check_and_auto_block_ip` |
| `portfolio_backend.auth` | `AuthState`, `get_client_ip`, `get_user_agent`, `session_cookie`, `logout` |
| `portfolio_backend.portfolio` | `PortfolioState` and the portfolio project handlers |
| `portfolio_backend.service` | `ServiceState` and the service handlers |
| `portfolio_backend.post` | `PostState` and the blog post handlers |
| `portfolio_backend.comment` | `CommentState` and the comment moderation handlers |
| `portfolio_backend.admin_settings` | `AdminSettingsState`, `BlockIpRequest`, `SecurityQuery`, `PublicSiteSettings`, `PublicFeatureSettings`, `PublicSettingsResponse` and the settings and IP blocking handlers |
| `portfolio_backend.user_notification` | `UserNotificationState`, `NotificationQuery` and the notification handlers |

## Errors

Handlers raise a subclass of `AppError` when a request cannot be served: a
missing record gives `NotFoundError`, a bad payload gives `ValidationError`,
a claims subject that is not a UUID gives `InternalError`.
`AppError.to_response()` turns any of them into a `JsonResponse` of the form
`{"success": false, "error": ...}` with the matching status code.
`TooManyRequestsError` also carries `retry_after`, which goes into the body
and into a `Retry-After` header.

`to_json` turns dataclasses, mappings, sequences, UUIDs, datetimes, dates,
decimals, enums and objects with a `to_dict()` method into plain JSON data.

## Login rate limiting

`RedisRateLimiter` keeps failed logins per IP address and per username in
Redis sorted sets. Build one from a URL with limits of your own:

```python
from portfolio_backend.rate_limiter import RedisRateLimiter

limiter = RedisRateLimiter.from_url(
    "redis://localhost:6379/0",
    auth_ip_limit=20,
    auth_ip_window_seconds=300,
    auth_user_limit=5,
    auth_user_window_seconds=900,
    ip_block_threshold=5,
    ip_block_duration_hours=24,
    api_limit=60,
    api_window_seconds=60,
)
```

Call `check_auth_rate_limit(ip, username)` before a login; it returns
`(allowed, AuthRateLimitInfo)`. Call `record_auth_failure(limiter, ip,
username)` after a failed login (it blocks the IP once its failure count
reaches `ip_block_threshold`) and `clear_auth_rate_limit(limiter, ip,
username)` after a successful one. `block_ip`, `unblock_ip`, `is_blocked` and
`get_blocked_ips` manage the block list by hand. A block lasts
`ip_block_duration_hours`; a duration of 0, or `permanent=True`, makes it
permanent.

The `admin_settings` handlers `get_blocked_ips`, `block_ip`, `unblock_ip` and
`get_security_stats` expose the block list through the limiter held in
`AdminSettingsState.rate_limiter`; without one they raise `InternalError`.

## What the package does not do

* It has no HTTP server, routing or command to start one; the handlers must
  be wired into a web framework by the caller.
* It has no storage: the services that the state objects carry are supplied
  by the caller.
* It has no login handler or token issuing; `auth` offers the logout handler
  and the helpers for client IP, user agent and the session cookie.
* It has no CORS handling, security-header middleware or audit log handlers.

## Tests

The tests use pytest and pytest-asyncio, which come with the `test` extra.