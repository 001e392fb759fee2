"""Request handlers and Redis-backed login rate limiting for a portfolio website API."""

__version__ = "0.1.0"