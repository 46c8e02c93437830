# FILE: app/ratelimit/__init__.py
"""Per-client daily quota (fixed window, fail open)."""

from .limiter import RateLimiter, RateLimitInfo, RateLimitRecord, DAILY_LIMIT, WINDOW_SECONDS

__all__ = [
    "RateLimiter",
    "RateLimitInfo",
    "RateLimitRecord",
    "DAILY_LIMIT",
    "WINDOW_SECONDS",
]
