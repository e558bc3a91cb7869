"""Limitation de debit par client."""

from api_cache.infrastructure.rate_limiting.rate_limiter import (
    UNLIMITED,
    RateLimitConfig,
    RateLimiter,
)

__all__ = ["UNLIMITED", "RateLimitConfig", "RateLimiter"]
