"""Outbound call machinery: retries, rate limiting and HTTP transport."""

from .rate_limiter import RateLimiter, RateLimitRule, rules_from_mapping
from .resilient import ResilientClient
from .transport import HTTPTransport, parse_retry_after

__all__ = [
    "HTTPTransport",
    "RateLimitRule",
    "RateLimiter",
    "ResilientClient",
    "parse_retry_after",
    "rules_from_mapping",
]
