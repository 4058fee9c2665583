"""
Anvil API transport.

Provides:
- REST and GraphQL requests with HTTP Basic auth
- Retry on 429 / transient network failures with exponential backoff
- Response wrapper with status classification and binary detection
"""

from .client import Client
from .rate_limiter import RateLimiter
from .response import Response

__all__ = [
    "Client",
    "RateLimiter",
    "Response",
]
