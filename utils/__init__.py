"""Utility modules for the PnL engine."""
from .cache import CoalescingCache, make_key
from .rate_limiter import RateLimiter, RateLimitConfig

__all__ = [
    'CoalescingCache',
    'make_key',
    'RateLimiter',
    'RateLimitConfig',
]
