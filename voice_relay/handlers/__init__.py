from .connections import ConnectionManager
from .limits import SlidingWindowRateLimiter

__all__ = ["ConnectionManager", "SlidingWindowRateLimiter"]
