from postboard.cache.keys import CacheKey
from postboard.cache.request_cache import RequestCache
from postboard.cache.invalidation import InvalidationCoordinator

__all__ = [
    "CacheKey",
    "RequestCache",
    "InvalidationCoordinator",
]
