from .redis_backend import RedisBackend
from .response_cache import ResponseCache
from .stats import CacheStats

__all__ = ["CacheStats", "RedisBackend", "ResponseCache"]
