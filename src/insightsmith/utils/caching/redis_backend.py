from typing import Optional

from pydantic import ValidationError

from ...errors import CacheReadAnomaly
from ...logger import get_logger
from ...models import Response

logger = get_logger(__name__)

KEY_PREFIX = "insightsmith:response"


class RedisBackend:
    """Optional Redis mirror of the response cache (JSON payloads)."""

    def __init__(self, redis_url: Optional[str] = None, client=None):
        self.client = client
        self.enabled = False
        try:
            if self.client is None:
                import redis

                self.client = redis.from_url(redis_url or "redis://localhost:6379/1", decode_responses=True)
            self.client.ping()
            self.enabled = True
            logger.info("Redis response mirror initialized successfully")
        except ImportError:
            logger.debug("redis package not installed")
        except Exception as e:
            logger.warning(f"Failed to initialize Redis: {e}")
            self.client = None

    def _key(self, key: str) -> str:
        return f"{KEY_PREFIX}:{key}"

    def get(self, key: str) -> Optional[Response]:
        """Read a mirrored response; a payload that fails validation raises CacheReadAnomaly."""
        if not self.enabled or not self.client:
            return None
        try:
            data = self.client.get(self._key(key))
        except Exception as e:
            logger.warning(f"Redis get error: {e}")
            return None
        if not data:
            return None
        try:
            return Response.model_validate_json(data)
        except ValidationError as e:
            raise CacheReadAnomaly(f"Invalid cached payload for {key}: {e.error_count()} errors") from e

    def set(self, key: str, response: Response, ttl: int) -> None:
        if not self.enabled or not self.client or ttl <= 0:
            return
        try:
            self.client.setex(self._key(key), ttl, response.model_dump_json())
        except Exception as e:
            logger.warning(f"Redis set error: {e}")

    def clear(self) -> None:
        if not self.enabled or not self.client:
            return
        try:
            keys = list(self.client.scan_iter(match=f"{KEY_PREFIX}:*"))
            if keys:
                self.client.delete(*keys)
        except Exception as e:
            logger.warning(f"Redis invalidate error: {e}")
