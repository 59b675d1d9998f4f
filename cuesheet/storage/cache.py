import json
import hashlib
from typing import Dict, Optional

import redis

from cuesheet.config.settings import get_settings

settings = get_settings()


class TimelineCache:
    """
    Redis-backed cache of composed timelines.

    The engine is deterministic, so a response keyed by the hash of its
    canonical request is always exact.
    """

    def __init__(self, redis_url: str = settings.redis_url, client=None):
        self.redis_client = client if client is not None else redis.from_url(redis_url, decode_responses=True)

    def get(self, request_hash: str) -> Optional[Dict]:
        """Retrieve cached timeline by request hash."""
        cached = self.redis_client.get(f"timeline:{request_hash}")
        if cached:
            return json.loads(cached)
        return None

    def set(self, request_hash: str, timeline: Dict, ttl_seconds: int = settings.cache_ttl_seconds) -> None:
        self.redis_client.setex(
            f"timeline:{request_hash}",
            ttl_seconds,
            json.dumps(timeline, default=str)
        )

    def delete(self, request_hash: str) -> None:
        """Invalidate cache entry."""
        self.redis_client.delete(f"timeline:{request_hash}")

    @staticmethod
    def hash_request(request: Dict) -> str:
        """Generate hash from the request payload."""
        data = json.dumps(request, sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def health_check(self) -> bool:
        """Check Redis connection."""
        try:
            self.redis_client.ping()
            return True
        except redis.RedisError:
            return False
