"""Redis cache service for search results."""

import json
import logging
from datetime import date
from typing import Any

import redis.asyncio as redis

from interline.config import settings
from interline.schemas.itinerary import SearchRequest

logger = logging.getLogger(__name__)

# TTLs in seconds, shorter as the travel date approaches
TTL_IMMINENT = 30 * 60        # travel within a day
TTL_THIS_WEEK = 60 * 60       # within a week
TTL_THIS_MONTH = 2 * 60 * 60  # within a month
TTL_EMPTY = 5 * 60            # searches that found nothing


def search_key(request: SearchRequest) -> str:
    """Deterministic key from the normalized request fields."""
    return_part = request.return_date.isoformat() if request.return_date else "oneway"
    return (
        f"search:{request.origin}:{request.destination}:{request.departure_date.isoformat()}:"
        f"{return_part}:{request.passengers}:{request.bags}:{request.cabin_class}:"
        f"{request.currency}:{request.effective_trip_type}"
    )


def search_ttl(travel_date: date, today: date | None = None) -> int:
    """Near-term travel gets a short TTL since its prices move faster."""
    today = today or date.today()
    days_until = (travel_date - today).days
    if days_until <= 1:
        return TTL_IMMINENT
    if days_until <= 7:
        return TTL_THIS_WEEK
    if days_until <= 30:
        return TTL_THIS_MONTH
    return settings.route_cache_ttl


class CacheService:
    """Redis-backed cache. Every failure reads as a miss; nothing here raises."""

    def __init__(self, url: str | None = None, enabled: bool | None = None):
        self._url = url or settings.redis_url
        self._enabled = settings.cache_enabled if enabled is None else enabled
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis | None:
        if not self._enabled:
            return None
        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    self._url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._redis.ping()
            except Exception as e:
                logger.warning(f"Redis unavailable, cache disabled: {e}")
                self._redis = None
                return None
        return self._redis

    async def get(self, key: str) -> Any | None:
        """Get a value from cache. Returns None on miss or error."""
        try:
            r = await self._get_redis()
            if r is None:
                return None
            raw = await r.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = TTL_THIS_MONTH) -> bool:
        """Set a value in cache with TTL. Returns False on error."""
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.set(key, json.dumps(value, default=str), ex=ttl)
            return True
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key."""
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.delete(key)
            return True
        except Exception:
            return False

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None


cache_service = CacheService()
