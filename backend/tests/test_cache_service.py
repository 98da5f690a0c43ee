import asyncio
import json
from datetime import date, timedelta
from unittest.mock import AsyncMock

from interline.config import settings
from interline.schemas.itinerary import SearchRequest
from interline.services.cache_service import CacheService, search_key, search_ttl


def test_search_key_is_deterministic_and_normalized():
    a = SearchRequest(origin="jnb", destination="cpt", departure_date=date(2026, 11, 2), currency="zar")
    b = SearchRequest(origin="JNB", destination="CPT", departure_date=date(2026, 11, 2), currency="ZAR")
    assert search_key(a) == search_key(b)
    assert search_key(a) == "search:JNB:CPT:2026-11-02:oneway:1:0:economy:ZAR:oneway"


def test_search_key_distinguishes_requests():
    base = SearchRequest(origin="JNB", destination="CPT", departure_date=date(2026, 11, 2))
    other_bags = SearchRequest(origin="JNB", destination="CPT", departure_date=date(2026, 11, 2), bags=1)
    round_trip = SearchRequest(
        origin="JNB", destination="CPT", departure_date=date(2026, 11, 2), return_date=date(2026, 11, 9)
    )
    assert len({search_key(base), search_key(other_bags), search_key(round_trip)}) == 3
    assert search_key(round_trip).endswith(":return")


def test_search_ttl_shortens_near_travel():
    today = date(2026, 10, 18)
    assert search_ttl(today, today) == 1800
    assert search_ttl(today + timedelta(days=1), today) == 1800
    assert search_ttl(today + timedelta(days=5), today) == 3600
    assert search_ttl(today + timedelta(days=20), today) == 7200
    assert search_ttl(today + timedelta(days=90), today) == settings.route_cache_ttl


def test_disabled_cache_is_always_a_miss():
    cache = CacheService(enabled=False)
    assert asyncio.run(cache.set("k", [1, 2])) is False
    assert asyncio.run(cache.get("k")) is None


def test_get_and_set_round_trip_json():
    store = {}
    fake = AsyncMock()
    fake.set.side_effect = lambda key, value, ex=None: store.__setitem__(key, value)
    fake.get.side_effect = lambda key: store.get(key)

    cache = CacheService(enabled=True)
    cache._redis = fake

    assert asyncio.run(cache.set("search:x", [{"price": 3000}], ttl=1800)) is True
    fake.set.assert_awaited_once_with("search:x", json.dumps([{"price": 3000}]), ex=1800)
    assert asyncio.run(cache.get("search:x")) == [{"price": 3000}]
    assert asyncio.run(cache.get("search:missing")) is None


def test_redis_errors_read_as_miss():
    fake = AsyncMock()
    fake.get.side_effect = ConnectionError("down")
    fake.set.side_effect = ConnectionError("down")

    cache = CacheService(enabled=True)
    cache._redis = fake
    assert asyncio.run(cache.get("k")) is None
    assert asyncio.run(cache.set("k", 1)) is False


def test_delete_removes_key():
    fake = AsyncMock()
    cache = CacheService(enabled=True)
    cache._redis = fake
    assert asyncio.run(cache.delete("search:x")) is True
    fake.delete.assert_awaited_once_with("search:x")
    assert asyncio.run(CacheService(enabled=False).delete("search:x")) is False
