import asyncio
import json
from datetime import date, datetime, timezone

import pytest

from interline.data.airports import ReferenceData
from interline.schemas.itinerary import Itinerary, SearchRequest, Segment
from interline.services.price_normalizer import PriceNormalizer
from interline.services.providers.base import FlightProvider
from interline.services.route_stitcher import RouteStitcher, StitchLimits
from interline.services.validator import RouteValidator

TRAVEL_DAY = date(2026, 11, 2)


def at(hhmm: str, day: date = TRAVEL_DAY) -> datetime:
    hours, minutes = hhmm.split(":")
    return datetime(day.year, day.month, day.day, int(hours), int(minutes), tzinfo=timezone.utc)


def seg(carrier, number, origin, destination, dep, arr, day: date = TRAVEL_DAY, **kwargs) -> Segment:
    return Segment(
        carrier=carrier,
        flight_number=number,
        origin=origin,
        destination=destination,
        departure=at(dep, day) if isinstance(dep, str) else dep,
        arrival=at(arr, day) if isinstance(arr, str) else arr,
        **kwargs,
    )


def itin(*segments: Segment, price: float, currency: str = "ZAR", source: str = "kiwi", **kwargs) -> Itinerary:
    return Itinerary(segments=list(segments), total_price=price, currency=currency, source=source, **kwargs)


class FakeProvider(FlightProvider):
    """In-memory provider: fixed results, optional delay or failure."""

    def __init__(self, name, results=None, delay: float = 0, error: Exception | None = None, multi_leg: bool = False):
        super().__init__("http://fake.invalid", api_key="test-key", timeout=1.0)
        self.name = name
        self.results = results or []
        self.delay = delay
        self.error = error
        self.supports_multi_leg = multi_leg
        self.calls = 0

    async def search(self, request):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.results)

    async def _fetch(self, client, request):
        return {}

    def _records(self, payload):
        return []

    def _to_itinerary(self, record, request):
        return None

    def generate_link(self, itinerary, passengers=1):
        return f"https://{self.name}.example/book/{itinerary.id}"

    def generate_multi_leg_link(self, itinerary, passengers=1):
        return f"https://{self.name}.example/multi/{itinerary.id}"


class FakeCache:
    """Dict-backed stand-in for CacheService; JSON round-trips like Redis."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        raw = self.store.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key, value, ttl=7200):
        self.store[key] = json.dumps(value, default=str)
        self.ttls[key] = ttl
        return True

    async def delete(self, key):
        return self.store.pop(key, None) is not None

    async def close(self):
        pass


class FailingExchange:
    async def convert(self, amount, from_currency, to_currency):
        raise RuntimeError("rates unavailable")


class FixedExchange:
    def __init__(self, rate: float):
        self.rate = rate

    async def convert(self, amount, from_currency, to_currency):
        if from_currency == to_currency:
            return amount
        return round(amount * self.rate, 2)


@pytest.fixture
def reference():
    return ReferenceData()


@pytest.fixture
def validator(reference):
    return RouteValidator(reference)


@pytest.fixture
def stitcher(validator):
    return RouteStitcher(validator=validator, limits=StitchLimits())


@pytest.fixture
def normalizer():
    return PriceNormalizer(exchange=FixedExchange(18.0), currency="ZAR")


@pytest.fixture
def request_jnb_cpt():
    return SearchRequest(origin="JNB", destination="CPT", departure_date=TRAVEL_DAY, currency="ZAR")
