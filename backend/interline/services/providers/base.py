"""Flight provider layer — one adapter per data source, all producing ``Itinerary``.

The search pipeline only sees this interface. Each adapter translates its
provider's payload into the strict segment/itinerary schema at the boundary,
dropping individual records it cannot map.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import httpx

from interline.config import settings
from interline.schemas.itinerary import Itinerary, SearchRequest

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """Transport or payload failure talking to a flight provider."""


class FlightProvider(ABC):
    name: str = ""
    supports_multi_leg: bool = False

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout or settings.provider_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def search(self, request: SearchRequest) -> list[Itinerary]:
        """Query the provider and map its payload. Raises ``ProviderError`` on transport failure."""
        if not self.api_key:
            logger.info(f"{self.name}: no API key configured, skipping")
            return []

        client = await self._get_client()
        try:
            payload = await self._fetch(client, request)
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"{self.name} HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise ProviderError(f"{self.name} request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"{self.name} returned invalid JSON: {e}") from e

        itineraries = self.parse(payload, request)
        logger.info(f"{self.name}: {len(itineraries)} itineraries for {request.origin}->{request.destination}")
        return itineraries

    def parse(self, payload: dict, request: SearchRequest) -> list[Itinerary]:
        itineraries = []
        for record in self._records(payload):
            try:
                itinerary = self._to_itinerary(record, request)
            except (KeyError, TypeError, ValueError, IndexError) as e:
                logger.debug(f"{self.name}: skipping malformed record: {e}")
                continue
            if itinerary is not None:
                itineraries.append(itinerary)
        return itineraries

    @abstractmethod
    async def _fetch(self, client: httpx.AsyncClient, request: SearchRequest) -> dict:
        """Perform the HTTP call(s) and return the decoded JSON payload."""

    @abstractmethod
    def _records(self, payload: dict) -> Iterable[Any]:
        """Raw result records from a payload."""

    @abstractmethod
    def _to_itinerary(self, record: Any, request: SearchRequest) -> Itinerary | None:
        """Map one raw record; None to skip it."""

    @abstractmethod
    def generate_link(self, itinerary: Itinerary, passengers: int = 1) -> str | None:
        """Booking/affiliate URL for one of this provider's itineraries."""

    def generate_multi_leg_link(self, itinerary: Itinerary, passengers: int = 1) -> str | None:
        """Booking URL covering every separately ticketed leg of a stitched itinerary."""
        return None

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


def ticket_legs(itinerary: Itinerary) -> list[tuple[str, str, str]]:
    """(origin, destination, departure date) per separately ticketed leg."""
    if not itinerary.segments:
        return []
    transfers = itinerary.transfer_airports
    legs = []
    start = itinerary.segments[0]
    for segment, nxt in zip(itinerary.segments, itinerary.segments[1:] + [None]):
        if nxt is None or segment.destination in transfers:
            legs.append((start.origin, segment.destination, start.departure.date().isoformat()))
            start = nxt
    return legs
