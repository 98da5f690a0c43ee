"""Search orchestrator — fans out to providers and runs the stitch/dedupe/validate/price pipeline."""

import asyncio
import logging
import time

from interline.config import settings
from interline.schemas.itinerary import Itinerary, SearchRequest
from interline.services.cache_service import TTL_EMPTY, CacheService, cache_service, search_key, search_ttl
from interline.services.deduplicator import deduplicate
from interline.services.price_normalizer import PriceNormalizer, PricingPreferences, price_normalizer
from interline.services.providers import FlightProvider, default_providers
from interline.services.route_stitcher import RouteStitcher, route_stitcher
from interline.services.validator import RouteValidator, route_validator

logger = logging.getLogger(__name__)


def serves_request(itinerary: Itinerary, request: SearchRequest) -> bool:
    """Starts at the requested origin and reaches the requested destination."""
    if not itinerary.segments or itinerary.origin != request.origin:
        return False
    if itinerary.destination == request.destination:
        return True
    # Round trips end back at the origin
    return bool(request.return_date) and any(s.destination == request.destination for s in itinerary.segments)


class SearchFailedError(RuntimeError):
    """A search could not be completed. Distinct from an empty result."""

    def __init__(self, request: SearchRequest, message: str = "Search failed"):
        super().__init__(message)
        self.request = request


class SearchTimeoutError(SearchFailedError):
    """The overall search deadline passed before the pipeline finished."""


class SearchOrchestrator:
    """Coordinates one search across every provider and pipeline stage."""

    def __init__(
        self,
        providers: list[FlightProvider] | None = None,
        stitcher: RouteStitcher | None = None,
        validator: RouteValidator | None = None,
        normalizer: PriceNormalizer | None = None,
        cache: CacheService | None = None,
        max_results: int | None = None,
        provider_timeout: float | None = None,
    ):
        self.providers = default_providers() if providers is None else providers
        self.stitcher = stitcher or route_stitcher
        self.validator = validator or route_validator
        self.normalizer = normalizer or price_normalizer
        self.cache = cache or cache_service
        self.max_results = max_results or settings.max_results
        self.provider_timeout = provider_timeout or settings.provider_timeout_seconds

    async def find_cheapest_routes(self, request: SearchRequest) -> list[Itinerary]:
        """
        Cheapest valid itineraries for a request, ascending by final price.

        An empty list means nothing was found. Any unexpected stage failure
        is logged with the request and raised as ``SearchFailedError``.
        """
        try:
            return await self._run(request)
        except Exception as e:
            logger.exception(f"Search failed for {request.model_dump(mode='json')}")
            raise SearchFailedError(request) from e

    async def search(self, request: SearchRequest, timeout: float | None = None) -> list[Itinerary]:
        """``find_cheapest_routes`` under an overall deadline."""
        timeout = timeout or settings.search_timeout_seconds
        try:
            return await asyncio.wait_for(self.find_cheapest_routes(request), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Search timed out after {timeout}s: {request.origin}->{request.destination}")
            raise SearchTimeoutError(request, "Search timed out") from e

    async def _run(self, request: SearchRequest) -> list[Itinerary]:
        start_time = time.monotonic()
        key = search_key(request)

        # 1. Cache
        cached = await self.cache.get(key)
        if cached is not None:
            logger.info(f"Cache hit for {key}")
            return [Itinerary.model_validate(item) for item in cached]

        # 2. Providers, all-settle
        direct = await self._query_providers(request)

        # 3. Stitch
        stitched: list[Itinerary] = []
        if settings.enable_virtual_interlining and direct:
            stitched = self.stitcher.generate(direct, request.origin, request.destination)

        # 4. Dedupe (legs fetched only as stitching material are dropped here)
        combined = deduplicate([i for i in direct + stitched if serves_request(i, request)])

        # 5. Validate
        turnaround = request.destination if request.return_date else None
        valid = self.validator.filter_valid(combined, turnaround=turnaround)

        # 6. Price and sort
        prefs = PricingPreferences(bags=request.bags, cabin_class=request.cabin_class)
        priced = await self.normalizer.normalize_all(valid, prefs, request.currency)
        ranked = self.normalizer.sort_by_price(priced)

        # 7. Truncate
        results = ranked[: self.max_results]

        # 8. Booking links
        if settings.enable_affiliate_links:
            results = [self._attach_link(itinerary, request) for itinerary in results]

        # 9. Cache (empty outcomes briefly, so repeated searches do not re-query providers)
        ttl = search_ttl(request.departure_date)
        if not results:
            ttl = min(ttl, TTL_EMPTY)
        await self.cache.set(key, [itinerary.model_dump(mode="json") for itinerary in results], ttl=ttl)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            f"Search {request.origin}->{request.destination} on {request.departure_date}: "
            f"{len(direct)} direct, {len(stitched)} stitched, {len(combined)} unique, "
            f"{len(valid)} valid, returning {len(results)} ({elapsed_ms}ms)"
        )
        return results

    async def _query_providers(self, request: SearchRequest) -> list[Itinerary]:
        coros = [self._query_provider(provider, request) for provider in self.providers]
        results = await asyncio.gather(*coros, return_exceptions=True)

        itineraries: list[Itinerary] = []
        for provider, result in zip(self.providers, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.TimeoutError):
                    logger.warning(f"Provider {provider.name} timed out after {self.provider_timeout}s")
                else:
                    logger.warning(f"Provider {provider.name} failed: {result}")
                continue
            itineraries.extend(result)
        return itineraries

    async def _query_provider(self, provider: FlightProvider, request: SearchRequest) -> list[Itinerary]:
        return await asyncio.wait_for(provider.search(request), timeout=self.provider_timeout)

    def _link_provider(self, itinerary: Itinerary) -> FlightProvider | None:
        if itinerary.is_stitched or itinerary.virtual_interline:
            for provider in self.providers:
                if provider.supports_multi_leg:
                    return provider
        for provider in self.providers:
            if provider.name == itinerary.source:
                return provider
        return None

    def _attach_link(self, itinerary: Itinerary, request: SearchRequest) -> Itinerary:
        provider = self._link_provider(itinerary)
        if provider is None:
            return itinerary
        try:
            if itinerary.is_stitched:
                link = provider.generate_multi_leg_link(itinerary, request.passengers)
            else:
                link = provider.generate_link(itinerary, request.passengers)
        except Exception as e:
            logger.warning(f"Link generation failed for {itinerary.id} via {provider.name}: {e}")
            return itinerary
        return itinerary.model_copy(update={"booking_link": link})


search_orchestrator = SearchOrchestrator()
