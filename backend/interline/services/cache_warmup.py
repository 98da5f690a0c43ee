"""Cache warm-up — runs popular searches ahead of demand so they are served from Redis."""

import asyncio
import logging
from datetime import date, timedelta

from pydantic import ValidationError

from interline.config import settings
from interline.schemas.itinerary import SearchRequest
from interline.services.search_orchestrator import SearchFailedError, SearchOrchestrator, search_orchestrator

logger = logging.getLogger(__name__)


def warmup_requests(
    routes: list[tuple[str, str]],
    days_ahead: int,
    today: date | None = None,
    currency: str | None = None,
) -> list[SearchRequest]:
    """One-way requests for each route on each of the next ``days_ahead`` days."""
    today = today or date.today()
    currency = currency or settings.default_currency
    requests: list[SearchRequest] = []
    for origin, destination in routes:
        for offset in range(1, days_ahead + 1):
            try:
                requests.append(SearchRequest(
                    origin=origin,
                    destination=destination,
                    departure_date=today + timedelta(days=offset),
                    currency=currency,
                ))
            except ValidationError as e:
                logger.warning(f"Skipping warm-up route {origin}-{destination}: {e.error_count()} error(s)")
                break
    return requests


async def warm_popular_routes(
    orchestrator: SearchOrchestrator | None = None,
    routes: list[tuple[str, str]] | None = None,
    days_ahead: int | None = None,
    today: date | None = None,
    delay: float | None = None,
) -> int:
    """
    Search every popular route for the coming days and return how many searches completed.

    Searches already cached are answered from the cache. A failed search is
    logged and the rest still run.
    """
    orchestrator = orchestrator or search_orchestrator
    routes = settings.warmup_route_list if routes is None else routes
    days_ahead = settings.warmup_days_ahead if days_ahead is None else days_ahead
    delay = settings.warmup_delay_seconds if delay is None else delay

    completed = 0
    for index, request in enumerate(warmup_requests(routes, days_ahead, today)):
        if index and delay:
            await asyncio.sleep(delay)
        try:
            await orchestrator.search(request)
        except SearchFailedError as e:
            logger.warning(f"Warm-up search {request.origin}->{request.destination} on {request.departure_date} failed: {e}")
            continue
        completed += 1

    logger.info(f"Cache warm-up: {completed} searches across {len(routes)} routes")
    return completed
