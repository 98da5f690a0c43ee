"""Itinerary deduplication by canonical flight signature."""

import logging
import uuid

from interline.schemas.itinerary import Itinerary

logger = logging.getLogger(__name__)


def signature(itinerary: Itinerary) -> str:
    """Canonical signature: ordered flights, then total price and duration.

    Identical flights sold at materially different fares stay distinct; exact
    repeats from several providers collapse. Itineraries without segments get
    an opaque signature so they never merge.
    """
    if not itinerary.segments:
        return f"opaque:{uuid.uuid4()}"
    flights = "_".join(
        f"{s.carrier}|{s.flight_number or ''}|{s.origin}|{s.destination}"
        for s in itinerary.segments
    )
    return f"{flights}#{itinerary.total_price:.2f}#{itinerary.total_duration_minutes}"


def deduplicate(itineraries: list[Itinerary]) -> list[Itinerary]:
    """Stable dedup: the first itinerary seen for a signature wins."""
    seen: set[str] = set()
    unique: list[Itinerary] = []
    for itinerary in itineraries:
        key = signature(itinerary)
        if key in seen:
            continue
        seen.add(key)
        unique.append(itinerary)

    dropped = len(itineraries) - len(unique)
    if dropped:
        logger.debug(f"Deduplicated {dropped} of {len(itineraries)} itineraries")
    return unique
