"""Route stitcher — synthesizes self-transfer itineraries from separately ticketed ones.

Direct results are joined at shared connection airports ("virtual
interlining"). Three caps bound the combinatorics against provider result
sets in the low hundreds: number of hubs tried, combinations per hub, and
number of two-hub chains. Within a hub, pairs are expanded cheapest first so
the budget is spent on the most promising combinations.
"""

import heapq
import logging
from collections import Counter
from dataclasses import dataclass

from interline.config import settings
from interline.schemas.itinerary import STITCHED_SOURCE, Itinerary
from interline.services.validator import RouteValidator, route_validator

logger = logging.getLogger(__name__)

# Pairs tried per accepted combination before a hub is abandoned
ATTEMPTS_PER_RESULT = 4


@dataclass
class StitchLimits:
    max_hubs: int = 10
    combinations_per_hub: int = 50
    max_multi_hub: int = 10
    multi_hub_pairs: int = 5
    hub_min_frequency: int = 3

    @classmethod
    def from_settings(cls) -> "StitchLimits":
        return cls(
            max_hubs=settings.stitch_max_hubs,
            combinations_per_hub=settings.stitch_combinations_per_hub,
            max_multi_hub=settings.stitch_max_multi_hub,
            multi_hub_pairs=settings.stitch_multi_hub_pairs,
            hub_min_frequency=settings.stitch_hub_min_frequency,
        )


def _transfer_chain(itinerary: Itinerary) -> list[str]:
    if itinerary.hub_chain:
        return list(itinerary.hub_chain)
    if itinerary.connection_airport:
        return [itinerary.connection_airport]
    if itinerary.virtual_interline:
        # Provider-flagged interline without a recorded transfer point: every connection is a self-transfer
        return [s.destination for s in itinerary.segments[:-1]]
    return []


def _components(itinerary: Itinerary) -> list[str]:
    if itinerary.is_stitched and itinerary.original_components:
        return list(itinerary.original_components)
    return [itinerary.id]


def _by_price(itineraries: list[Itinerary]) -> list[Itinerary]:
    return sorted(itineraries, key=lambda i: i.total_price)


class RouteStitcher:
    """Builds virtual-interline itineraries from direct provider results."""

    def __init__(
        self,
        validator: RouteValidator | None = None,
        limits: StitchLimits | None = None,
        max_connection_minutes: float | None = None,
    ):
        self.validator = validator or route_validator
        self.limits = limits or StitchLimits.from_settings()
        self.max_connection_minutes = max_connection_minutes

    # --- Hubs ---

    def intermediate_airports(self, itineraries: list[Itinerary], origin: str, destination: str) -> Counter:
        """How often each airport other than the overall origin/destination appears."""
        counts: Counter = Counter()
        for itinerary in itineraries:
            for segment in itinerary.segments:
                for airport in (segment.origin, segment.destination):
                    if airport not in (origin, destination):
                        counts[airport] += 1
        return counts

    def identify_hubs(self, itineraries: list[Itinerary], origin: str, destination: str) -> list[str]:
        """Curated hubs plus frequent connection points, most frequent first."""
        counts = self.intermediate_airports(itineraries, origin, destination)
        reference = self.validator.reference
        candidates = [
            airport for airport, count in counts.items()
            if reference.is_major_hub(airport) or count >= self.limits.hub_min_frequency
        ]
        candidates.sort(key=lambda a: (-counts[a], a))
        return candidates[: self.limits.max_hubs]

    @staticmethod
    def group_by_hub(
        itineraries: list[Itinerary], origin: str, destination: str, hub: str
    ) -> tuple[list[Itinerary], list[Itinerary]]:
        """Split into origin→hub and hub→destination buckets."""
        to_hub = [i for i in itineraries if i.segments and i.origin == origin and i.destination == hub]
        from_hub = [i for i in itineraries if i.segments and i.origin == hub and i.destination == destination]
        return to_hub, from_hub

    # --- Stitching ---

    def stitch_two_routes(self, first: Itinerary, second: Itinerary) -> Itinerary | None:
        """Join two itineraries at a shared airport, or None if the connection is not legal."""
        if not first.segments or not second.segments:
            return None
        if first.id == second.id:
            return None

        arriving = first.last_segment
        departing = second.first_segment
        if arriving.destination != departing.origin:
            return None
        if first.currency != second.currency:
            logger.debug(f"Not stitching {first.id} + {second.id}: {first.currency} vs {second.currency}")
            return None

        verdict = self.validator.validate_connection(
            arriving,
            departing,
            is_virtual_interline=True,
            max_connection_minutes=self.max_connection_minutes,
        )
        if not verdict:
            return None

        chain = _transfer_chain(first) + [arriving.destination] + _transfer_chain(second)
        return Itinerary(
            segments=[*first.segments, *second.segments],
            carriers=sorted(set(first.carriers) | set(second.carriers)),
            total_price=round(first.total_price + second.total_price, 2),
            currency=first.currency,
            source=STITCHED_SOURCE,
            separate_tickets=True,
            virtual_interline=True,
            connection_airport=chain[0],
            hub_chain=chain if len(chain) > 1 else None,
            original_components=_components(first) + _components(second),
        )

    def combine(self, to_hub: list[Itinerary], from_hub: list[Itinerary], cap: int | None = None) -> list[Itinerary]:
        """Best-first pairwise expansion: cheapest combined price first, up to ``cap`` results."""
        cap = cap or self.limits.combinations_per_hub
        if not to_hub or not from_hub:
            return []

        firsts = _by_price(to_hub)
        seconds = _by_price(from_hub)
        heap = [(firsts[0].total_price + seconds[0].total_price, 0, 0)]
        queued = {(0, 0)}
        results: list[Itinerary] = []
        attempts = 0
        max_attempts = cap * ATTEMPTS_PER_RESULT

        while heap and len(results) < cap and attempts < max_attempts:
            _, i, j = heapq.heappop(heap)
            attempts += 1
            stitched = self.stitch_two_routes(firsts[i], seconds[j])
            if stitched:
                results.append(stitched)
            for ni, nj in ((i + 1, j), (i, j + 1)):
                if ni < len(firsts) and nj < len(seconds) and (ni, nj) not in queued:
                    queued.add((ni, nj))
                    heapq.heappush(heap, (firsts[ni].total_price + seconds[nj].total_price, ni, nj))
        return results

    def build_multi_hub(
        self, itineraries: list[Itinerary], origin: str, destination: str, airports: list[str]
    ) -> list[Itinerary]:
        """origin→hub1→hub2→destination chains over the first N×N airport pairs."""
        pairs = self.limits.multi_hub_pairs
        cap = self.limits.max_multi_hub
        budget = self.limits.combinations_per_hub
        results: list[Itinerary] = []

        for hub1 in airports[:pairs]:
            for hub2 in airports[:pairs]:
                if hub1 == hub2:
                    continue
                legs1 = _by_price([i for i in itineraries if i.segments and i.origin == origin and i.destination == hub1])
                legs2 = _by_price([i for i in itineraries if i.segments and i.origin == hub1 and i.destination == hub2])
                legs3 = _by_price([i for i in itineraries if i.segments and i.origin == hub2 and i.destination == destination])
                if not (legs1 and legs2 and legs3):
                    continue

                for chain in self._chains(legs1, legs2, legs3, budget):
                    results.append(chain)
                    if len(results) >= cap:
                        return results
        return results

    def _chains(self, legs1: list[Itinerary], legs2: list[Itinerary], legs3: list[Itinerary], budget: int):
        """Yield leg1+leg2+leg3 chains, giving up after ``budget`` stitch attempts."""
        attempts = 0
        for leg1 in legs1:
            for leg2 in legs2:
                attempts += 1
                if attempts > budget:
                    return
                partial = self.stitch_two_routes(leg1, leg2)
                if not partial:
                    continue
                for leg3 in legs3:
                    attempts += 1
                    if attempts > budget:
                        return
                    chain = self.stitch_two_routes(partial, leg3)
                    if chain:
                        yield chain

    def generate(self, itineraries: list[Itinerary], origin: str, destination: str) -> list[Itinerary]:
        """All stitched itineraries for one search: single-hub combinations plus two-hub chains."""
        if not itineraries:
            return []

        stitched: list[Itinerary] = []
        hubs = self.identify_hubs(itineraries, origin, destination)
        for hub in hubs:
            to_hub, from_hub = self.group_by_hub(itineraries, origin, destination, hub)
            combos = self.combine(to_hub, from_hub)
            if combos:
                logger.debug(f"Hub {hub}: {len(combos)} stitched from {len(to_hub)}x{len(from_hub)}")
            stitched.extend(combos)

        ranked = [a for a, _ in sorted(
            self.intermediate_airports(itineraries, origin, destination).items(),
            key=lambda kv: (-kv[1], kv[0]),
        )]
        multi = self.build_multi_hub(itineraries, origin, destination, ranked)
        stitched.extend(multi)

        logger.info(
            f"Stitched {len(stitched)} itineraries ({len(multi)} two-hub) "
            f"for {origin}->{destination} across {len(hubs)} hubs"
        )
        return stitched


route_stitcher = RouteStitcher()
