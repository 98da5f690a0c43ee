"""Route validator — connection timing, transit visas, backtracking and duration sanity.

Every check is a pure predicate. Failures come back as a ``ValidationVerdict``
carrying a typed reason; nothing here raises for an invalid itinerary.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from interline.config import settings
from interline.data.airline_tiers import get_tier_label, is_low_cost
from interline.data.airports import ReferenceData, get_reference_data
from interline.schemas.itinerary import Itinerary, Segment

logger = logging.getLogger(__name__)

AIRPORT_CODE = re.compile(r"^[A-Z]{3}$")

# Minimum connection times (minutes), highest priority first
MIN_CONNECTION_MINUTES = {
    "virtual_interline": 240,  # bag reclaim + re-check-in
    "self_transfer": 180,      # separate tickets or airport change
    "large_hub": 120,
    "international": 90,
    "default": 60,             # domestic
}

# Maximum connection times (minutes)
MAX_CONNECTION_MINUTES = {
    "default": 1440,        # hard outer bound
    "visa_free": 720,       # transit in a foreign country without a visa requirement
    "visa_required": 480,   # transit country that typically needs a visa
}

MAX_SEGMENT_MINUTES = 20 * 60
MAX_TOTAL_HOURS = 48
CRUISE_SPEED_KMH = 800
GROUND_HOURS_PER_SEGMENT = 1.5
MIN_DURATION_RATIO = 0.5


class RejectionReason(str, Enum):
    NO_SEGMENTS = "no_segments"
    INVALID_SEGMENT = "invalid_segment"
    AIRPORT_MISMATCH = "airport_mismatch"
    BACKWARD_CONNECTION = "backward_connection"
    CONNECTION_TOO_SHORT = "connection_too_short"
    CONNECTION_TOO_LONG = "connection_too_long"
    TRANSIT_VISA = "transit_visa"
    BACKTRACKING = "backtracking"
    DURATION_TOO_LONG = "duration_too_long"
    DURATION_TOO_SHORT = "duration_too_short"


@dataclass(frozen=True)
class ValidationVerdict:
    valid: bool
    reason: RejectionReason | None = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.valid


PASS = ValidationVerdict(True)


def _fail(reason: RejectionReason, detail: str) -> ValidationVerdict:
    return ValidationVerdict(False, reason, detail)


def format_duration(minutes: float) -> str:
    if minutes is None or minutes < 0:
        return "N/A"
    minutes = int(minutes)
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def gap_minutes(prev: Segment, nxt: Segment) -> float:
    return (nxt.departure - prev.arrival).total_seconds() / 60


def split_journeys(segments: list[Segment], turnaround: str | None = None) -> list[list[Segment]]:
    """Outbound and inbound journeys of a round trip turning at ``turnaround``; otherwise one journey."""
    if turnaround:
        for index, (segment, nxt) in enumerate(zip(segments, segments[1:])):
            if segment.destination == turnaround and nxt.origin == turnaround:
                return [segments[: index + 1], segments[index + 1 :]]
    return [segments]


class RouteValidator:
    """Decides whether an itinerary is a legally and physically plausible plan."""

    def __init__(self, reference: ReferenceData | None = None):
        self.reference = reference or get_reference_data()

    # --- Segments ---

    def validate_segment(self, segment: Segment) -> bool:
        if segment is None:
            return False
        if not AIRPORT_CODE.match(segment.origin or "") or not AIRPORT_CODE.match(segment.destination or ""):
            return False
        if segment.departure is None or segment.arrival is None:
            return False
        if segment.departure >= segment.arrival:
            return False
        if (segment.arrival - segment.departure).total_seconds() / 60 > MAX_SEGMENT_MINUTES:
            return False
        if segment.origin == segment.destination:
            return False
        return True

    # --- Connections ---

    def minimum_connection_minutes(
        self,
        prev: Segment,
        nxt: Segment,
        is_virtual_interline: bool = False,
        is_self_transfer: bool = False,
    ) -> int:
        """Minimum connection time by priority: interline, airport change, large hub, international, domestic."""
        if is_virtual_interline:
            return MIN_CONNECTION_MINUTES["virtual_interline"]
        if is_self_transfer or self.reference.is_airport_change(prev.destination, nxt.origin):
            return MIN_CONNECTION_MINUTES["self_transfer"]
        if self.reference.is_large_hub(prev.destination):
            return MIN_CONNECTION_MINUTES["large_hub"]
        if self.reference.is_international(prev.origin, nxt.destination):
            return MIN_CONNECTION_MINUTES["international"]
        return MIN_CONNECTION_MINUTES["default"]

    def maximum_connection_minutes(
        self,
        transit_airport: str,
        max_connection_minutes: float | None = None,
        origin: str | None = None,
    ) -> float:
        """
        Caller maximum, never beyond 24h.

        Transit in a visa-required country caps it at 8h. Otherwise transit in
        a country other than the one the previous flight left from caps it at 12h.
        """
        limit = max_connection_minutes or settings.max_connection_minutes
        limit = min(limit, MAX_CONNECTION_MINUTES["default"])
        if self.reference.requires_transit_visa(transit_airport):
            limit = min(limit, MAX_CONNECTION_MINUTES["visa_required"])
        elif origin and self.reference.is_international(origin, transit_airport):
            limit = min(limit, MAX_CONNECTION_MINUTES["visa_free"])
        return limit

    def validate_connection(
        self,
        prev: Segment,
        nxt: Segment,
        is_virtual_interline: bool = False,
        min_connection_minutes: float | None = None,
        max_connection_minutes: float | None = None,
        is_self_transfer: bool = False,
    ) -> ValidationVerdict:
        if prev.destination != nxt.origin:
            return _fail(RejectionReason.AIRPORT_MISMATCH, f"Airport mismatch: {prev.destination} != {nxt.origin}")

        gap = gap_minutes(prev, nxt)
        if gap < 0:
            return _fail(RejectionReason.BACKWARD_CONNECTION, f"Backward connection at {prev.destination}")

        required = self.minimum_connection_minutes(prev, nxt, is_virtual_interline, is_self_transfer)
        if min_connection_minutes:
            required = max(required, min_connection_minutes)
        if gap < required:
            return _fail(
                RejectionReason.CONNECTION_TOO_SHORT,
                f"Connection too short at {prev.destination}: {format_duration(gap)} < {format_duration(required)}",
            )

        limit = self.maximum_connection_minutes(prev.destination, max_connection_minutes, origin=prev.origin)
        if gap > limit:
            return _fail(
                RejectionReason.CONNECTION_TOO_LONG,
                f"Connection too long at {prev.destination}: {format_duration(gap)} > {format_duration(limit)}",
            )
        return PASS

    # --- Route-level checks ---

    def validate_visa_requirements(self, segments: list[Segment]) -> ValidationVerdict:
        """Conservative heuristic: flag transit through countries that usually need a transit visa."""
        for prev, nxt in zip(segments, segments[1:]):
            if prev.destination != nxt.origin:
                continue
            if self.reference.requires_transit_visa(prev.destination):
                country = self.reference.country(prev.destination)
                return _fail(RejectionReason.TRANSIT_VISA, f"Transit visa may be required for {country} ({prev.destination})")
        return PASS

    def validate_airport_changes(self, segments: list[Segment]) -> ValidationVerdict:
        """No revisiting an airport already seen, except arriving at the final destination."""
        if not segments:
            return PASS
        final_destination = segments[-1].destination
        visited: set[str] = set()
        for segment in segments:
            if segment.destination in visited and segment.destination != final_destination:
                return _fail(RejectionReason.BACKTRACKING, f"Backtracking to {segment.destination}")
            visited.add(segment.origin)
            visited.add(segment.destination)
        return PASS

    def estimate_total_distance(self, segments: list[Segment]) -> float:
        return sum(self.reference.distance_km(s.origin, s.destination) for s in segments)

    def validate_total_duration(self, itinerary: Itinerary) -> ValidationVerdict:
        return self.validate_journey_duration(itinerary.segments)

    def validate_journey_duration(self, segments: list[Segment]) -> ValidationVerdict:
        if not segments:
            return _fail(RejectionReason.NO_SEGMENTS, "No segments")

        total_hours = (segments[-1].arrival - segments[0].departure).total_seconds() / 3600
        if total_hours > MAX_TOTAL_HOURS:
            return _fail(RejectionReason.DURATION_TOO_LONG, f"Total duration too long: {total_hours:.1f} hours")

        distance = self.estimate_total_distance(segments)
        estimated_hours = distance / CRUISE_SPEED_KMH + len(segments) * GROUND_HOURS_PER_SEGMENT
        if total_hours < estimated_hours * MIN_DURATION_RATIO:
            return _fail(
                RejectionReason.DURATION_TOO_SHORT,
                f"Duration too short for distance: {total_hours:.1f} hours for ~{round(distance)} km",
            )
        return PASS

    def _is_transfer_point(self, itinerary: Itinerary, airport: str) -> bool:
        if not itinerary.virtual_interline:
            return False
        transfers = itinerary.transfer_airports
        # Provider-flagged interline with no recorded transfer point: treat every connection as one
        return not transfers or airport in transfers

    def check_route(
        self,
        itinerary: Itinerary,
        min_connection_minutes: float | None = None,
        max_connection_minutes: float | None = None,
        turnaround: str | None = None,
    ) -> ValidationVerdict:
        """All checks in order, stopping at the first failure.

        With ``turnaround`` set (the destination of a round trip), the stay
        there is not a connection: connection, transit, backtracking and
        duration checks run on the outbound and inbound journeys separately.
        """
        if itinerary is None or not itinerary.segments:
            return _fail(RejectionReason.NO_SEGMENTS, "No segments")

        segments = itinerary.segments
        for index, segment in enumerate(segments):
            if not self.validate_segment(segment):
                return _fail(RejectionReason.INVALID_SEGMENT, f"Segment {index + 1} is invalid")

        self_transfer = itinerary.separate_tickets and not itinerary.virtual_interline
        journeys = split_journeys(segments, turnaround)
        for journey in journeys:
            for prev, nxt in zip(journey, journey[1:]):
                verdict = self.validate_connection(
                    prev,
                    nxt,
                    is_virtual_interline=self._is_transfer_point(itinerary, prev.destination),
                    min_connection_minutes=min_connection_minutes,
                    max_connection_minutes=max_connection_minutes,
                    is_self_transfer=self_transfer,
                )
                if not verdict:
                    return verdict

        for journey in journeys:
            for check in (self.validate_visa_requirements, self.validate_airport_changes, self.validate_journey_duration):
                verdict = check(journey)
                if not verdict:
                    return verdict
        return PASS

    def validate_route(
        self,
        itinerary: Itinerary,
        min_connection_minutes: float | None = None,
        max_connection_minutes: float | None = None,
        turnaround: str | None = None,
    ) -> bool:
        verdict = self.check_route(itinerary, min_connection_minutes, max_connection_minutes, turnaround)
        if not verdict:
            logger.debug(f"Rejected {itinerary.id if itinerary else None}: {verdict.reason.value}: {verdict.detail}")
        return verdict.valid

    def filter_valid(
        self,
        itineraries: list[Itinerary],
        max_connection_minutes: float | None = None,
        turnaround: str | None = None,
    ) -> list[Itinerary]:
        return [
            i for i in itineraries
            if self.validate_route(i, max_connection_minutes=max_connection_minutes, turnaround=turnaround)
        ]

    # --- Advisory checks (warnings only) ---

    def validate_baggage(self, itinerary: Itinerary) -> list[str]:
        """Warnings for self-transfer itineraries on carriers that charge for bags."""
        if not itinerary.virtual_interline:
            return []
        return [
            f"Segment {i + 1} ({s.carrier}, {get_tier_label(s.carrier)}): checked bags charged separately"
            for i, s in enumerate(itinerary.segments)
            if is_low_cost(s.carrier)
        ]

    def validate_for_passenger_type(self, itinerary: Itinerary, passenger_type: str) -> list[str]:
        warnings = []
        if passenger_type == "child" and itinerary.virtual_interline:
            warnings.append("Self-transfer itineraries may not suit unaccompanied minors")
        if passenger_type == "infant" and len(itinerary.segments) > 2:
            warnings.append("Multiple segments may be challenging with an infant")
        return warnings

    def validation_report(
        self,
        itinerary: Itinerary,
        check_baggage: bool = False,
        passenger_type: str | None = None,
        max_connection_minutes: float | None = None,
        turnaround: str | None = None,
    ) -> dict:
        """Run every check without short-circuiting and collect the outcome."""
        checks: list[dict] = []
        errors: list[str] = []
        warnings: list[str] = []
        segments = itinerary.segments
        journeys = split_journeys(segments, turnaround)

        for index, segment in enumerate(segments):
            ok = self.validate_segment(segment)
            checks.append({"check": f"Segment {index + 1} validity", "valid": ok})
            if not ok:
                errors.append(f"Segment {index + 1} is invalid")

        index = 0
        for journey in journeys:
            for prev, nxt in zip(journey, journey[1:]):
                index += 1
                verdict = self.validate_connection(
                    prev,
                    nxt,
                    is_virtual_interline=self._is_transfer_point(itinerary, prev.destination),
                    max_connection_minutes=max_connection_minutes,
                )
                checks.append({
                    "check": f"Connection {index} ({prev.destination})",
                    "valid": verdict.valid,
                    "details": verdict.detail or f"{format_duration(gap_minutes(prev, nxt))} connection",
                })
                if not verdict:
                    errors.append(verdict.detail)

        visa = [v for v in map(self.validate_visa_requirements, journeys) if not v]
        checks.append({"check": "Visa requirements", "valid": not visa, "details": "; ".join(v.detail for v in visa)})
        warnings.extend(v.detail for v in visa)

        changes = [v for v in map(self.validate_airport_changes, journeys) if not v]
        checks.append({"check": "Airport changes", "valid": not changes, "details": "; ".join(v.detail for v in changes)})
        errors.extend(v.detail for v in changes)

        duration = [v for v in map(self.validate_journey_duration, journeys) if not v]
        checks.append({
            "check": "Total duration",
            "valid": not duration,
            "details": "; ".join(v.detail for v in duration) or format_duration(itinerary.total_duration_minutes),
        })
        errors.extend(v.detail for v in duration)

        if check_baggage:
            baggage = self.validate_baggage(itinerary)
            checks.append({"check": "Baggage", "valid": True, "details": f"{len(baggage)} warning(s)"})
            warnings.extend(baggage)

        if passenger_type:
            passenger = self.validate_for_passenger_type(itinerary, passenger_type)
            checks.append({"check": f"Passenger type: {passenger_type}", "valid": True})
            warnings.extend(passenger)

        is_valid = not errors
        return {
            "itinerary_id": itinerary.id,
            "is_valid": is_valid,
            "summary": "Route is valid" if is_valid else f"Route has {len(errors)} error(s)",
            "checks": checks,
            "errors": errors,
            "warnings": warnings,
        }


route_validator = RouteValidator()
