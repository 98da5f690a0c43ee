"""Segment and itinerary schemas shared by every stage of the search pipeline."""

from datetime import date, datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

STITCHED_SOURCE = "stitched"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_instant(value) -> datetime | None:
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, str):
        return _as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    return None


class Segment(BaseModel):
    """One operated flight leg. Immutable once built."""

    carrier: str
    flight_number: str | None = None
    origin: str
    destination: str
    departure: datetime
    arrival: datetime
    duration_minutes: int | None = None
    price: float | None = None
    currency: str | None = None
    aircraft: str | None = None
    cabin_class: str | None = None

    model_config = {"frozen": True}

    @field_validator("departure", "arrival")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @model_validator(mode="before")
    @classmethod
    def _derive_duration(cls, data):
        if isinstance(data, dict) and data.get("duration_minutes") is None:
            try:
                dep = _parse_instant(data.get("departure"))
                arr = _parse_instant(data.get("arrival"))
            except ValueError:
                return data
            if dep and arr:
                data = {**data, "duration_minutes": int((arr - dep).total_seconds() // 60)}
        return data

    @property
    def flight_code(self) -> str:
        return f"{self.carrier}{self.flight_number or ''}"


def itinerary_id(segments: list[Segment]) -> str:
    """Deterministic id: same segments in the same order give the same id."""
    return "-".join(
        f"{s.carrier}{s.flight_number or ''}{s.origin}{s.destination}{s.departure:%Y%m%d%H%M}"
        for s in segments
    ).lower().replace(" ", "")


class Itinerary(BaseModel):
    """An ordered, connected sequence of segments — one bookable (or stitched) option."""

    id: str = ""
    segments: list[Segment]
    carriers: list[str] = []
    total_price: float
    currency: str
    total_duration_minutes: int = 0
    source: str

    separate_tickets: bool = False
    virtual_interline: bool = False
    connection_airport: str | None = None
    hub_chain: list[str] | None = None
    original_components: list[str] | None = None

    # Provider booking handles, used when building links
    booking_token: str | None = None
    deep_link: str | None = None

    # Filled by the price normalizer
    base_price: float | None = None
    baggage_fee: float | None = None
    booking_fee: float | None = None
    tax_amount: float | None = None
    final_price: float | None = None
    priced_currency: str | None = None
    display_price: str | None = None

    # Filled by the orchestrator
    booking_link: str | None = None

    @model_validator(mode="after")
    def _derive_fields(self) -> "Itinerary":
        if self.segments:
            if not self.id:
                self.id = itinerary_id(self.segments)
            if not self.carriers:
                self.carriers = sorted({s.carrier for s in self.segments if s.carrier})
            self.total_duration_minutes = int(
                (self.segments[-1].arrival - self.segments[0].departure).total_seconds() // 60
            )
        return self

    @property
    def first_segment(self) -> Segment | None:
        return self.segments[0] if self.segments else None

    @property
    def last_segment(self) -> Segment | None:
        return self.segments[-1] if self.segments else None

    @property
    def origin(self) -> str | None:
        return self.segments[0].origin if self.segments else None

    @property
    def destination(self) -> str | None:
        return self.segments[-1].destination if self.segments else None

    @property
    def is_stitched(self) -> bool:
        return self.source == STITCHED_SOURCE

    @property
    def transfer_airports(self) -> set[str]:
        """Airports where the traveller self-transfers between tickets."""
        airports = set(self.hub_chain or [])
        if self.connection_airport:
            airports.add(self.connection_airport)
        return airports


CabinClass = Literal["economy", "premium_economy", "business", "first"]


class SearchRequest(BaseModel):
    """Input to one search. Immutable for the duration of that search."""

    origin: str = Field(pattern=r"^[A-Za-z]{3}$")
    destination: str = Field(pattern=r"^[A-Za-z]{3}$")
    departure_date: date
    return_date: date | None = None
    passengers: int = Field(default=1, ge=1, le=9)
    bags: int = Field(default=0, ge=0)
    cabin_class: CabinClass = "economy"
    currency: str = Field(default="ZAR", pattern=r"^[A-Za-z]{3}$")
    trip_type: Literal["oneway", "return"] = "oneway"

    model_config = {"frozen": True}

    @field_validator("origin", "destination", "currency")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def _check_dates(self) -> "SearchRequest":
        if self.origin == self.destination:
            raise ValueError("origin and destination must differ")
        if self.return_date is not None and self.return_date < self.departure_date:
            raise ValueError("return_date must not be before departure_date")
        return self

    @property
    def effective_trip_type(self) -> str:
        return "return" if self.return_date else self.trip_type
