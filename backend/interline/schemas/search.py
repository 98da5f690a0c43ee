from pydantic import BaseModel

from interline.schemas.itinerary import Itinerary


class SearchResponse(BaseModel):
    results: list[Itinerary]
    count: int
    message: str | None = None


class ValidationReportRequest(BaseModel):
    itinerary: Itinerary
    check_baggage: bool = False
    passenger_type: str | None = None
    # Destination of a round trip; the stay there is not checked as a connection
    turnaround: str | None = None


class ValidationReportResponse(BaseModel):
    itinerary_id: str
    is_valid: bool
    summary: str
    checks: list[dict]
    errors: list[str]
    warnings: list[str]
