"""Search router — cheapest-route search and itinerary validation reports."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from interline.schemas.itinerary import SearchRequest
from interline.schemas.search import SearchResponse, ValidationReportRequest, ValidationReportResponse
from interline.services.search_orchestrator import (
    SearchFailedError,
    SearchOrchestrator,
    SearchTimeoutError,
    search_orchestrator,
)
from interline.services.validator import route_validator

logger = logging.getLogger(__name__)

router = APIRouter()

NO_RESULTS_MESSAGE = "No routes found. Try different dates or nearby airports."


def get_orchestrator() -> SearchOrchestrator:
    return search_orchestrator


@router.post("", response_model=SearchResponse)
async def search_routes(
    req: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """Cheapest priced, validated routes for one request."""
    try:
        results = await orchestrator.search(req)
    except SearchTimeoutError:
        raise HTTPException(status_code=504, detail="Search timed out. Please try again.")
    except SearchFailedError:
        raise HTTPException(status_code=502, detail="Search failed. Please try the same search again.")

    return SearchResponse(
        results=results,
        count=len(results),
        message=None if results else NO_RESULTS_MESSAGE,
    )


@router.post("/validate", response_model=ValidationReportResponse)
async def validate_itinerary(req: ValidationReportRequest):
    """Every validation check for one itinerary, without short-circuiting."""
    return route_validator.validation_report(
        req.itinerary,
        check_baggage=req.check_baggage,
        passenger_type=req.passenger_type,
        turnaround=req.turnaround,
    )
