"""Skyscanner Partners API adapter (live search v3)."""

import logging
from datetime import datetime, timezone
from urllib.parse import urlencode

import httpx

from interline.config import settings
from interline.schemas.itinerary import Itinerary, SearchRequest, Segment
from interline.services.providers.base import FlightProvider

logger = logging.getLogger(__name__)

SITE_URL = "https://www.skyscanner.net/transport/flights"
MARKET = "ZA"
LOCALE = "en-GB"

# Results kept per search, cheapest first
MAX_RESULTS = 50

CABIN_MAP = {
    "economy": "CABIN_CLASS_ECONOMY",
    "premium_economy": "CABIN_CLASS_PREMIUM_ECONOMY",
    "business": "CABIN_CLASS_BUSINESS",
    "first": "CABIN_CLASS_FIRST",
}

# Skyscanner prices are integer strings in sub-units
PRICE_UNITS = {
    "PRICE_UNIT_WHOLE": 1,
    "PRICE_UNIT_CENTI": 100,
    "PRICE_UNIT_MILLI": 1000,
    "PRICE_UNIT_MICRO": 1_000_000,
}


def _query_date(d) -> dict:
    return {"year": d.year, "month": d.month, "day": d.day}


def _datetime(parts: dict) -> datetime:
    return datetime(
        parts["year"], parts["month"], parts["day"],
        parts.get("hour", 0), parts.get("minute", 0),
        tzinfo=timezone.utc,
    )


def _amount(price: dict) -> float:
    divisor = PRICE_UNITS.get(price.get("unit", "PRICE_UNIT_WHOLE"), 1)
    return float(price["amount"]) / divisor


class SkyscannerProvider(FlightProvider):
    name = "skyscanner"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        affiliate_id: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            base_url or settings.skyscanner_base_url,
            settings.skyscanner_api_key if api_key is None else api_key,
            timeout=timeout,
            transport=transport,
        )
        self.affiliate_id = settings.skyscanner_affiliate_id if affiliate_id is None else affiliate_id

    async def _fetch(self, client: httpx.AsyncClient, request: SearchRequest) -> dict:
        legs = [{
            "originPlaceId": {"iata": request.origin},
            "destinationPlaceId": {"iata": request.destination},
            "date": _query_date(request.departure_date),
        }]
        if request.return_date:
            legs.append({
                "originPlaceId": {"iata": request.destination},
                "destinationPlaceId": {"iata": request.origin},
                "date": _query_date(request.return_date),
            })
        body = {
            "query": {
                "market": MARKET,
                "locale": LOCALE,
                "currency": request.currency,
                "queryLegs": legs,
                "adults": request.passengers,
                "cabinClass": CABIN_MAP.get(request.cabin_class, "CABIN_CLASS_ECONOMY"),
            }
        }
        resp = await client.post(
            "/v3/flights/live/search/create",
            json=body,
            headers={"x-api-key": self.api_key},
        )
        resp.raise_for_status()
        data = resp.json()
        data["_currency"] = request.currency
        return data

    def _records(self, payload: dict):
        results = (payload.get("content") or {}).get("results") or {}
        legs = results.get("legs") or {}
        segments = results.get("segments") or {}
        carriers = results.get("carriers") or {}
        places = results.get("places") or {}
        currency = payload.get("_currency")

        records = []
        for itinerary_id, itinerary in (results.get("itineraries") or {}).items():
            options = itinerary.get("pricingOptions") or []
            if not options:
                continue
            try:
                option = min(options, key=lambda o: _amount(o["price"]))
                itinerary_segments = [
                    segments[segment_id]
                    for leg_id in itinerary.get("legIds") or []
                    for segment_id in legs[leg_id]["segmentIds"]
                ]
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"skyscanner: skipping itinerary {itinerary_id}: {e}")
                continue
            records.append({
                "id": itinerary_id,
                "option": option,
                "segments": itinerary_segments,
                "carriers": carriers,
                "places": places,
                "currency": currency,
            })
        records.sort(key=lambda r: _amount(r["option"]["price"]))
        return records[:MAX_RESULTS]

    def _to_itinerary(self, record: dict, request: SearchRequest) -> Itinerary | None:
        if not record["segments"]:
            return None
        places = record["places"]
        carriers = record["carriers"]

        def iata(place_id: str) -> str:
            return (places.get(place_id) or {}).get("iata") or place_id

        segments = [
            Segment(
                carrier=(carriers.get(s["marketingCarrierId"]) or {}).get("iata") or s["marketingCarrierId"],
                flight_number=s.get("marketingFlightNumber") or s.get("flightNumber"),
                origin=iata(s["originPlaceId"]),
                destination=iata(s["destinationPlaceId"]),
                departure=_datetime(s["departureDateTime"]),
                arrival=_datetime(s["arrivalDateTime"]),
                cabin_class=request.cabin_class,
            )
            for s in record["segments"]
        ]
        option = record["option"]
        items = option.get("items") or []
        return Itinerary(
            segments=segments,
            total_price=round(_amount(option["price"]), 2),
            currency=record["currency"] or request.currency,
            source=self.name,
            deep_link=items[0].get("deepLink") if items else None,
        )

    def generate_link(self, itinerary: Itinerary, passengers: int = 1) -> str | None:
        if itinerary.deep_link:
            return itinerary.deep_link
        first = itinerary.first_segment
        if first is None:
            return None
        params = {
            "adults": passengers,
            "currency": itinerary.priced_currency or itinerary.currency,
            "locale": LOCALE,
            "market": MARKET,
        }
        if self.affiliate_id:
            params["partner"] = self.affiliate_id
        path = f"{itinerary.origin.lower()}/{itinerary.destination.lower()}/{first.departure:%y%m%d}"
        return f"{SITE_URL}/{path}/?{urlencode(params)}"
