"""Travelpayouts (Aviasales) adapter."""

import logging
from urllib.parse import urlencode

import httpx

from interline.config import settings
from interline.schemas.itinerary import Itinerary, SearchRequest, Segment
from interline.services.providers.base import FlightProvider

logger = logging.getLogger(__name__)

SITE_URL = "https://www.aviasales.com"

CABIN_MAP = {
    "economy": "Y",
    "premium_economy": "W",
    "business": "C",
    "first": "F",
}


class TravelpayoutsProvider(FlightProvider):
    name = "travelpayouts"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        marker: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            base_url or settings.travelpayouts_base_url,
            settings.travelpayouts_api_key if api_key is None else api_key,
            timeout=timeout,
            transport=transport,
        )
        self.marker = settings.travelpayouts_marker if marker is None else marker

    async def _fetch(self, client: httpx.AsyncClient, request: SearchRequest) -> dict:
        params = {
            "origin": request.origin,
            "destination": request.destination,
            "departure_at": request.departure_date.isoformat(),
            "currency": request.currency.lower(),
            "adults": request.passengers,
            "trip_class": CABIN_MAP.get(request.cabin_class, "Y"),
            "one_way": "false" if request.return_date else "true",
            "limit": 100,
        }
        if request.return_date:
            params["return_at"] = request.return_date.isoformat()

        resp = await client.get(
            "/aviasales/v3/search",
            params=params,
            headers={"X-Access-Token": self.api_key},
        )
        resp.raise_for_status()
        return resp.json()

    def _records(self, payload: dict):
        currency = (payload.get("currency") or "").upper() or None
        for record in payload.get("data") or []:
            yield {**record, "_currency": currency}

    def _to_itinerary(self, record: dict, request: SearchRequest) -> Itinerary | None:
        raw_segments = [s for leg in record.get("itineraries") or [] for s in leg.get("segments") or []]
        if not raw_segments:
            return None

        segments = [
            Segment(
                carrier=s["airline"],
                flight_number=str(s.get("flight_number") or "") or None,
                origin=s["departure"]["iata"],
                destination=s["arrival"]["iata"],
                departure=s["departure"]["at"],
                arrival=s["arrival"]["at"],
                aircraft=s.get("aircraft"),
                cabin_class=request.cabin_class,
            )
            for s in raw_segments
        ]
        return Itinerary(
            segments=segments,
            total_price=float(record["price"]),
            currency=record.get("_currency") or request.currency,
            source=self.name,
            deep_link=record.get("link"),
        )

    def generate_link(self, itinerary: Itinerary, passengers: int = 1) -> str | None:
        if itinerary.deep_link:
            separator = "&" if "?" in itinerary.deep_link else "?"
            url = itinerary.deep_link
            if url.startswith("/"):
                url = f"{SITE_URL}{url}"
            return f"{url}{separator}{urlencode({'marker': self.marker})}" if self.marker else url

        first = itinerary.first_segment
        if first is None:
            return None
        params = {
            "origin": itinerary.origin,
            "destination": itinerary.destination,
            "depart_date": first.departure.date().isoformat(),
            "adults": passengers,
            "currency": itinerary.priced_currency or itinerary.currency,
            "locale": "en",
        }
        if self.marker:
            params["marker"] = self.marker
        return f"{SITE_URL}/search?{urlencode(params)}"
