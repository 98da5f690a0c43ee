"""Kiwi (Tequila) adapter — search plus booking links, including multi-leg self-transfer links."""

import logging
from datetime import datetime, timezone
from urllib.parse import urlencode

import httpx

from interline.config import settings
from interline.schemas.itinerary import Itinerary, SearchRequest, Segment
from interline.services.providers.base import FlightProvider, ticket_legs

logger = logging.getLogger(__name__)

BOOKING_URL = "https://www.kiwi.com/en/booking"
MULTICITY_URL = "https://www.kiwi.com/en/search/multicity"

# Our cabin codes to Tequila's selected_cabins
CABIN_MAP = {
    "economy": "M",
    "premium_economy": "W",
    "business": "C",
    "first": "F",
}


def _instant(leg: dict, iso_key: str, epoch_key: str) -> datetime:
    if leg.get(iso_key):
        return datetime.fromisoformat(leg[iso_key].replace("Z", "+00:00"))
    return datetime.fromtimestamp(int(leg[epoch_key]), tz=timezone.utc)


class KiwiProvider(FlightProvider):
    name = "kiwi"
    supports_multi_leg = True

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        affiliate_id: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            base_url or settings.kiwi_base_url,
            settings.kiwi_api_key if api_key is None else api_key,
            timeout=timeout,
            transport=transport,
        )
        self.affiliate_id = settings.kiwi_affiliate_id if affiliate_id is None else affiliate_id

    async def _fetch(self, client: httpx.AsyncClient, request: SearchRequest) -> dict:
        departure = request.departure_date.strftime("%d/%m/%Y")
        params = {
            "fly_from": request.origin,
            "fly_to": request.destination,
            "date_from": departure,
            "date_to": departure,
            "adults": request.passengers,
            "selected_cabins": CABIN_MAP.get(request.cabin_class, "M"),
            "curr": request.currency,
            "max_stopovers": 2,
            "vehicle_type": "aircraft",
            "sort": "price",
            "limit": 100,
        }
        if request.return_date:
            ret = request.return_date.strftime("%d/%m/%Y")
            params["return_from"] = ret
            params["return_to"] = ret

        resp = await client.get("/v2/search", params=params, headers={"apikey": self.api_key})
        resp.raise_for_status()
        return resp.json()

    def _records(self, payload: dict):
        currency = payload.get("currency")
        for record in payload.get("data") or []:
            yield {**record, "_currency": currency}

    def _to_itinerary(self, record: dict, request: SearchRequest) -> Itinerary | None:
        route = record.get("route") or []
        if not route:
            return None

        segments = [
            Segment(
                carrier=leg["airline"],
                flight_number=str(leg.get("flight_no") or "") or None,
                origin=leg["flyFrom"],
                destination=leg["flyTo"],
                departure=_instant(leg, "utc_departure", "dTimeUTC"),
                arrival=_instant(leg, "utc_arrival", "aTimeUTC"),
                aircraft=leg.get("equipment"),
                cabin_class=request.cabin_class,
            )
            for leg in route
        ]
        virtual_interline = bool(record.get("virtual_interlining")) or any(
            leg.get("vi_connection") for leg in route
        )
        return Itinerary(
            segments=segments,
            total_price=float(record["price"]),
            currency=record.get("_currency") or request.currency,
            source=self.name,
            virtual_interline=virtual_interline,
            separate_tickets=virtual_interline,
            booking_token=record.get("booking_token"),
            deep_link=record.get("deep_link"),
        )

    def generate_link(self, itinerary: Itinerary, passengers: int = 1) -> str | None:
        if not itinerary.booking_token:
            return itinerary.deep_link
        params = {
            "token": itinerary.booking_token,
            "currency": itinerary.priced_currency or itinerary.currency,
            "passengers": passengers,
            "lang": "en",
        }
        if self.affiliate_id:
            params["affilid"] = self.affiliate_id
        return f"{BOOKING_URL}?{urlencode(params)}"

    def generate_multi_leg_link(self, itinerary: Itinerary, passengers: int = 1) -> str | None:
        legs = ticket_legs(itinerary)
        if not legs:
            return None
        params = {
            "legs": ",".join(f"{o}-{d}-{day}" for o, d, day in legs),
            "passengers": passengers,
            "currency": itinerary.priced_currency or itinerary.currency,
            "lang": "en",
        }
        if self.affiliate_id:
            params["affilid"] = self.affiliate_id
        return f"{MULTICITY_URL}?{urlencode(params)}"
