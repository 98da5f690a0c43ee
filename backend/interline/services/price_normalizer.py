"""Price normalizer — settlement-currency conversion, fees, tax and ranking."""

import logging
from dataclasses import dataclass

from interline.config import settings
from interline.data.currency import format_price
from interline.schemas.itinerary import Itinerary
from interline.services.exchange_rate_client import ExchangeRateClient, exchange_rate_client

logger = logging.getLogger(__name__)

# Per-bag fee by cabin (settlement currency)
BAGGAGE_FEES = {"economy": 20, "premium_economy": 30, "business": 40, "first": 50}
FREE_BAGS = {"economy": 0, "premium_economy": 1, "business": 2, "first": 2}

# Booking fee by source / booking engine
BOOKING_FEES = {"kiwi": 5, "travelpayouts": 3, "skyscanner": 4}
VIRTUAL_INTERLINE_FEE = 10
DEFAULT_BOOKING_FEE = BOOKING_FEES["travelpayouts"]

TAX_RATE = 0.15


@dataclass
class PricingPreferences:
    bags: int = 0
    cabin_class: str = "economy"


def baggage_fee(bags: int, cabin_class: str) -> float:
    if bags <= 0:
        return 0.0
    fee = BAGGAGE_FEES.get(cabin_class, BAGGAGE_FEES["economy"])
    free = FREE_BAGS.get(cabin_class, 0)
    return float(max(0, bags - free) * fee)


def booking_fee(source: str, virtual_interline: bool = False) -> float:
    if virtual_interline:
        return float(VIRTUAL_INTERLINE_FEE)
    return float(BOOKING_FEES.get(source, DEFAULT_BOOKING_FEE))


def ranking_price(itinerary: Itinerary) -> float:
    for price in (itinerary.final_price, itinerary.base_price):
        if price is not None:
            return price
    return itinerary.total_price


class PriceNormalizer:
    """Produces a comparable, fee-inclusive final price in one settlement currency."""

    def __init__(self, exchange: ExchangeRateClient | None = None, currency: str | None = None):
        self.exchange = exchange or exchange_rate_client
        self.currency = currency or settings.default_currency

    async def add_all_fees(self, itinerary: Itinerary, prefs: PricingPreferences, currency: str | None = None) -> Itinerary:
        currency = currency or self.currency
        if itinerary.currency == currency:
            base = itinerary.total_price
        else:
            base = await self.exchange.convert(itinerary.total_price, itinerary.currency, currency)

        bags = baggage_fee(prefs.bags, prefs.cabin_class)
        booking = booking_fee(itinerary.source, itinerary.virtual_interline)
        tax = round(base * TAX_RATE, 2)
        final = round(base + bags + booking + tax, 2)

        return itinerary.model_copy(update={
            "base_price": base,
            "baggage_fee": bags,
            "booking_fee": booking,
            "tax_amount": tax,
            "final_price": final,
            "priced_currency": currency,
            "display_price": format_price(final, currency),
        })

    async def normalize_all(
        self, itineraries: list[Itinerary], prefs: PricingPreferences | None = None, currency: str | None = None
    ) -> list[Itinerary]:
        """Price every itinerary. One that fails is kept unpriced rather than dropped."""
        prefs = prefs or PricingPreferences()
        normalized = []
        for itinerary in itineraries:
            try:
                normalized.append(await self.add_all_fees(itinerary, prefs, currency))
            except Exception:
                logger.exception(f"Price normalization failed for {itinerary.id}, keeping original price")
                normalized.append(itinerary)
        return normalized

    @staticmethod
    def sort_by_price(itineraries: list[Itinerary]) -> list[Itinerary]:
        """Stable ascending sort by final price (base price, then raw total, as fallbacks)."""
        return sorted(itineraries, key=ranking_price)

    @staticmethod
    def filter_by_max_price(itineraries: list[Itinerary], max_price: float) -> list[Itinerary]:
        return [i for i in itineraries if ranking_price(i) <= max_price]


price_normalizer = PriceNormalizer()
