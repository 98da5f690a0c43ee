import asyncio

from conftest import FailingExchange, FixedExchange, itin, seg

from interline.services.price_normalizer import (
    PriceNormalizer,
    PricingPreferences,
    baggage_fee,
    booking_fee,
)


def _route(price, currency="ZAR", source="kiwi", **kwargs):
    return itin(seg("SA", "301", "JNB", "CPT", "06:00", "08:10"), price=price, currency=currency, source=source, **kwargs)


def test_baggage_fee_free_allowance():
    assert baggage_fee(0, "economy") == 0
    assert baggage_fee(2, "economy") == 40
    assert baggage_fee(1, "premium_economy") == 0
    assert baggage_fee(2, "premium_economy") == 30
    assert baggage_fee(3, "business") == 40
    assert baggage_fee(2, "first") == 0


def test_booking_fee_by_source():
    assert booking_fee("kiwi") == 5
    assert booking_fee("skyscanner") == 4
    assert booking_fee("travelpayouts") == 3
    assert booking_fee("stitched", virtual_interline=True) == 10
    assert booking_fee("somewhere-else") == 3


def test_add_all_fees_same_currency(normalizer):
    priced = asyncio.run(normalizer.add_all_fees(_route(3000), PricingPreferences(bags=1)))
    assert priced.base_price == 3000
    assert priced.baggage_fee == 20
    assert priced.booking_fee == 5
    assert priced.tax_amount == 450
    assert priced.final_price == 3475
    assert priced.priced_currency == "ZAR"
    assert priced.display_price == "R3,475"


def test_add_all_fees_converts_currency(normalizer):
    priced = asyncio.run(normalizer.add_all_fees(_route(100, currency="USD"), PricingPreferences()))
    assert priced.base_price == 1800
    assert priced.tax_amount == 270
    assert priced.final_price == 1800 + 5 + 270
    assert priced.total_price == 100


def test_virtual_interline_fee(normalizer):
    priced = asyncio.run(normalizer.add_all_fees(
        _route(3500, source="stitched", virtual_interline=True), PricingPreferences()
    ))
    assert priced.booking_fee == 10
    assert priced.final_price == 3500 + 10 + 525


def test_normalize_all_keeps_failed_item_unpriced():
    normalizer = PriceNormalizer(exchange=FailingExchange(), currency="ZAR")
    usd = _route(100, currency="USD")
    zar = _route(3000)
    result = asyncio.run(normalizer.normalize_all([usd, zar], PricingPreferences()))
    assert len(result) == 2
    assert result[0].final_price is None
    assert result[0].total_price == 100
    assert result[1].final_price == 3455


def test_sort_by_price_stable_and_ascending():
    a = _route(3000, final_price=3455)
    b = _route(2000, final_price=2300)
    c = _route(3001, final_price=3455)
    d = _route(1000, base_price=1000)
    ordered = PriceNormalizer.sort_by_price([a, b, c, d])
    assert ordered == [d, b, a, c]
    finals = [r.final_price or r.base_price for r in ordered]
    assert finals == sorted(finals)


def test_filter_by_max_price():
    cheap = _route(1000, final_price=1200)
    pricey = _route(9000, final_price=10400)
    assert PriceNormalizer.filter_by_max_price([cheap, pricey], 5000) == [cheap]


def test_normalize_all_uses_request_currency():
    normalizer = PriceNormalizer(exchange=FixedExchange(0.5), currency="ZAR")
    result = asyncio.run(normalizer.normalize_all([_route(3000)], PricingPreferences(), currency="USD"))
    assert result[0].priced_currency == "USD"
    assert result[0].base_price == 1500
    assert result[0].display_price.startswith("$")
