from conftest import itin, seg

from interline.services.deduplicator import deduplicate, signature


def _direct(price=3000.0, source="kiwi", dep="06:00", arr="08:10"):
    return itin(seg("SA", "301", "JNB", "CPT", dep, arr), price=price, source=source)


def test_exact_repeats_from_several_providers_collapse():
    first = _direct(source="kiwi")
    repeat = _direct(source="skyscanner")
    result = deduplicate([first, repeat])
    assert result == [first]
    assert result[0].source == "kiwi"


def test_same_flights_different_fare_kept():
    cheap = _direct(price=3000)
    flexible = _direct(price=4200)
    assert deduplicate([cheap, flexible]) == [cheap, flexible]


def test_first_seen_order_preserved():
    a = _direct(price=3000)
    b = itin(seg("FA", "100", "JNB", "CPT", "09:00", "11:10"), price=1500)
    c = _direct(price=3000, source="travelpayouts")
    assert deduplicate([a, b, c]) == [a, b]


def test_idempotent():
    items = [
        _direct(price=3000),
        _direct(price=3000, source="skyscanner"),
        itin(seg("FA", "100", "JNB", "CPT", "09:00", "11:10"), price=1500),
    ]
    once = deduplicate(items)
    assert deduplicate(once) == once


def test_itineraries_without_segments_never_merge():
    empty_a = itin(price=100)
    empty_b = itin(price=100)
    assert len(deduplicate([empty_a, empty_b])) == 2
    assert signature(empty_a) != signature(empty_b)


def test_missing_flight_number_signature():
    route = itin(seg("SA", None, "JNB", "CPT", "06:00", "08:10"), price=3000)
    assert signature(route).startswith("SA||JNB|CPT#3000.00#")
