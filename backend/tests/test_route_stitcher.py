from conftest import itin, seg

from interline.services.route_stitcher import RouteStitcher, StitchLimits
from interline.services.validator import RejectionReason


def _to_add(dep="05:00", arr="10:00", price=2000.0, number="808"):
    return itin(seg("ET", number, "JNB", "ADD", dep, arr), price=price, source="travelpayouts")


def _add_to_cpt(dep="15:00", arr="21:00", price=1500.0, number="847"):
    return itin(seg("KQ", number, "ADD", "CPT", dep, arr), price=price, source="travelpayouts")


def test_stitch_requires_matching_airports(stitcher):
    ends_cpt = itin(seg("SA", "301", "JNB", "CPT", "06:00", "08:10"), price=3000)
    starts_jnb = itin(seg("SA", "302", "JNB", "DUR", "12:00", "13:10"), price=900)
    assert stitcher.stitch_two_routes(ends_cpt, starts_jnb) is None


def test_stitch_rejects_negative_gap(stitcher):
    arriving = itin(seg("ET", "808", "JNB", "ADD", "09:00", "14:00"), price=2000)
    departing = itin(seg("KQ", "847", "ADD", "CPT", "13:00", "19:00"), price=1500)
    assert stitcher.stitch_two_routes(arriving, departing) is None


def test_stitch_enforces_interline_minimum(stitcher):
    arriving = _to_add(dep="05:00", arr="10:00")
    assert stitcher.stitch_two_routes(arriving, _add_to_cpt(dep="12:00", arr="18:00")) is None
    assert stitcher.stitch_two_routes(arriving, _add_to_cpt(dep="15:00", arr="21:00")) is not None


def test_stitched_itinerary_fields(stitcher):
    first = _to_add()
    second = _add_to_cpt()
    stitched = stitcher.stitch_two_routes(first, second)

    assert [s.flight_code for s in stitched.segments] == ["ET808", "KQ847"]
    assert stitched.carriers == ["ET", "KQ"]
    assert stitched.total_price == 3500
    assert stitched.source == "stitched"
    assert stitched.separate_tickets and stitched.virtual_interline
    assert stitched.connection_airport == "ADD"
    assert stitched.hub_chain is None
    assert stitched.original_components == [first.id, second.id]
    assert stitched.total_duration_minutes == 16 * 60


def test_stitch_self_and_currency_mismatch(stitcher):
    leg = _to_add()
    assert stitcher.stitch_two_routes(leg, leg) is None

    usd = itin(seg("KQ", "847", "ADD", "CPT", "15:00", "21:00"), price=90, currency="USD")
    assert stitcher.stitch_two_routes(_to_add(), usd) is None


def test_identify_hubs_curated_and_frequent(stitcher):
    results = [_to_add(), _add_to_cpt()]
    # LUN is not curated but appears three times
    results += [
        itin(seg("ZM", str(n), "JNB", "LUN", "06:00", "08:00"), price=1000 + n) for n in range(3)
    ]
    hubs = stitcher.identify_hubs(results, "JNB", "CPT")
    assert hubs[0] == "LUN"
    assert "ADD" in hubs
    assert "JNB" not in hubs and "CPT" not in hubs


def test_identify_hubs_respects_cap(validator):
    stitcher = RouteStitcher(validator=validator, limits=StitchLimits(max_hubs=1))
    results = [_to_add(), _add_to_cpt(), itin(seg("KQ", "1", "JNB", "NBO", "06:00", "10:00"), price=900)]
    assert len(stitcher.identify_hubs(results, "JNB", "CPT")) == 1


def test_combine_is_cheapest_first_and_capped(validator):
    stitcher = RouteStitcher(validator=validator, limits=StitchLimits(combinations_per_hub=2))
    to_hub = [_to_add(price=2500, number="1"), _to_add(price=2000, number="2")]
    from_hub = [_add_to_cpt(price=1800, number="3"), _add_to_cpt(price=1500, number="4")]

    combos = stitcher.combine(to_hub, from_hub)
    assert len(combos) == 2
    assert combos[0].total_price == 3500
    assert combos[1].total_price == 3800
    assert combos[0].total_price <= combos[1].total_price


def test_generate_single_hub(stitcher):
    direct = itin(seg("SA", "301", "JNB", "CPT", "06:00", "08:10"), price=3000)
    stitched = stitcher.generate([direct, _to_add(), _add_to_cpt()], "JNB", "CPT")
    assert len(stitched) == 1
    assert stitched[0].origin == "JNB" and stitched[0].destination == "CPT"
    assert stitched[0].total_price == 3500


def test_generate_two_hub_chain(stitcher):
    legs = [
        itin(seg("FA", "100", "CPT", "JNB", "05:00", "07:10"), price=900),
        itin(seg("ET", "808", "JNB", "ADD", "11:30", "16:30"), price=2000),
        itin(seg("ET", "308", "ADD", "NBO", "21:00", "23:00"), price=1200),
    ]
    stitched = stitcher.generate(legs, "CPT", "NBO")
    chains = [s for s in stitched if s.hub_chain]
    assert len(chains) == 1
    assert chains[0].hub_chain == ["JNB", "ADD"]
    assert chains[0].connection_airport == "JNB"
    assert chains[0].total_price == 4100
    assert len(chains[0].original_components) == 3


def test_generate_empty_input(stitcher):
    assert stitcher.generate([], "JNB", "CPT") == []


def test_stitch_keeps_provider_interline_transfer_points(stitcher, validator):
    # Provider-sold self-transfer at NBO with only one hour to re-check bags
    provider_interline = itin(
        seg("KQ", "761", "JNB", "NBO", "05:00", "09:00"),
        seg("ET", "309", "NBO", "ADD", "10:00", "12:00"),
        price=2500,
        separate_tickets=True,
        virtual_interline=True,
    )
    stitched = stitcher.stitch_two_routes(provider_interline, _add_to_cpt(dep="17:00", arr="23:00"))

    assert stitched is not None
    assert stitched.hub_chain == ["NBO", "ADD"]
    assert stitched.transfer_airports == {"NBO", "ADD"}
    verdict = validator.check_route(stitched)
    assert verdict.reason == RejectionReason.CONNECTION_TOO_SHORT
    assert "NBO" in verdict.detail
