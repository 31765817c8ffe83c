"""Tests for resolving airport codes through cache and upstream sources."""

import threading
import pytest
import sys
from pathlib import Path
from unittest.mock import Mock

sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.conftest import csv_session, make_response, offline_session
from shellport.acquisition import (
    CACHE_EXPIRY_HOURS,
    DEFAULT_KNOWN_AIRPORTS,
    AirportResolver,
    KnownAirport,
    merge_known_airports,
    normalize_code,
)
from shellport.cache import AirportCache
from shellport.errors import (
    InvalidCodeError,
    NotFoundError,
    ResolutionCancelled,
    UpstreamError,
)
from shellport.models import GeoPoint
from shellport.ourairports import OurAirportsClient
from shellport.overpass import OverpassClient

T0 = 1_700_000_000.0
HOUR = 3600


def overpass_session(*payloads):
    """Session answering successive POSTs with the given payloads."""
    session = Mock()
    session.post.side_effect = [make_response(p) for p in payloads]
    return session


def make_resolver(cache_dir, overpass=None, ourairports=None, clock=lambda: T0, **kwargs):
    return AirportResolver(
        cache=AirportCache(cache_dir, clock=clock),
        overpass=OverpassClient(session=overpass or offline_session()),
        ourairports=OurAirportsClient(session=ourairports or offline_session()),
        clock=clock,
        **kwargs,
    )


@pytest.mark.parametrize("raw,expected", [("kjfk", "KJFK"), (" EGLL ", "EGLL"), ("00CT", "00CT")])
def test_normalize_code(raw, expected):
    assert normalize_code(raw) == expected


@pytest.mark.parametrize("raw", ["ABC", "ABCDE", "", None, "K-FK"])
def test_invalid_codes_rejected(raw):
    with pytest.raises(InvalidCodeError):
        normalize_code(raw)


def test_known_airport_skips_aerodrome_lookup(temp_dir, jfk_features):
    """KJFK's centerpoint comes from the built-in table; only geometry is fetched."""
    session = overpass_session(jfk_features)
    resolver = make_resolver(temp_dir, overpass=session)

    record = resolver.resolve("KJFK")

    assert record.name == "John F. Kennedy International Airport"
    assert record.code == "KJFK"
    assert record.location == GeoPoint(40.6413, -73.7781)
    assert len(record.runways) == 2
    assert len(record.taxiways) == 1
    assert session.post.call_count == 1
    assert "out geom" in session.post.call_args.kwargs["data"]


def test_unknown_code_looks_up_aerodrome_first(temp_dir, jfk_features):
    aerodrome = {"elements": [{"type": "node", "lat": 40.64, "lon": -73.78, "tags": {"name": "Somewhere Intl"}}]}
    session = overpass_session(aerodrome, jfk_features)
    resolver = make_resolver(temp_dir, overpass=session)

    record = resolver.resolve("KSWX")

    assert record.name == "Somewhere Intl"
    assert record.location == GeoPoint(40.64, -73.78)
    assert session.post.call_count == 2


def test_missing_everywhere_is_not_found(temp_dir):
    """ZZZZ: no aerodrome in OSM and no row in OurAirports."""
    resolver = make_resolver(temp_dir, overpass=overpass_session({"elements": []}), ourairports=csv_session())

    with pytest.raises(NotFoundError) as excinfo:
        resolver.resolve("ZZZZ")
    assert excinfo.value.code == "ZZZZ"
    assert "ZZZZ" in str(excinfo.value)


def test_no_aerodrome_falls_back_to_bulk_dataset(temp_dir):
    resolver = make_resolver(temp_dir, overpass=overpass_session({"elements": []}), ourairports=csv_session())

    record = resolver.resolve("KXYZ")

    assert record.name == "Sample Field, North"
    assert record.taxiways == ()
    assert len(record.runways) == 2


def test_primary_transport_failure_falls_back_to_bulk_dataset(temp_dir, capsys):
    resolver = make_resolver(temp_dir, overpass=offline_session(), ourairports=csv_session())

    record = resolver.resolve("KXYZ")

    assert record.code == "KXYZ"
    assert "Warning" in capsys.readouterr().err


def test_primary_failure_without_bulk_match_raises_upstream_error(temp_dir):
    resolver = make_resolver(temp_dir, overpass=offline_session(), ourairports=csv_session())

    with pytest.raises(UpstreamError) as excinfo:
        resolver.resolve("ZZZZ")
    assert excinfo.value.source == "Overpass API"


def test_bulk_transport_failure_is_not_recovered(temp_dir):
    resolver = make_resolver(temp_dir, overpass=overpass_session({"elements": []}), ourairports=offline_session())

    with pytest.raises(UpstreamError) as excinfo:
        resolver.resolve("KXYZ")
    assert excinfo.value.source == "OurAirports"


def test_cached_record_survives_without_network(temp_dir, jfk_features):
    """Resolve once online, then again offline: the records are identical."""
    first = make_resolver(temp_dir, overpass=overpass_session(jfk_features)).resolve("KJFK")

    offline = make_resolver(temp_dir, clock=lambda: T0 + HOUR)
    second = offline.resolve("KJFK", allow_cache=True)

    assert second == first
    assert (temp_dir / "kjfk.json").exists()


def test_cache_lookup_ignores_code_case(temp_dir, jfk_features):
    make_resolver(temp_dir, overpass=overpass_session(jfk_features)).resolve("KJFK")
    assert make_resolver(temp_dir).resolve("kjfk").code == "KJFK"


def test_expired_entry_is_removed_and_refetched(temp_dir, jfk_features):
    make_resolver(temp_dir, overpass=overpass_session(jfk_features)).resolve("KJFK")

    later = T0 + (CACHE_EXPIRY_HOURS + 1) * HOUR
    stale = make_resolver(temp_dir, clock=lambda: later)

    # Offline and the entry is stale: the known centerpoint gets no geometry
    # and the bulk fallback is unreachable
    with pytest.raises(UpstreamError):
        stale.resolve("KJFK")
    assert not (temp_dir / "kjfk.json").exists()


def test_entry_just_inside_expiry_is_used(temp_dir, jfk_features):
    make_resolver(temp_dir, overpass=overpass_session(jfk_features)).resolve("KJFK")

    almost = T0 + CACHE_EXPIRY_HOURS * HOUR - 1
    record = make_resolver(temp_dir, clock=lambda: almost).resolve("KJFK")
    assert record.name == "John F. Kennedy International Airport"


def test_expired_entry_removed_even_when_lookup_fails(temp_dir, sample_record):
    cache = AirportCache(temp_dir, clock=lambda: T0)
    cache.set("KSMP", sample_record)

    resolver = make_resolver(
        temp_dir,
        overpass=overpass_session({"elements": []}),
        ourairports=csv_session(),
        clock=lambda: T0 + 25 * HOUR,
    )
    with pytest.raises(NotFoundError):
        resolver.resolve("KSMP")
    assert cache.get("KSMP") is None


def test_malformed_cache_entry_is_a_miss(temp_dir, jfk_features, capsys):
    (temp_dir / "kjfk.json").write_text('{"data": {"name": "broken"}, "timestamp": %f}' % T0)

    record = make_resolver(temp_dir, overpass=overpass_session(jfk_features)).resolve("KJFK")

    assert len(record.runways) == 2
    assert "malformed cache entry" in capsys.readouterr().err


def test_no_cache_neither_reads_nor_writes(temp_dir, jfk_features, sample_record):
    AirportCache(temp_dir, clock=lambda: T0).set("KJFK", sample_record)

    record = make_resolver(temp_dir, overpass=overpass_session(jfk_features)).resolve("KJFK", allow_cache=False)

    assert record.name == "John F. Kennedy International Airport"
    cached = AirportCache(temp_dir).get("KJFK")
    assert cached.data["name"] == "Sample Airport"


def test_injected_known_airports(temp_dir, jfk_features):
    session = overpass_session(jfk_features)
    resolver = make_resolver(
        temp_dir,
        overpass=session,
        known_airports={"test": {"name": "Test Field", "lat": 40.64, "lon": -73.78}},
    )

    assert "KJFK" not in resolver.known_airports
    record = resolver.resolve("TEST")

    assert record.name == "Test Field"
    assert session.post.call_count == 1


def test_merge_known_airports_extends_defaults():
    merged = merge_known_airports({"eham": {"name": "Schiphol", "lat": 52.3105, "lon": 4.7683}})

    assert merged["EHAM"] == KnownAirport("Schiphol", 52.3105, 4.7683)
    assert merged["KJFK"] == DEFAULT_KNOWN_AIRPORTS["KJFK"]
    with pytest.raises(TypeError):
        merged["XXXX"] = KnownAirport("x", 0, 0)


def test_cancelled_before_network(temp_dir):
    session = Mock()
    resolver = make_resolver(temp_dir, overpass=session)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(ResolutionCancelled):
        resolver.resolve("KJFK", cancel_event=cancel)
    session.post.assert_not_called()


def test_cancel_during_bulk_download_stops_resolution(temp_dir):
    """The token is checked again between the two bulk downloads."""
    cancel = threading.Event()
    bulk = csv_session()
    serve = bulk.get.side_effect

    def get(url, timeout=None):
        cancel.set()
        return serve(url, timeout=timeout)

    bulk.get.side_effect = get
    resolver = make_resolver(temp_dir, overpass=overpass_session({"elements": []}), ourairports=bulk)

    with pytest.raises(ResolutionCancelled):
        resolver.resolve("KXYZ", cancel_event=cancel)
    assert [c.args[0] for c in bulk.get.call_args_list] == [resolver.ourairports.airports_url]
    assert AirportCache(temp_dir).size() == 0


def test_cache_hit_ignores_cancellation(temp_dir, jfk_features):
    """A cached airport needs no network call, so nothing is cancelled."""
    make_resolver(temp_dir, overpass=overpass_session(jfk_features)).resolve("KJFK")
    cancel = threading.Event()
    cancel.set()

    assert make_resolver(temp_dir).resolve("KJFK", cancel_event=cancel).code == "KJFK"


def test_invalid_code_raises_before_any_lookup(temp_dir):
    session = Mock()
    with pytest.raises(InvalidCodeError):
        make_resolver(temp_dir, overpass=session).resolve("JFK")
    session.post.assert_not_called()
