"""
Resolve an ICAO code to an AirportRecord.

Sources are tried in order: the on-disk cache, the built-in table of
well-known airports (for the centerpoint only), the Overpass API, and
finally the OurAirports CSV dataset.
"""

import sys
import threading
import time
from types import MappingProxyType
from typing import Any, Callable, Mapping, NamedTuple, Optional

from .cache import AirportCache
from .errors import InvalidCodeError, NotFoundError, UpstreamError, raise_if_cancelled
from .models import AirportRecord, GeoPoint
from .ourairports import OurAirportsClient
from .overpass import SEARCH_RADIUS_M, Aerodrome, OverpassClient, normalize_features

CACHE_EXPIRY_HOURS = 24


class KnownAirport(NamedTuple):
    name: str
    lat: float
    lon: float


# Centerpoints that skip the aerodrome lookup round trip
DEFAULT_KNOWN_AIRPORTS = MappingProxyType({
    'KJFK': KnownAirport('John F. Kennedy International Airport', 40.6413, -73.7781),
    'KLAX': KnownAirport('Los Angeles International Airport', 33.9425, -118.4081),
    'EGLL': KnownAirport('London Heathrow', 51.4700, -0.4543),
    'LFPG': KnownAirport('Paris Charles de Gaulle', 49.0097, 2.5479),
    'EDDF': KnownAirport('Frankfurt Airport', 50.0379, 8.5622),
    'RJTT': KnownAirport('Tokyo Haneda', 35.5494, 139.7798),
    'ZBAA': KnownAirport('Beijing Capital International', 40.0799, 116.6031),
    'YSSY': KnownAirport('Sydney Kingsford Smith', -33.9461, 151.1772),
    'KATL': KnownAirport('Hartsfield-Jackson Atlanta', 33.6407, -84.4277),
    'KORD': KnownAirport("Chicago O'Hare", 41.9742, -87.9073),
    'LHBP': KnownAirport('Budapest Ferenc Liszt International Airport', 47.4369, 19.2556),
})


def normalize_code(code: Optional[str]) -> str:
    """Upper-case and validate a 4-character ICAO code."""
    normalized = (code or '').strip().upper()
    if len(normalized) != 4 or not normalized.isalnum():
        raise InvalidCodeError(code)
    return normalized


def _known_airport(value: Any) -> KnownAirport:
    """Accept a KnownAirport or a ``{name, lat, lon}`` mapping from config."""
    if isinstance(value, KnownAirport):
        return value
    return KnownAirport(str(value['name']), float(value['lat']), float(value['lon']))


def merge_known_airports(extra: Optional[Mapping[str, Any]]) -> Mapping[str, KnownAirport]:
    """Built-in table extended (or overridden) by ``extra`` entries."""
    table = dict(DEFAULT_KNOWN_AIRPORTS)
    for code, value in (extra or {}).items():
        table[str(code).upper()] = _known_airport(value)
    return MappingProxyType(table)


class AirportResolver:
    """Resolves airport codes through the cache and the two upstream sources.

    All collaborators are injected so tests can swap any of them.
    """

    def __init__(self, cache: Optional[AirportCache] = None,
                 known_airports: Mapping[str, Any] = DEFAULT_KNOWN_AIRPORTS,
                 overpass: Optional[OverpassClient] = None,
                 ourairports: Optional[OurAirportsClient] = None,
                 search_radius_m: int = SEARCH_RADIUS_M,
                 clock: Callable[[], float] = time.time):
        self.cache = cache if cache is not None else AirportCache()
        self.known_airports = MappingProxyType(
            {str(code).upper(): _known_airport(value) for code, value in known_airports.items()}
        )
        self.overpass = overpass or OverpassClient()
        self.ourairports = ourairports or OurAirportsClient()
        self.search_radius_m = search_radius_m
        self.clock = clock

    def resolve(self, code: str, allow_cache: bool = True,
                cancel_event: Optional[threading.Event] = None) -> AirportRecord:
        """Return the airport record for ``code``.

        Args:
            code: ICAO identifier, any case
            allow_cache: Read from and write to the cache store
            cancel_event: Checked before every network call; once set the
                resolution stops with ResolutionCancelled

        Raises:
            InvalidCodeError, NotFoundError, UpstreamError, ResolutionCancelled
        """
        code = normalize_code(code)

        if allow_cache:
            cached = self._from_cache(code)
            if cached is not None:
                return cached

        record = self._fetch(code, cancel_event)

        if allow_cache:
            self.cache.set(code, record)
        return record

    def _from_cache(self, code: str) -> Optional[AirportRecord]:
        entry = self.cache.get(code)
        if entry is None:
            return None

        if self.clock() - entry.timestamp > CACHE_EXPIRY_HOURS * 3600:
            self.cache.remove(code)
            return None

        try:
            return AirportRecord.from_dict(entry.data)
        except (KeyError, TypeError, ValueError) as e:
            print(f"Warning: Discarding malformed cache entry for {code}: {e}", file=sys.stderr)
            self.cache.remove(code)
            return None

    def _locate(self, code: str, cancel_event: Optional[threading.Event]) -> Optional[Aerodrome]:
        known = self.known_airports.get(code)
        if known is not None:
            return Aerodrome(known.name, GeoPoint(known.lat, known.lon))
        raise_if_cancelled(cancel_event)
        return self.overpass.find_aerodrome(code)

    def _fetch(self, code: str, cancel_event: Optional[threading.Event]) -> AirportRecord:
        primary_error = None
        try:
            aerodrome = self._locate(code, cancel_event)
            if aerodrome is not None:
                raise_if_cancelled(cancel_event)
                elements = self.overpass.fetch_features(aerodrome.location, self.search_radius_m)
                runways, taxiways, bounds = normalize_features(elements, aerodrome.location)
                return AirportRecord(
                    name=aerodrome.name,
                    code=code,
                    location=aerodrome.location,
                    runways=runways,
                    taxiways=taxiways,
                    bounds=bounds,
                )
        except UpstreamError as e:
            print(f"Warning: {e}; trying {self.ourairports.source}", file=sys.stderr)
            primary_error = e

        record = self.ourairports.fetch_airport(code, cancel_event)
        if record is not None:
            return record
        if primary_error is not None:
            raise primary_error
        raise NotFoundError(code)
