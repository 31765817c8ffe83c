"""
OpenStreetMap client (Overpass API).
Looks up an aerodrome by ICAO code and pulls runway/taxiway ways around it.
Raw ``elements[]`` payloads are validated here and never leave this module.
"""

import re
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import requests

from .errors import UpstreamError
from .models import BoundingBox, GeoPoint, Runway, Taxiway

OVERPASS_URL = 'https://overpass-api.de/api/interpreter'
SEARCH_RADIUS_M = 5000
DEFAULT_TIMEOUT = 30

# Used when a runway way carries no usable width tag
DEFAULT_RUNWAY_WIDTH_M = 45.0

_LEADING_NUMBER = re.compile(r'^\s*([-+]?(?:\d+\.?\d*|\.\d+))')


class Aerodrome(NamedTuple):
    name: str
    location: GeoPoint


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _point(raw: Any) -> Optional[GeoPoint]:
    """Build a GeoPoint from a ``{lat, lon}`` mapping, or None if malformed."""
    if not isinstance(raw, dict):
        return None
    lat = _to_float(raw.get('lat'))
    lon = _to_float(raw.get('lon'))
    if lat is None or lon is None:
        return None
    return GeoPoint(lat, lon)


def element_center(element: Dict[str, Any]) -> Optional[GeoPoint]:
    """Location of a node (``lat/lon``) or a way (``center``)."""
    return _point(element) or _point(element.get('center'))


def element_vertices(element: Dict[str, Any]) -> List[GeoPoint]:
    """Valid ``geometry[]`` vertices of a way; malformed vertices are dropped."""
    geometry = element.get('geometry')
    if not isinstance(geometry, list):
        return []
    vertices = []
    for raw in geometry:
        point = _point(raw)
        if point is not None:
            vertices.append(point)
    return vertices


def parse_width(value: Any) -> float:
    """Parse an OSM ``width`` tag ("45", "45 m", "60.5") in meters."""
    if value is None:
        return DEFAULT_RUNWAY_WIDTH_M
    match = _LEADING_NUMBER.match(str(value))
    if not match:
        return DEFAULT_RUNWAY_WIDTH_M
    width = float(match.group(1))
    return width or DEFAULT_RUNWAY_WIDTH_M


def _tags(element: Dict[str, Any]) -> Dict[str, Any]:
    tags = element.get('tags')
    return tags if isinstance(tags, dict) else {}


def normalize_features(elements: List[Any], center: GeoPoint) -> Tuple[List[Runway], List[Taxiway], BoundingBox]:
    """Turn Overpass ways into runways, taxiways and their bounding box.

    The box starts at ``center`` and grows over every valid vertex seen,
    including ways that end up skipped. Ways with fewer than two vertices
    are skipped.
    """
    runways: List[Runway] = []
    taxiways: List[Taxiway] = []
    bounds = BoundingBox.around(center)

    for element in elements:
        if not isinstance(element, dict):
            continue
        tags = _tags(element)
        vertices = element_vertices(element)

        for vertex in vertices:
            bounds = bounds.expand(vertex)

        if len(vertices) < 2:
            continue

        aeroway = tags.get('aeroway')
        if aeroway == 'runway':
            surface = tags.get('surface')
            runways.append(Runway(
                name=str(tags.get('ref') or f"RW{len(runways) + 1}"),
                p1=vertices[0],
                p2=vertices[-1],
                width=parse_width(tags.get('width')),
                surface=str(surface) if surface else None,
            ))
        elif aeroway == 'taxiway':
            taxiways.append(Taxiway(
                name=str(tags.get('ref') or tags.get('name') or f"TX{len(taxiways) + 1}"),
                path=tuple(vertices),
            ))

    return runways, taxiways, bounds


def aerodrome_query(code: str) -> str:
    return f"""
    [out:json];
    (
      node["aeroway"="aerodrome"]["icao"="{code}"];
      way["aeroway"="aerodrome"]["icao"="{code}"];
    );
    out center;
    """


def features_query(center: GeoPoint, radius_m: int) -> str:
    return f"""
    [out:json];
    (
      way["aeroway"="runway"](around:{radius_m},{center.lat},{center.lon});
      way["aeroway"="taxiway"](around:{radius_m},{center.lat},{center.lon});
    );
    out geom;
    """


class OverpassClient:
    """Blocking Overpass API client with a per-request timeout."""

    source = 'Overpass API'

    def __init__(self, url: str = OVERPASS_URL, timeout: Optional[float] = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _query(self, query: str) -> List[Any]:
        try:
            response = self.session.post(self.url, data=query, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise UpstreamError(self.source, f"request failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(self.source, f"invalid JSON response: {e}") from e

        elements = payload.get('elements') if isinstance(payload, dict) else None
        if elements is None:
            return []
        if not isinstance(elements, list):
            raise UpstreamError(self.source, "'elements' is not a list")
        return elements

    def find_aerodrome(self, code: str) -> Optional[Aerodrome]:
        """Return the first aerodrome tagged with ``code`` that has a location."""
        for element in self._query(aerodrome_query(code)):
            if not isinstance(element, dict):
                continue
            location = element_center(element)
            if location is None:
                continue
            name = _tags(element).get('name') or code
            return Aerodrome(name=str(name), location=location)
        return None

    def fetch_features(self, center: GeoPoint, radius_m: int = SEARCH_RADIUS_M) -> List[Any]:
        """Raw runway and taxiway ways within ``radius_m`` of ``center``."""
        return self._query(features_query(center, radius_m))
