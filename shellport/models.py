"""
Data shapes for airport geometry.

Records are frozen so a resolved airport can be handed to the renderer
and the cache without either side mutating it.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoPoint":
        return cls(lat=float(data["lat"]), lon=float(data["lon"]))


@dataclass(frozen=True)
class BoundingBox:
    """Geographic extent of an airport.

    A zero-extent box (a single point) is valid; the projector clamps it.
    """

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def __post_init__(self):
        if self.min_lat > self.max_lat or self.min_lon > self.max_lon:
            raise ValueError(f"Inverted bounding box: {self}")

    @classmethod
    def around(cls, point: GeoPoint) -> "BoundingBox":
        """Zero-extent box sitting on a single point."""
        return cls(point.lat, point.lat, point.lon, point.lon)

    def expand(self, point: GeoPoint) -> "BoundingBox":
        """Return a box grown to include ``point``."""
        return BoundingBox(
            min(self.min_lat, point.lat),
            max(self.max_lat, point.lat),
            min(self.min_lon, point.lon),
            max(self.max_lon, point.lon),
        )

    @property
    def lat_extent(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def lon_extent(self) -> float:
        return self.max_lon - self.min_lon

    def to_dict(self) -> Dict[str, float]:
        return {
            "min_lat": self.min_lat,
            "max_lat": self.max_lat,
            "min_lon": self.min_lon,
            "max_lon": self.max_lon,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoundingBox":
        return cls(
            float(data["min_lat"]),
            float(data["max_lat"]),
            float(data["min_lon"]),
            float(data["max_lon"]),
        )


@dataclass(frozen=True)
class Runway:
    """A runway as a straight segment between its two thresholds.

    Width and length are in meters and only used for display.
    """

    name: str
    p1: GeoPoint
    p2: GeoPoint
    width: float
    surface: Optional[str] = None
    length: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "p1": self.p1.to_dict(),
            "p2": self.p2.to_dict(),
            "width": self.width,
            "surface": self.surface,
            "length": self.length,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Runway":
        length = data.get("length")
        return cls(
            name=str(data["name"]),
            p1=GeoPoint.from_dict(data["p1"]),
            p2=GeoPoint.from_dict(data["p2"]),
            width=float(data["width"]),
            surface=data.get("surface"),
            length=float(length) if length is not None else None,
        )


@dataclass(frozen=True)
class Taxiway:
    """A taxiway centerline as an ordered polyline."""

    name: str
    path: Tuple[GeoPoint, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "path", tuple(self.path))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "path": [p.to_dict() for p in self.path]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Taxiway":
        return cls(
            name=str(data["name"]),
            path=tuple(GeoPoint.from_dict(p) for p in data.get("path", [])),
        )


@dataclass(frozen=True)
class AirportRecord:
    """Everything the renderer needs to draw one airport."""

    name: str
    code: str
    location: GeoPoint
    runways: Tuple[Runway, ...] = ()
    taxiways: Tuple[Taxiway, ...] = ()
    bounds: Optional[BoundingBox] = None

    def __post_init__(self):
        # Lists coming from callers are frozen into tuples
        object.__setattr__(self, "runways", tuple(self.runways))
        object.__setattr__(self, "taxiways", tuple(self.taxiways))
        if self.bounds is None:
            object.__setattr__(self, "bounds", BoundingBox.around(self.location))

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation used by the cache."""
        return {
            "name": self.name,
            "code": self.code,
            "location": self.location.to_dict(),
            "runways": [r.to_dict() for r in self.runways],
            "taxiways": [t.to_dict() for t in self.taxiways],
            "bounds": self.bounds.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AirportRecord":
        return cls(
            name=str(data["name"]),
            code=str(data["code"]),
            location=GeoPoint.from_dict(data["location"]),
            runways=tuple(Runway.from_dict(r) for r in data.get("runways", [])),
            taxiways=tuple(Taxiway.from_dict(t) for t in data.get("taxiways", [])),
            bounds=BoundingBox.from_dict(data["bounds"]),
        )
