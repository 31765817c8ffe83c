"""
Equirectangular projection of latitude/longitude onto character cells.
"""

import math
from typing import NamedTuple

from .models import BoundingBox

# Fraction of the extent added on each side so features never touch the edge
PADDING = 0.1

# Smallest extent (degrees) used for scaling; a single-point airport
# otherwise divides by zero
MIN_EXTENT = 1e-6

# Cells reserved around the drawable area (two on each side)
MARGIN = 2


class Point(NamedTuple):
    """A canvas cell: column ``x``, row ``y``."""

    x: int
    y: int


def round_half_up(value: float) -> int:
    """Round .5 away from the floor, unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


class Transform(NamedTuple):
    """Affine lat/lon → cell map for one canvas."""

    scale_lat: float
    scale_lon: float
    offset_lat: float
    offset_lon: float
    height: int

    def project(self, lat: float, lon: float) -> Point:
        """Map a coordinate to a cell. Rows grow southward."""
        x = round_half_up((lon - self.offset_lon) * self.scale_lon) + MARGIN
        y = self.height - round_half_up((lat - self.offset_lat) * self.scale_lat) - MARGIN
        return Point(x, y)


def make_transform(bounds: BoundingBox, canvas_width: int, canvas_height: int) -> Transform:
    """Build the transform that fits ``bounds`` plus padding into the canvas.

    Args:
        bounds: Geographic extent to display
        canvas_width: Canvas width in characters
        canvas_height: Canvas height in rows

    Zero-extent axes are clamped to MIN_EXTENT, so a lone point still lands
    on a fixed cell.
    """
    lat_range = max(bounds.lat_extent, MIN_EXTENT)
    lon_range = max(bounds.lon_extent, MIN_EXTENT)

    stretch = 1 + PADDING * 2
    return Transform(
        scale_lat=(canvas_height - MARGIN * 2) / (lat_range * stretch),
        scale_lon=(canvas_width - MARGIN * 2) / (lon_range * stretch),
        offset_lat=bounds.min_lat - lat_range * PADDING,
        offset_lon=bounds.min_lon - lon_range * PADDING,
        height=canvas_height,
    )
