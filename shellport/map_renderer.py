#!/usr/bin/env python3
"""
Unicode airport diagram renderer.
Draws runways as box-drawing lines, taxiways as dotted traces and overlays
title, runway labels and a legend on a fixed-size character grid.
"""

import math
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .models import AirportRecord, Runway, Taxiway
from .projection import Point, Transform, make_transform, round_half_up

# Line glyphs picked from the dominant direction of a segment
LINE_GLYPHS = {
    'horizontal': '━',
    'vertical': '┃',
    'falling': '╲',   # steps agree in sign: down-right or up-left
    'rising': '╱',    # steps disagree: up-right or down-left
}

RUNWAY_GLYPH = '═'
RUNWAY_END = '◆'
TAXIWAY_GLYPH = '·'
TERMINAL_GLYPH = '⊕'

# Map boundary characters
MAP_BORDERS = {
    'horizontal': '─',
    'vertical': '│',
    'top_left': '┌',
    'top_right': '┐',
    'bottom_left': '└',
    'bottom_right': '┘',
}

LEGEND = f'{RUNWAY_END} Runway  {TAXIWAY_GLYPH} Taxiway  {TERMINAL_GLYPH} Terminal'

MAX_RUNWAY_LABELS = 5
RUNWAY_LABEL_WIDTH = 10
RUNWAY_LABEL_COLUMN = 12   # counted from the right edge


class RenderOptions(NamedTuple):
    show_border: bool = False
    show_title: bool = False
    show_legend: bool = False


class Canvas:
    """A height x width grid of single-cell strings.

    Writes outside the grid are dropped, so callers never need to clip.
    """

    def __init__(self, width: int, height: int):
        if width < 1 or height < 1:
            raise ValueError(f"Canvas must be at least 1x1, got {width}x{height}")
        self.width = width
        self.height = height
        self.cells = [[' ' for _ in range(width)] for _ in range(height)]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def put(self, x: int, y: int, glyph: str) -> None:
        if self.in_bounds(x, y):
            self.cells[y][x] = glyph

    def write_text(self, x: int, y: int, text: str) -> None:
        """Write ``text`` left to right starting at (x, y)."""
        for i, char in enumerate(text):
            self.put(x + i, y, char)

    def rows(self) -> List[str]:
        return [''.join(row) for row in self.cells]

    def to_text(self, show_border: bool = False) -> str:
        """Serialize the grid, optionally framed."""
        if not show_border:
            return '\n'.join(self.rows())

        lines = [MAP_BORDERS['top_left'] + MAP_BORDERS['horizontal'] * self.width + MAP_BORDERS['top_right']]
        for row in self.rows():
            lines.append(MAP_BORDERS['vertical'] + row + MAP_BORDERS['vertical'])
        lines.append(MAP_BORDERS['bottom_left'] + MAP_BORDERS['horizontal'] * self.width + MAP_BORDERS['bottom_right'])
        return '\n'.join(lines)


def line_glyph(dx: int, dy: int, sx: int, sy: int, base_glyph: str) -> str:
    """Pick the glyph for a segment from its absolute spans and step signs."""
    if dx == 0 and dy == 0:
        return base_glyph
    if dx > dy * 2:
        return LINE_GLYPHS['horizontal']
    if dy > dx * 2:
        return LINE_GLYPHS['vertical']
    if sx == sy:
        return LINE_GLYPHS['falling']
    return LINE_GLYPHS['rising']


def clip_parameters(p1: Point, p2: Point, x_min: float, y_min: float,
                    x_max: float, y_max: float) -> Optional[Tuple[float, float]]:
    """Liang-Barsky clip of the segment p1 -> p2 against a rectangle.

    Returns the ``(t0, t1)`` fractions of the segment that lie inside, or
    None when it misses the rectangle entirely.
    """
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, p1.x - x_min), (dx, x_max - p1.x),
                 (-dy, p1.y - y_min), (dy, y_max - p1.y)):
        if p == 0:
            if q < 0:
                return None
            continue
        r = q / p
        if p < 0:
            if r > t1:
                return None
            t0 = max(t0, r)
        else:
            if r < t0:
                return None
            t1 = min(t1, r)
    return t0, t1


def draw_segment(canvas: Canvas, p1: Point, p2: Point, base_glyph: str = RUNWAY_GLYPH) -> None:
    """Draw a straight line between two cells with a Bresenham walk.

    The glyph depends on the segment direction; ``base_glyph`` is only used
    when both ends fall on the same cell. Segments leaving the canvas are
    clipped first, so the walk never visits off-canvas cells.
    """
    dx = abs(p2.x - p1.x)
    dy = abs(p2.y - p1.y)
    sx = 1 if p1.x < p2.x else -1
    sy = 1 if p1.y < p2.y else -1
    glyph = line_glyph(dx, dy, sx, sy, base_glyph)

    if not (canvas.in_bounds(p1.x, p1.y) and canvas.in_bounds(p2.x, p2.y)):
        clipped = clip_parameters(p1, p2, 0, 0, canvas.width - 1, canvas.height - 1)
        if clipped is None:
            return
        t0, t1 = clipped
        start = Point(round_half_up(p1.x + (p2.x - p1.x) * t0), round_half_up(p1.y + (p2.y - p1.y) * t0))
        end = Point(round_half_up(p1.x + (p2.x - p1.x) * t1), round_half_up(p1.y + (p2.y - p1.y) * t1))
        p1, p2 = start, end
        dx = abs(p2.x - p1.x)
        dy = abs(p2.y - p1.y)
        sx = 1 if p1.x < p2.x else -1
        sy = 1 if p1.y < p2.y else -1

    err = dx - dy
    x, y = p1.x, p1.y
    while True:
        canvas.put(x, y, glyph)
        if x == p2.x and y == p2.y:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x += sx
        if e2 < dx:
            err += dx
            y += sy


def draw_polyline(canvas: Canvas, points: Sequence[Point], glyph: str = TAXIWAY_GLYPH) -> None:
    """Draw a dotted trace through ``points``, marking every other step.

    Fewer than two points draws nothing. Steps are counted from the start of
    each leg even when only part of the leg is on the canvas.
    """
    if len(points) < 2:
        return

    for p1, p2 in zip(points, points[1:]):
        dx = p2.x - p1.x
        dy = p2.y - p1.y
        steps = max(abs(dx), abs(dy))
        if steps == 0:
            canvas.put(p1.x, p1.y, glyph)
            continue

        # Interpolated positions within half a cell of the edge still round onto it
        clipped = clip_parameters(p1, p2, -0.5, -0.5, canvas.width - 0.5, canvas.height - 0.5)
        if clipped is None:
            continue
        first = max(0, math.floor(clipped[0] * steps) - 1)
        last = min(steps, math.ceil(clipped[1] * steps) + 1)
        for j in range(first - first % 2, last + 1, 2):
            x = round_half_up(p1.x + dx * j / steps)
            y = round_half_up(p1.y + dy * j / steps)
            canvas.put(x, y, glyph)


def draw_runway(canvas: Canvas, transform: Transform, runway: Runway) -> None:
    p1 = transform.project(runway.p1.lat, runway.p1.lon)
    p2 = transform.project(runway.p2.lat, runway.p2.lon)
    draw_segment(canvas, p1, p2, RUNWAY_GLYPH)
    # Threshold markers go on top of the line
    canvas.put(p1.x, p1.y, RUNWAY_END)
    canvas.put(p2.x, p2.y, RUNWAY_END)


def draw_taxiway(canvas: Canvas, transform: Transform, taxiway: Taxiway) -> None:
    points = [transform.project(p.lat, p.lon) for p in taxiway.path]
    draw_polyline(canvas, points, TAXIWAY_GLYPH)


def composite(canvas: Canvas, record: AirportRecord, options: RenderOptions = RenderOptions()) -> str:
    """Overlay title, runway labels and legend, then serialize.

    Labels overwrite whatever geometry is underneath them.
    """
    if options.show_title:
        title = f"{record.name} ({record.code})"
        title_x = max(0, (canvas.width - len(title)) // 2)
        canvas.write_text(title_x, 0, title)

        label_y = 2
        for runway in record.runways[:MAX_RUNWAY_LABELS]:
            if label_y >= canvas.height - 2:
                break
            label = runway.name[:RUNWAY_LABEL_WIDTH]
            canvas.write_text(canvas.width - RUNWAY_LABEL_COLUMN, label_y, label)
            label_y += 1

    if options.show_legend:
        canvas.write_text(0, canvas.height - 2, LEGEND)

    return canvas.to_text(options.show_border)


class AirportRenderer:
    """Renders an AirportRecord as a Unicode diagram."""

    def __init__(self, width: int = 120, height: int = 40):
        """Initialize renderer with dimensions.

        Args:
            width: Canvas width in characters (border excluded)
            height: Canvas height in rows (border excluded)
        """
        self.width = width
        self.height = height

    def render(self, record: AirportRecord, options: RenderOptions = RenderOptions()) -> str:
        """Project, rasterize and composite one airport on a fresh canvas."""
        canvas = Canvas(self.width, self.height)
        transform = make_transform(record.bounds, self.width, self.height)

        # Later features win shared cells: taxiways, runways, then terminal
        for taxiway in record.taxiways:
            draw_taxiway(canvas, transform, taxiway)
        for runway in record.runways:
            draw_runway(canvas, transform, runway)

        terminal = transform.project(record.location.lat, record.location.lon)
        canvas.put(terminal.x, terminal.y, TERMINAL_GLYPH)

        return composite(canvas, record, options)


def render_airport(record: AirportRecord, width: int = 120, height: int = 40,
                   show_border: bool = False, show_title: bool = False,
                   show_legend: bool = False) -> str:
    """Convenience function to render an airport diagram."""
    renderer = AirportRenderer(width, height)
    return renderer.render(record, RenderOptions(show_border, show_title, show_legend))
