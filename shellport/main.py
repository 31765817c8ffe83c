#!/usr/bin/env python3

import copy
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import click
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from . import __version__
from .acquisition import AirportResolver, merge_known_airports, normalize_code
from .cache import AirportCache
from .errors import InvalidCodeError, ShellportError
from .map_renderer import render_airport
from .models import AirportRecord
from .ourairports import AIRPORTS_CSV_URL, RUNWAYS_CSV_URL, OurAirportsClient
from .overpass import DEFAULT_TIMEOUT, OVERPASS_URL, SEARCH_RADIUS_M, OverpassClient

DEFAULT_CONFIG: Dict[str, Any] = {
    "cache": {
        "enabled": True,
        "directory": "~/.local/.airportmap",
    },
    "sources": {
        "overpass_url": OVERPASS_URL,
        "airports_csv_url": AIRPORTS_CSV_URL,
        "runways_csv_url": RUNWAYS_CSV_URL,
        "search_radius_m": SEARCH_RADIUS_M,
        "timeout": DEFAULT_TIMEOUT,
    },
    "display": {
        "border": False,
        "title": False,
        "legend": False,
        "width": None,
        "height": None,
    },
    "known_airports": {},
}

# Canvas limits, matching what fits next to the info output
MAX_CANVAS_WIDTH = 150
MAX_CANVAS_HEIGHT = 40
MAX_TERMINAL_ROWS = 50
RESERVED_ROWS = 10


def parse_dimension(value: Union[str, int, None], terminal_size: int) -> Optional[int]:
    """Parse a map canvas dimension given as a number or percentage.

    Used for the --width/--height flags and the display section of the config.

    Args:
        value: Value like "100", 100, "80%", or None
        terminal_size: The terminal dimension to use for percentage calculation

    Returns:
        Parsed integer value or None
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    if text.endswith('%'):
        try:
            percentage = float(text[:-1])
        except ValueError:
            print(f"Warning: Invalid percentage for map size: {text}", file=sys.stderr)
            return None
        if not 0 < percentage <= 100:
            print(f"Warning: Map size percentage must be between 0 and 100, got {percentage}%", file=sys.stderr)
            return None
        return int(terminal_size * percentage / 100)

    try:
        size = int(text)
    except ValueError:
        print(f"Warning: Invalid map size: {text}", file=sys.stderr)
        return None
    if size <= 0:
        print(f"Warning: Map size must be positive, got {size}", file=sys.stderr)
        return None
    return size


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str = "shellport.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file, falling back to defaults."""
    config_file = Path(config_path)
    if not config_file.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_file, 'r') as f:
        user_config = yaml.safe_load(f) or {}
    if not isinstance(user_config, dict):
        print(f"Warning: Ignoring {config_path}: expected a mapping at the top level", file=sys.stderr)
        return copy.deepcopy(DEFAULT_CONFIG)
    return _merge(DEFAULT_CONFIG, user_config)


def build_cache(config: Dict[str, Any]) -> AirportCache:
    return AirportCache(config["cache"].get("directory"))


def build_resolver(config: Dict[str, Any]) -> AirportResolver:
    """Wire the resolver and its sources from configuration."""
    sources = config["sources"]
    timeout = sources.get("timeout")
    return AirportResolver(
        cache=build_cache(config),
        known_airports=merge_known_airports(config.get("known_airports")),
        overpass=OverpassClient(sources["overpass_url"], timeout=timeout),
        ourairports=OurAirportsClient(sources["airports_csv_url"], sources["runways_csv_url"], timeout=timeout),
        search_radius_m=int(sources.get("search_radius_m") or SEARCH_RADIUS_M),
    )


def terminal_dimensions() -> Tuple[int, int]:
    try:
        size = os.get_terminal_size()
        return size.columns, size.lines
    except OSError:
        return 120, 40


def canvas_size(width: Optional[int] = None, height: Optional[int] = None) -> Tuple[int, int]:
    """Canvas dimensions, derived from the terminal unless given."""
    term_width, term_height = terminal_dimensions()
    if width is None:
        width = min(term_width - 2, MAX_CANVAS_WIDTH)
    if height is None:
        height = min(min(term_height, MAX_TERMINAL_ROWS) - RESERVED_ROWS, MAX_CANVAS_HEIGHT)
    return max(width, 1), max(height, 1)


def render_runway_table(record: AirportRecord, console: Console) -> None:
    """Print runway name, surface and dimensions as a Rich table."""
    table = Table(title="Runway Information", box=box.ROUNDED)
    table.add_column("Runway", style="cyan")
    table.add_column("Surface", style="yellow")
    table.add_column("Width (m)", style="green", justify="right")
    table.add_column("Length (m)", style="green", justify="right")

    for runway in record.runways:
        table.add_row(
            runway.name,
            runway.surface or "Unknown surface",
            f"{runway.width:.0f}",
            f"{runway.length:.0f}" if runway.length else "-",
        )

    console.print(table)


def display_airport_map(code: str, resolver: AirportResolver, console: Console,
                        show_border: bool = False, show_runway_info: bool = False,
                        show_info: bool = False, show_title: bool = False,
                        show_legend: bool = False, use_cache: bool = True,
                        width: Optional[int] = None, height: Optional[int] = None) -> None:
    """Resolve an airport and print its diagram."""
    if show_info:
        console.print(f"Fetching airport data for {code}...")

    record = resolver.resolve(code, allow_cache=use_cache)

    if show_info:
        console.print(f"\nFound: {record.name}")
        console.print(f"Runways: {len(record.runways)}")
        console.print(f"Taxiways: {len(record.taxiways)}\n")

    canvas_width, canvas_height = canvas_size(width, height)
    print(render_airport(
        record,
        width=canvas_width,
        height=canvas_height,
        show_border=show_border,
        show_title=show_title,
        show_legend=show_legend,
    ))

    if show_runway_info and record.runways:
        print()
        render_runway_table(record, console)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument('code', required=False)
@click.option('--border', '-b', is_flag=True, help='Display border around the map')
@click.option('--runway-info', '-r', is_flag=True, help='Display runway information')
@click.option('--info', '-i', is_flag=True, help='Display airport info during fetch')
@click.option('--title', '-t', is_flag=True, help='Display airport title on map')
@click.option('--legend', '-l', is_flag=True, help='Display legend on map')
@click.option('--no-cache', '-n', is_flag=True, help='Bypass cache and fetch fresh data')
@click.option('--clear-cache', '-c', is_flag=True, help='Clear all cached airport data and exit')
@click.option('--width', help='Map width in characters (e.g., 80) or percentage of terminal (e.g., "80%")')
@click.option('--height', help='Map height in lines (e.g., 30) or percentage of terminal (e.g., "50%")')
@click.option('--config', default='shellport.yaml', help='Config file path')
@click.version_option(__version__, prog_name='shellport')
@click.pass_context
def main(ctx: click.Context, code: Optional[str], border: bool, runway_info: bool, info: bool,
         title: bool, legend: bool, no_cache: bool, clear_cache: bool,
         width: Optional[str], height: Optional[str], config: str):
    """Display airport diagrams in the terminal.

    CODE: 4-letter ICAO airport code (e.g., KJFK, EGLL)

    \b
    Examples:
      shellport KJFK              # Minimal airport map (runways/taxiways only)
      shellport EGLL --border     # With border
      shellport LFPG -i           # With airport info output
      shellport LHBP -tl          # With title and legend
      shellport KJFK -brilt       # All options enabled
    """
    config_data = load_config(config)

    if clear_cache:
        cache = build_cache(config_data)
        removed = cache.clear()
        print(f"Cache cleared. Removed {removed} cached airport(s).")
        return

    if not code:
        click.echo(ctx.get_help())
        return

    try:
        code = normalize_code(code)
    except InvalidCodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    display = config_data["display"]
    term_width, term_height = terminal_dimensions()
    map_width = parse_dimension(width, term_width) or parse_dimension(display.get("width"), term_width)
    map_height = parse_dimension(height, term_height) or parse_dimension(display.get("height"), term_height)

    try:
        display_airport_map(
            code,
            build_resolver(config_data),
            Console(),
            show_border=border or bool(display.get("border")),
            show_runway_info=runway_info,
            show_info=info,
            show_title=title or bool(display.get("title")),
            show_legend=legend or bool(display.get("legend")),
            use_cache=not no_cache and bool(config_data["cache"].get("enabled", True)),
            width=map_width,
            height=map_height,
        )
    except ShellportError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nExiting...", file=sys.stderr)
        sys.exit(130)


if __name__ == '__main__':
    main()
