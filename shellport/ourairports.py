"""
OurAirports bulk dataset client.
Downloads the airports and runways CSV tables, finds an airport by code and
collects its open runways. The dataset has no taxiway geometry.
"""

import io
import threading
from typing import Dict, List, Optional

import pandas as pd
import requests

from .errors import UpstreamError, raise_if_cancelled
from .models import AirportRecord, BoundingBox, GeoPoint, Runway
from .overpass import DEFAULT_RUNWAY_WIDTH_M, DEFAULT_TIMEOUT

AIRPORTS_CSV_URL = 'https://davidmegginson.github.io/ourairports-data/airports.csv'
RUNWAYS_CSV_URL = 'https://davidmegginson.github.io/ourairports-data/runways.csv'

FEET_TO_METERS = 0.3048


def parse_csv(text: str) -> pd.DataFrame:
    """Parse a CSV document with a header row into a frame of strings.

    Quoted fields may contain commas; blank lines are skipped and empty
    cells stay ``''``.
    """
    return pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df.columns:
        return df[name]
    return pd.Series('', index=df.index, dtype=str)


def _float(value: Optional[str]) -> Optional[float]:
    if value is None or not str(value).strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None


def find_airport(airports: pd.DataFrame, code: str) -> Optional[Dict[str, str]]:
    """First airport row whose ``icao_code`` or ``ident`` equals ``code``."""
    matches = airports[(_column(airports, 'icao_code') == code) | (_column(airports, 'ident') == code)]
    if matches.empty:
        return None
    return matches.iloc[0].to_dict()


def collect_runways(runways: pd.DataFrame, ident: str) -> List[Runway]:
    """Open runways of the airport ``ident``, converted to meters.

    Runways missing a threshold coordinate cannot be drawn and are skipped.
    """
    rows = runways[(_column(runways, 'airport_ident') == ident) & (_column(runways, 'closed') != '1')]

    result = []
    for row in rows.to_dict('records'):
        le_lat, le_lon = _float(row.get('le_latitude_deg')), _float(row.get('le_longitude_deg'))
        he_lat, he_lon = _float(row.get('he_latitude_deg')), _float(row.get('he_longitude_deg'))
        if None in (le_lat, le_lon, he_lat, he_lon):
            continue

        width_ft = _float(row.get('width_ft'))
        length_ft = _float(row.get('length_ft'))
        surface = (row.get('surface') or '').strip().lower()
        result.append(Runway(
            name=f"{row.get('le_ident', '')}/{row.get('he_ident', '')}",
            p1=GeoPoint(le_lat, le_lon),
            p2=GeoPoint(he_lat, he_lon),
            width=width_ft * FEET_TO_METERS if width_ft else DEFAULT_RUNWAY_WIDTH_M,
            surface=surface or None,
            length=length_ft * FEET_TO_METERS if length_ft else None,
        ))
    return result


class OurAirportsClient:
    """Fetches the OurAirports CSV tables whole and filters them."""

    source = 'OurAirports'

    def __init__(self, airports_url: str = AIRPORTS_CSV_URL, runways_url: str = RUNWAYS_CSV_URL,
                 timeout: Optional[float] = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.airports_url = airports_url
        self.runways_url = runways_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _download(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamError(self.source, f"failed to fetch {url}: {e}") from e
        return response.text

    def _table(self, url: str) -> pd.DataFrame:
        text = self._download(url)
        try:
            return parse_csv(text)
        except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
            raise UpstreamError(self.source, f"unreadable CSV from {url}: {e}") from e

    def fetch_airport(self, code: str,
                      cancel_event: Optional[threading.Event] = None) -> Optional[AirportRecord]:
        """Build a record for ``code`` or return None if the dataset lacks it.

        ``cancel_event`` is checked before each download. Download failures
        raise UpstreamError.
        """
        raise_if_cancelled(cancel_event)
        airport = find_airport(self._table(self.airports_url), code)
        if airport is None:
            return None

        location = GeoPoint(
            _float(airport.get('latitude_deg')) or 0.0,
            _float(airport.get('longitude_deg')) or 0.0,
        )
        raise_if_cancelled(cancel_event)
        runways = collect_runways(self._table(self.runways_url), airport.get('ident', ''))

        bounds = BoundingBox.around(location)
        for runway in runways:
            bounds = bounds.expand(runway.p1).expand(runway.p2)

        return AirportRecord(
            name=airport.get('name') or code,
            code=airport.get('icao_code') or airport.get('ident') or code,
            location=location,
            runways=runways,
            taxiways=(),
            bounds=bounds,
        )
