"""Pytest configuration and shared fixtures for Shellport tests."""

import pytest
import sys
import tempfile
from pathlib import Path
from unittest.mock import Mock

import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from shellport.models import AirportRecord, BoundingBox, GeoPoint, Runway, Taxiway


AIRPORTS_CSV = '''"id","ident","type","name","latitude_deg","longitude_deg","elevation_ft","continent","iso_country","iso_region","municipality","scheduled_service","icao_code","iata_code","gps_code","local_code","home_link","wikipedia_link","keywords"
3622,"KXYZ","small_airport","Sample Field, North",41.5,-72.5,100,"NA","US","US-CT","Sampleton","no","KXYZ","","KXYZ","","","",""
3700,"00CT","heliport","Hospital Pad",41.2,-72.9,50,"NA","US","US-CT","Elsewhere","no","","","00CT","","","",""

4001,"EXMP","medium_airport","Example International",52.0,5.0,10,"EU","NL","NL-NH","Example","yes","EXMP","EXP","EXMP","","","","airport, example"
'''

RUNWAYS_CSV = '''"id","airport_ref","airport_ident","length_ft","width_ft","surface","lighted","closed","le_ident","le_latitude_deg","le_longitude_deg","le_elevation_ft","le_heading_degT","le_displaced_threshold_ft","he_ident","he_latitude_deg","he_longitude_deg","he_elevation_ft","he_heading_degT","he_displaced_threshold_ft"
1,3622,"KXYZ",5000,100,"ASP",1,0,"02",41.49,-72.51,100,20,,"20",41.51,-72.49,100,200,
2,3622,"KXYZ",3000,,"TURF",0,0,"09",41.5,-72.52,,,,"27",41.5,-72.48,,,
3,3622,"KXYZ",2000,50,"GRASS",0,1,"15",41.505,-72.505,,,,"33",41.495,-72.495,,,
4,3622,"KXYZ",2000,50,"ASP",0,0,"18",,,,,,"36",,,,,
5,4001,"EXMP",10000,150,"CON",1,0,"18",52.01,5.0,,,,"36",51.99,5.0,,,
'''


JFK_FEATURES = {
    "elements": [
        {
            "type": "way",
            "id": 1,
            "tags": {"aeroway": "runway", "ref": "04L/22R", "width": "61", "surface": "asphalt"},
            "geometry": [{"lat": 40.6222, "lon": -73.7857}, {"lat": 40.6506, "lon": -73.7629}],
        },
        {
            "type": "way",
            "id": 2,
            "tags": {"aeroway": "runway", "ref": "13R/31L"},
            "geometry": [
                {"lat": 40.6484, "lon": -73.8165},
                {"lat": 40.6390, "lon": -73.7940},
                {"lat": 40.6296, "lon": -73.7713},
            ],
        },
        {
            "type": "way",
            "id": 3,
            "tags": {"aeroway": "taxiway", "ref": "A"},
            "geometry": [
                {"lat": 40.6300, "lon": -73.7800},
                {"lat": 40.6350, "lon": -73.7750},
                {"lat": 40.6400, "lon": -73.7700},
            ],
        },
        {
            "type": "way",
            "id": 4,
            "tags": {"aeroway": "taxiway", "name": "Bravo"},
            "geometry": [{"lat": 40.6600, "lon": -73.8300}],
        },
    ]
}


def make_response(json_data=None, text='', status_code=200):
    """Build a fake requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = json_data if json_data is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        response.raise_for_status.return_value = None
    return response


def offline_session():
    """A session whose every request fails like a missing network."""
    session = Mock()
    session.post.side_effect = requests.ConnectionError("network unreachable")
    session.get.side_effect = requests.ConnectionError("network unreachable")
    return session


def csv_session(airports_text=AIRPORTS_CSV, runways_text=RUNWAYS_CSV):
    """A session serving the OurAirports tables by URL."""
    session = Mock()

    def get(url, timeout=None):
        if url.endswith('airports.csv'):
            return make_response(text=airports_text)
        if url.endswith('runways.csv'):
            return make_response(text=runways_text)
        return make_response(status_code=404)

    session.get.side_effect = get
    return session


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def jfk_features():
    return JFK_FEATURES


@pytest.fixture
def sample_record():
    """A small airport with one runway and one taxiway."""
    location = GeoPoint(40.05, -73.05)
    runway = Runway("09/27", GeoPoint(40.0, -73.1), GeoPoint(40.0, -73.0), 45.0, "asphalt", 3000.0)
    taxiway = Taxiway("A", (GeoPoint(40.08, -73.1), GeoPoint(40.08, -73.0)))
    bounds = BoundingBox(40.0, 40.08, -73.1, -73.0)
    return AirportRecord("Sample Airport", "KSMP", location, (runway,), (taxiway,), bounds)
