"""Shellport - Airport diagrams in the terminal"""

__version__ = "0.1.0"
__author__ = "Shellport Team"
__description__ = "Terminal tool that draws airport runway and taxiway diagrams from OpenStreetMap and OurAirports data"

# Import main entry point
from .main import main

__all__ = ['main']
