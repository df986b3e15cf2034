"""Offline reference readings for monitored locations.

Used whenever the weather provider is unreachable or no credential is
configured, so every location always resolves to a snapshot.
"""

from __future__ import annotations

from typing import TypedDict


class ReferenceReading(TypedDict):
    temperature: float
    humidity: float
    description: str
    aqi: int


DEFAULT_WIND_SPEED = 5.0

REFERENCE_READINGS: dict[str, ReferenceReading] = {
    "Delhi": {"temperature": 18, "humidity": 65, "description": "Hazy", "aqi": 285},
    "Mumbai": {"temperature": 28, "humidity": 75, "description": "Humid", "aqi": 95},
    "Bangalore": {"temperature": 24, "humidity": 60, "description": "Partly Cloudy", "aqi": 65},
    "Hyderabad": {"temperature": 26, "humidity": 55, "description": "Clear", "aqi": 110},
    "Chennai": {"temperature": 32, "humidity": 80, "description": "Hot", "aqi": 88},
    "Kolkata": {"temperature": 22, "humidity": 70, "description": "Cloudy", "aqi": 180},
    "Pune": {"temperature": 25, "humidity": 58, "description": "Pleasant", "aqi": 72},
    "Ahmedabad": {"temperature": 27, "humidity": 50, "description": "Clear", "aqi": 125},
}


def get_reference_reading(location: str, default_location: str = "Delhi") -> ReferenceReading:
    """Return the reference reading for a location (case-insensitive)."""
    for name, reading in REFERENCE_READINGS.items():
        if name.lower() == location.strip().lower():
            return reading
    return REFERENCE_READINGS.get(default_location, REFERENCE_READINGS["Delhi"])
