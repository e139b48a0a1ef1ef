"""
regions.py — Monitored administrative regions and nearest-region lookup.

The catalogue covers India's 28 states and 8 union territories. Each region
carries an approximate geographic centroid that is used for coordinate based
provider lookups and for resolving a user's GPS fix to a region.

Nearest-region lookup uses the Haversine great-circle distance:

    a = sin²(Δφ / 2) + cos(φ₁) · cos(φ₂) · sin²(Δλ / 2)
    d = 2 · R · asin(√a)

Centroids are coarse, so a point near a border can resolve to the
neighbouring region. That is acceptable for picking a default dashboard view.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

EARTH_RADIUS_KM: float = 6_371.0


@dataclass(frozen=True)
class Coordinate:
    """A geographic point in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError(
                f"Latitude must be in [-90, 90], got {self.latitude}"
            )
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError(
                f"Longitude must be in [-180, 180], got {self.longitude}"
            )


@dataclass(frozen=True)
class Region:
    """A monitored region. ``centroid`` is None for ad-hoc regions."""
    name: str
    centroid: Optional[Coordinate] = None


_STATE_CENTROIDS: List[Tuple[str, float, float]] = [
    # States
    ("Andhra Pradesh", 15.9129, 79.7400),
    ("Arunachal Pradesh", 28.2180, 94.7278),
    ("Assam", 26.2006, 92.9376),
    ("Bihar", 25.0961, 85.3131),
    ("Chhattisgarh", 21.2787, 81.8661),
    ("Goa", 15.2993, 74.1240),
    ("Gujarat", 22.2587, 71.1924),
    ("Haryana", 29.0588, 76.0856),
    ("Himachal Pradesh", 31.1048, 77.1734),
    ("Jharkhand", 23.6102, 85.2799),
    ("Karnataka", 15.3173, 75.7139),
    ("Kerala", 10.8505, 76.2711),
    ("Madhya Pradesh", 22.9734, 78.6569),
    ("Maharashtra", 19.7515, 75.7139),
    ("Manipur", 24.6637, 93.9063),
    ("Meghalaya", 25.4670, 91.3662),
    ("Mizoram", 23.1645, 92.9376),
    ("Nagaland", 26.1584, 94.5624),
    ("Odisha", 20.9517, 85.0985),
    ("Punjab", 31.1471, 75.3412),
    ("Rajasthan", 27.0238, 74.2179),
    ("Sikkim", 27.5330, 88.5122),
    ("Tamil Nadu", 11.1271, 78.6569),
    ("Telangana", 18.1124, 79.0193),
    ("Tripura", 23.9408, 91.9882),
    ("Uttar Pradesh", 26.8467, 80.9462),
    ("Uttarakhand", 30.0668, 79.0193),
    ("West Bengal", 22.9868, 87.8550),
    # Union territories
    ("Andaman and Nicobar Islands", 11.7401, 92.6586),
    ("Chandigarh", 30.7333, 76.7794),
    ("Dadra and Nagar Haveli and Daman and Diu", 20.3974, 72.8328),
    ("Delhi", 28.7041, 77.1025),
    ("Jammu and Kashmir", 33.7782, 76.5762),
    ("Ladakh", 34.1526, 77.5771),
    ("Lakshadweep", 10.5667, 72.6417),
    ("Puducherry", 11.9416, 79.8083),
]

STATE_COORDINATES: Dict[str, Coordinate] = {
    name: Coordinate(lat, lon) for name, lat, lon in _STATE_CENTROIDS
}

ALL_STATES: List[str] = [name for name, _, _ in _STATE_CENTROIDS]

MONITORED_REGIONS: Tuple[Region, ...] = tuple(
    Region(name=name, centroid=STATE_COORDINATES[name]) for name in ALL_STATES
)


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in km between two coordinates."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def find_nearest_state(latitude: float, longitude: float) -> Optional[str]:
    """
    Return the catalogue region whose centroid is closest to the point.

    Raises ValueError for coordinates outside the valid lat/lon range.

    >>> find_nearest_state(22.5726, 88.3639)   # Kolkata
    'West Bengal'
    """
    point = Coordinate(latitude, longitude)

    best_state: Optional[str] = None
    best_dist = math.inf
    for name, centroid in STATE_COORDINATES.items():
        dist = haversine_km(point, centroid)
        if dist < best_dist:
            best_dist = dist
            best_state = name
    return best_state
