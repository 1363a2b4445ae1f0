from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt

"""
Geospatial helpers.

Proximity checks and place clustering only ever need point-to-point distances at
city scale, so a plain haversine implementation is all we carry here.
"""

EARTH_RADIUS_M = 6_371_000


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def distance_m(lat_a: float, lon_a: float, lat_b: float, lon_b: float) -> float:
    """Great-circle distance in meters between two coordinates.

    Inputs are not validated; callers must make sure both samples exist and are in range.
    """
    lat1 = radians(lat_a)
    lat2 = radians(lat_b)

    dlat = lat2 - lat1
    dlon = radians(lon_b) - radians(lon_a)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(sqrt(h))


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    return distance_m(a.lat, a.lon, b.lat, b.lon)
