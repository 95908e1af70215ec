"""Great-circle helpers for radius queries.

Radius lookups run in two steps: a cheap latitude/longitude bounding box
that the database can filter on, then an exact haversine check in Python.
"""

from __future__ import annotations

import math
from typing import NamedTuple

EARTH_RADIUS_M = 6_371_000


class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


def haversine_distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance between two points in metres."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def bounding_box(lat: float, lng: float, radius_m: float) -> BoundingBox:
    """Smallest lat/lng box containing the circle of ``radius_m`` around a point.

    Does not wrap across the antimeridian; longitudes are clamped instead.
    """
    delta_lat = math.degrees(radius_m / EARTH_RADIUS_M)
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-9:
        delta_lng = 180.0
    else:
        delta_lng = min(180.0, math.degrees(radius_m / (EARTH_RADIUS_M * cos_lat)))

    return BoundingBox(
        min_lat=max(-90.0, lat - delta_lat),
        max_lat=min(90.0, lat + delta_lat),
        min_lng=max(-180.0, lng - delta_lng),
        max_lng=min(180.0, lng + delta_lng),
    )
