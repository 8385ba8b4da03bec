"""
Geographic utility functions.

This module provides core geospatial calculations used by provider matching.
"""

from math import radians, cos, sin, asin, sqrt
from typing import NamedTuple

EARTH_RADIUS_KM = 6371.0

# 1 degree of latitude is roughly 111 km; used as a cheap planar approximation
KM_PER_DEGREE = 111.0


class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains_longitude(self, lng: float) -> bool:
        return self.min_lng <= lng <= self.max_lng


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great-circle distance between two points in kilometers using Haversine formula.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(min(1.0, sqrt(a)))
    return c * EARTH_RADIUS_KM


def bounding_box(lat: float, lon: float, radius_km: float) -> BoundingBox:
    """
    Square box of +/- (radius_km / 111) degrees around a point.

    Not corrected for longitude shrinking towards the poles; it is only a
    prefilter and the haversine check does the precise work.
    """
    offset = float(radius_km) / KM_PER_DEGREE
    return BoundingBox(
        min_lat=lat - offset,
        max_lat=lat + offset,
        min_lng=lon - offset,
        max_lng=lon + offset,
    )
