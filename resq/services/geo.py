"""
geo.py — Great-circle distance and coordinate checks.

EARTH_RADIUS_M is the radius MongoDB uses for spherical 2dsphere queries,
so distances computed here order results the same way $geoNear does.
"""

import math

EARTH_RADIUS_M = 6_378_100.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in metres between two lat/lng points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def coordinate_errors(lat, lng) -> list[str]:
    """Names of the coordinates that are missing, non-numeric or out of range."""
    bad = []
    if not _in_range(lat, 90):
        bad.append("lat")
    if not _in_range(lng, 180):
        bad.append("lng")
    return bad


def _in_range(value, bound: float) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and -bound <= value <= bound


def geo_point(lat: float, lng: float) -> dict:
    """GeoJSON Point for the 2dsphere index. GeoJSON order is [lng, lat]."""
    return {"type": "Point", "coordinates": [lng, lat]}
