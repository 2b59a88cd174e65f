"""Web Mercator / WGS84 coordinate helpers.

Bounding boxes reach the proxy without a declared CRS, so the projection is
guessed from coordinate magnitude.
"""

import math
from enum import Enum

EARTH_RADIUS = 6378137.0
ORIGIN_SHIFT = math.pi * EARTH_RADIUS  # 20037508.342789244

# Values above this cannot be degrees, so they are taken as Web Mercator metres
MERCATOR_THRESHOLD = 20000.0


class CRS(str, Enum):
    WEB_MERCATOR = "EPSG:3857"
    WGS84 = "EPSG:4326"


def guess_crs(x: float, y: float) -> CRS:
    """Guess the CRS of a coordinate pair from its magnitude.

    A pair is Web Mercator when either ordinate exceeds MERCATOR_THRESHOLD.
    NaN never exceeds it, so NaN input is reported as WGS84.
    """
    if abs(x) > MERCATOR_THRESHOLD or abs(y) > MERCATOR_THRESHOLD:
        return CRS.WEB_MERCATOR
    return CRS.WGS84


def web_mercator_to_lonlat(x: float, y: float) -> tuple[float, float]:
    """Convert EPSG:3857 metres to (longitude, latitude) in degrees.

    Northings far beyond the projection's extent saturate at latitude 90.
    """
    lon = (x / ORIGIN_SHIFT) * 180.0
    lat_rad = (y / ORIGIN_SHIFT) * math.pi
    try:
        lat = (2 * math.atan(math.exp(lat_rad)) - math.pi / 2) * (180.0 / math.pi)
    except OverflowError:
        lat = 90.0
    return lon, lat


def to_lonlat(x: float, y: float) -> tuple[float, float]:
    """Return (longitude, latitude) for a pair in either supported CRS."""
    if guess_crs(x, y) is CRS.WEB_MERCATOR:
        return web_mercator_to_lonlat(x, y)
    return x, y
