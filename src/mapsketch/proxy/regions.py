"""UK region detection for LiDAR requests."""

import logging
from enum import Enum

from mapsketch.proxy.geo import to_lonlat

logger = logging.getLogger(__name__)


class Region(str, Enum):
    """UK regions, listed in detection precedence (england is the fallback)."""

    SCOTLAND = "scotland"
    WALES = "wales"
    NORTHERN_IRELAND = "northern_ireland"
    ENGLAND = "england"


DEFAULT_REGION = Region.ENGLAND


def parse_bbox(bbox: str) -> tuple[float, float, float, float] | None:
    """Parse "minX,minY,maxX,maxY" into four floats, or None if malformed."""
    parts = bbox.split(",")
    if len(parts) != 4:
        return None
    try:
        min_x, min_y, max_x, max_y = (float(part) for part in parts)
    except ValueError:
        return None
    return min_x, min_y, max_x, max_y


def classify_point(lon: float, lat: float) -> Region:
    """Classify a WGS84 point. Rules are checked in order; first match wins.

    Scotland is decided on latitude alone, so it shadows any Welsh or
    Northern Irish box whose center lies north of 55.3.
    """
    if lat > 55.3:
        return Region.SCOTLAND
    if lon < -2.5 and 51.3 < lat < 53.5:
        return Region.WALES
    if lon < -5.5 and 54.0 < lat < 55.5:
        return Region.NORTHERN_IRELAND
    return Region.ENGLAND


def resolve_region(bbox: str | None) -> Region:
    """Resolve the region of a WMS BBOX string from its center point.

    Missing or malformed boxes resolve to DEFAULT_REGION.
    """
    if not bbox:
        return DEFAULT_REGION

    coords = parse_bbox(bbox)
    if coords is None:
        return DEFAULT_REGION

    min_x, min_y, max_x, max_y = coords
    lon, lat = to_lonlat((min_x + max_x) / 2, (min_y + max_y) / 2)

    region = classify_point(lon, lat)
    logger.debug("Region detection: lon=%.2f, lat=%.2f -> %s", lon, lat, region.value)
    return region
