"""Classification of inbound proxy requests by their query parameters."""

from enum import Enum
from typing import NamedTuple, Sequence

from mapsketch.proxy.upstreams import DEFAULT_COLLECTION

VALID_SERVICE_TYPES = ["tiles", "features", "lidar"]
MISSING_SERVICE = "Missing service parameter"
INVALID_SERVICE = "Invalid service type"
USAGE = "Add ?service=tiles, ?service=features, or ?service=lidar"

# Query keys the proxy consumes itself
CONTROL_KEYS = ("service", "collection", "path")


class ServiceType(str, Enum):
    TILES = "tiles"
    FEATURES = "features"
    LIDAR = "lidar"
    INVALID = "invalid"


class ServiceRequest(NamedTuple):
    """A classified proxy request.

    For tiles and features, passthrough_params excludes the control keys.
    For lidar it holds every original parameter; the LiDAR router decides
    what to forward. error is set only for INVALID requests.
    """

    service_type: ServiceType
    collection_id: str = DEFAULT_COLLECTION
    sub_path: str = ""
    passthrough_params: tuple[tuple[str, str], ...] = ()
    error: str | None = None


def _first(params: Sequence[tuple[str, str]], key: str) -> str | None:
    for k, v in params:
        if k == key:
            return v
    return None


def _has(params: Sequence[tuple[str, str]], *keys: str) -> bool:
    return any(k in keys for k, _ in params)


def classify_request(params: Sequence[tuple[str, str]]) -> ServiceRequest:
    """Decide which upstream service a request targets.

    Args:
        params: Query parameters as (key, value) pairs, in request order

    Returns:
        ServiceRequest; INVALID requests carry the error to report
    """
    params = list(params)
    service = _first(params, "service")

    # Anything carrying a WMS bounding box plus a service key is LiDAR,
    # even when the service value names another type.
    has_bbox = _has(params, "BBOX", "bbox")
    has_service_key = _has(params, "SERVICE", "service")
    if has_bbox and (service == "lidar" or has_service_key):
        return ServiceRequest(ServiceType.LIDAR, passthrough_params=tuple(params))

    if service is None:
        return ServiceRequest(ServiceType.INVALID, error=MISSING_SERVICE)

    if service == "lidar":
        return ServiceRequest(ServiceType.LIDAR, passthrough_params=tuple(params))

    if service not in (ServiceType.TILES.value, ServiceType.FEATURES.value):
        return ServiceRequest(ServiceType.INVALID, error=INVALID_SERVICE)

    return ServiceRequest(
        ServiceType(service),
        collection_id=_first(params, "collection") or DEFAULT_COLLECTION,
        sub_path=_first(params, "path") or "",
        passthrough_params=tuple((k, v) for k, v in params if k not in CONTROL_KEYS),
    )
