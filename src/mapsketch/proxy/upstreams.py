"""Upstream endpoints for the OS NGD APIs and the regional LiDAR WMS."""

from typing import NamedTuple

from mapsketch.proxy.regions import DEFAULT_REGION, Region

# OS NGD
NGD_TILES_BASE = "https://api.os.uk/maps/vector/ngd/ota/v1"
NGD_FEATURES_BASE = "https://api.os.uk/features/ngd/ofa/v1"
DEFAULT_COLLECTION = "ngd-base"
DEFAULT_TILES_PATH = "styles/3857"
PROXY_TILE_PATH = "tiles/3857/{z}/{y}/{x}"

USER_AGENT = "MapSketch-Proxy/1.0"


class UpstreamConfig(NamedTuple):
    """WMS endpoint and layer serving one region."""

    base_url: str
    layer_name: str


EA_LIDAR_WMS = "https://environment.data.gov.uk/spatialdata/lidar-composite-digital-terrain-model-dtm-1m/wms"
EA_LIDAR_LAYER = "Lidar_Composite_Hillshade_DTM_1m"

# Only the Environment Agency composite is reliably public; the other regions
# use it until they get a WMS of their own.
LIDAR_UPSTREAMS: dict[Region, UpstreamConfig] = {
    Region.ENGLAND: UpstreamConfig(EA_LIDAR_WMS, EA_LIDAR_LAYER),
    Region.SCOTLAND: UpstreamConfig(EA_LIDAR_WMS, EA_LIDAR_LAYER),
    Region.WALES: UpstreamConfig(EA_LIDAR_WMS, EA_LIDAR_LAYER),
    Region.NORTHERN_IRELAND: UpstreamConfig(EA_LIDAR_WMS, EA_LIDAR_LAYER),
}


def get_wms_config(region: Region | str) -> UpstreamConfig:
    """Look up the WMS config for a region, falling back to England."""
    return LIDAR_UPSTREAMS.get(region, LIDAR_UPSTREAMS[DEFAULT_REGION])


def tiles_url(collection: str, path: str = "") -> str:
    """Build the OS NGD vector tiles URL for a collection resource."""
    return f"{NGD_TILES_BASE}/collections/{collection}/{path or DEFAULT_TILES_PATH}"


def features_url(path: str = "") -> str:
    """Build the OS NGD features URL for a resource path."""
    return f"{NGD_FEATURES_BASE}/{path}"
