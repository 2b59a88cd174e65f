"""Rewriting of upstream responses before they reach the browser.

Style documents are pointed back at the proxy and every embedded API key is
removed, so neither upstream URLs with credentials nor the key itself leak
to the client.
"""

import json
import re
from typing import Any

from mapsketch.proxy.classifier import ServiceRequest, ServiceType
from mapsketch.proxy.upstreams import PROXY_TILE_PATH

# Stops at the closing quote of a JSON string and at the next query param
KEY_PARAM_PATTERN = re.compile(r"[?&]key=[^\"&\\]*")


def redact_keys(text: str) -> str:
    """Remove every ?key=... and &key=... query fragment from text."""
    return KEY_PARAM_PATTERN.sub("", text)


def proxy_tiles_template(origin: str, collection: str) -> str:
    """Tile URL template that routes a collection's tiles through the proxy."""
    return f"{origin}?service=tiles&collection={collection}&path={PROXY_TILE_PATH}"


def rewrite_style(data: Any, service_request: ServiceRequest, origin: str) -> Any:
    """Point a style's tile source at the proxy and drop its initial view.

    Only tiles requests whose payload has a ``sources`` object are touched.
    The source's ``url`` is replaced by a ``tiles`` array, not kept
    alongside it. ``center`` and ``zoom`` are dropped so the map keeps its
    own view.
    """
    if service_request.service_type is not ServiceType.TILES:
        return data
    if not isinstance(data, dict) or not isinstance(data.get("sources"), dict):
        return data

    collection = service_request.collection_id
    source = data["sources"].get(collection)
    if isinstance(source, dict) and source.get("url"):
        source["tiles"] = [proxy_tiles_template(origin, collection)]
        del source["url"]

    data.pop("center", None)
    data.pop("zoom", None)
    return data


def is_json(content_type: str) -> bool:
    return "application/json" in content_type


def rewrite_body(
    content: bytes,
    content_type: str,
    service_request: ServiceRequest,
    origin: str,
) -> bytes:
    """Rewrite an upstream body for the client.

    Args:
        content: Raw upstream body
        content_type: Upstream Content-Type header value
        service_request: The classified request the body answers
        origin: Proxy origin used in rewritten tile URLs

    Returns:
        Redacted JSON, or the original bytes for non-JSON payloads
    """
    if not is_json(content_type):
        return content

    data = rewrite_style(json.loads(content), service_request, origin)
    text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return redact_keys(text).encode("utf-8")
