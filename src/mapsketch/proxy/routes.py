"""Edge proxy routes for the OS NGD APIs and regional LiDAR WMS.

Every request is classified, forwarded to the matching upstream with the
server-side API key, and rewritten so the key never reaches the client.
"""

import logging
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from mapsketch.config import get_api_key
from mapsketch.proxy.classifier import (
    MISSING_SERVICE,
    USAGE,
    VALID_SERVICE_TYPES,
    ServiceRequest,
    ServiceType,
    classify_request,
)
from mapsketch.proxy.errors import UpstreamError
from mapsketch.proxy.regions import resolve_region
from mapsketch.proxy.rewriter import redact_keys, rewrite_body
from mapsketch.proxy.upstreams import USER_AGENT, features_url, get_wms_config, tiles_url

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}
CACHE_CONTROL = "public, max-age=3600"


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Upstream HTTP client, one per request."""
    async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
        yield client


def error_response(status_code: int, error: str, **extra: object) -> JSONResponse:
    """Structured JSON error with CORS headers."""
    return JSONResponse({"error": error, **extra}, status_code=status_code, headers=CORS_HEADERS)


def preflight_response() -> Response:
    return Response(
        headers={
            **CORS_HEADERS,
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Max-Age": "86400",
        },
    )


def safe_message(exc: Exception, api_key: str) -> str:
    """Exception text with any credential removed."""
    message = redact_keys(str(exc))
    if api_key:
        message = message.replace(api_key, "")
    return message


def request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


async def forward_ngd_request(
    request: Request,
    service_request: ServiceRequest,
    client: httpx.AsyncClient,
    api_key: str,
) -> Response:
    """Forward a tiles or features request to OS NGD and rewrite the reply."""
    if service_request.service_type is ServiceType.TILES:
        target_url = tiles_url(service_request.collection_id, service_request.sub_path)
    else:
        target_url = features_url(service_request.sub_path)

    params = [("key", api_key), *service_request.passthrough_params]
    upstream_request = client.build_request(
        request.method,
        target_url,
        params=params,
        headers={"User-Agent": USER_AGENT, "Accept": "*/*"},
    )
    logger.info("Proxying request to: %s", redact_keys(str(upstream_request.url)))

    response = await client.send(upstream_request)
    if not response.is_success:
        raise UpstreamError(response.status_code)

    content_type = response.headers.get("content-type", "")
    body = rewrite_body(response.content, content_type, service_request, request_origin(request))

    return Response(
        content=body,
        status_code=response.status_code,
        media_type=content_type or None,
        headers={**CORS_HEADERS, "Cache-Control": CACHE_CONTROL},
    )


def build_wms_params(
    params: tuple[tuple[str, str], ...], layer_name: str
) -> list[tuple[str, str]]:
    """Outbound WMS query for a LiDAR request.

    Drops the proxy's own service=lidar marker, defaults SERVICE to WMS and
    forces LAYERS to the region's layer whatever the caller asked for.
    """
    wms_params = [
        (key, value)
        for key, value in params
        if not (key.lower() == "service" and value.lower() == "lidar")
    ]

    if not any(key in ("SERVICE", "service") for key, _ in wms_params):
        wms_params.append(("SERVICE", "WMS"))

    wms_params = [(key, value) for key, value in wms_params if key.lower() != "layers"]
    wms_params.append(("LAYERS", layer_name))
    return wms_params


async def handle_lidar_request(
    service_request: ServiceRequest, client: httpx.AsyncClient
) -> Response:
    """Route a WMS request to the LiDAR service covering its bounding box."""
    params = service_request.passthrough_params
    bbox = next((value for key, value in params if key in ("BBOX", "bbox")), None)
    region = resolve_region(bbox)
    wms_config = get_wms_config(region)

    try:
        wms_request = client.build_request(
            "GET",
            wms_config.base_url,
            params=build_wms_params(params, wms_config.layer_name),
            headers={"User-Agent": USER_AGENT},
        )
        logger.info("Proxying LiDAR request (%s) to: %s", region.value, wms_request.url)

        response = await client.send(wms_request)
        if not response.is_success:
            raise UpstreamError(response.status_code)
    except (httpx.HTTPError, UpstreamError) as e:
        logger.error("LiDAR WMS error: %s", e)
        return error_response(500, "LiDAR WMS request failed", message=str(e))

    return Response(
        content=response.content,
        status_code=response.status_code,
        media_type=response.headers.get("content-type", "image/png"),
        headers={**CORS_HEADERS, "Cache-Control": CACHE_CONTROL},
    )


@router.api_route("/{full_path:path}", methods=["GET", "POST", "OPTIONS"])
async def proxy(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    api_key: str = Depends(get_api_key),
) -> Response:
    """Single entry point of the edge proxy.

    All failures are turned into JSON responses here; nothing propagates to
    the ASGI server.
    """
    if request.method == "OPTIONS":
        return preflight_response()

    try:
        service_request = classify_request(request.query_params.multi_items())

        if service_request.service_type is ServiceType.INVALID:
            extra = {"usage": USAGE} if service_request.error == MISSING_SERVICE else {}
            return error_response(
                400, service_request.error, validTypes=VALID_SERVICE_TYPES, **extra
            )

        if service_request.service_type is ServiceType.LIDAR:
            return await handle_lidar_request(service_request, client)

        return await forward_ngd_request(request, service_request, client, api_key)

    except Exception as e:
        message = safe_message(e, api_key)
        logger.error("Proxy error: %s", message)
        return error_response(500, "Proxy request failed", message=message)
