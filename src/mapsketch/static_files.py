"""Static file serving for the app shell."""

import re

from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

IMMUTABLE_ASSET_PATTERN = re.compile(r"\.(css|js|png|jpg|svg|webp|ico|json)$")

SHELL_DOCUMENT = "index.html"


def cache_headers_for(path: str) -> dict[str, str]:
    """Response headers for a served file.

    The manifest and the worker script must be revalidated on every load;
    other versioned assets are cached for a year.
    """
    if path.endswith("manifest.webmanifest"):
        return {
            "Content-Type": "application/manifest+json",
            "Cache-Control": "no-cache",
        }
    if path.endswith("sw.js"):
        return {"Cache-Control": "no-cache"}
    if IMMUTABLE_ASSET_PATTERN.search(path):
        return {"Cache-Control": "public, max-age=31536000, immutable"}
    return {}


class ShellStaticFiles(StaticFiles):
    """StaticFiles with cache headers and a single-page-app fallback.

    Extension-less paths are tried as ``<path>.html``; any other GET that
    matches no file gets the shell document.
    """

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            response = await super().get_response(path, scope)
        except HTTPException as e:
            if e.status_code != 404 or scope["method"] != "GET":
                raise
            response = await self._fallback(path, scope)
            path = SHELL_DOCUMENT if response.status_code == 200 else path

        for name, value in cache_headers_for(path).items():
            response.headers[name] = value
        return response

    async def _fallback(self, path: str, scope: Scope) -> Response:
        if path and "." not in path.rsplit("/", 1)[-1]:
            try:
                return await super().get_response(f"{path}.html", scope)
            except HTTPException as e:
                if e.status_code != 404:
                    raise
        return await super().get_response(SHELL_DOCUMENT, scope)
