"""Caching strategies for requests intercepted by the offline worker.

- navigation (``/`` and ``*/index.html``): network-first, so the shell is
  never served stale while online
- remote tiles (host suffix match): stale-while-revalidate
- static assets (fixed extension list): cache-first

Everything else is left to the network untouched.
"""

import asyncio
import logging
import re
from enum import Enum

import httpx

from mapsketch.offline.lifecycle import CacheLifecycle
from mapsketch.offline.storage import CacheStore, Fetch

logger = logging.getLogger(__name__)

STATIC_ASSET_PATTERN = re.compile(r"\.(css|js|png|jpg|svg|webp|ico|json)$")
TILE_HOST_SUFFIX = "tile.openstreetmap.org"


class RequestKind(str, Enum):
    NAVIGATION = "navigation"
    STATIC_ASSET = "static_asset"
    TILE = "tile"


def network_error_response(request: httpx.Request) -> httpx.Response:
    """Generic failure returned when neither network nor cache can answer."""
    return httpx.Response(503, text="Offline and not cached", request=request)


class CacheDispatcher:
    """Routes each intercepted request to its caching strategy."""

    def __init__(
        self,
        lifecycle: CacheLifecycle,
        fetch: Fetch,
        tile_host_suffix: str = TILE_HOST_SUFFIX,
    ):
        self.lifecycle = lifecycle
        self.fetch = fetch
        self.tile_host_suffix = tile_host_suffix
        self._background: set[asyncio.Task] = set()

    def classify(self, request: httpx.Request) -> RequestKind | None:
        """Pick the strategy for a request, or None to leave it alone.

        Tiles are matched before static assets since tile URLs end in .png.
        """
        if request.method != "GET":
            return None

        path = request.url.path
        if path == "/" or path.endswith("/index.html"):
            return RequestKind.NAVIGATION
        if request.url.host.endswith(self.tile_host_suffix):
            return RequestKind.TILE
        if STATIC_ASSET_PATTERN.search(path):
            return RequestKind.STATIC_ASSET
        return None

    async def handle(self, request: httpx.Request) -> httpx.Response | None:
        """Answer an intercepted request. Returns None when not intercepted."""
        kind = self.classify(request)
        if kind is RequestKind.NAVIGATION:
            return await self.network_first(request)
        if kind is RequestKind.TILE:
            return await self.stale_while_revalidate(request)
        if kind is RequestKind.STATIC_ASSET:
            return await self.cache_first(request)
        return None

    async def network_first(self, request: httpx.Request) -> httpx.Response:
        store = self.lifecycle.app_store()
        fresh_request = httpx.Request(
            request.method,
            request.url,
            headers={**request.headers, "Cache-Control": "no-store"},
        )
        try:
            response = await self.fetch(fresh_request)
        except httpx.RequestError as e:
            logger.info("Network unavailable for %s: %s", request.url, e)
            cached = await store.match(request)
            return cached if cached is not None else network_error_response(request)

        if response.is_success:
            await store.put(request, response)
        return response

    async def cache_first(self, request: httpx.Request) -> httpx.Response:
        store = self.lifecycle.app_store()
        cached = await store.match(request)
        if cached is not None:
            return cached

        response = await self.fetch(request)
        if response.is_success:
            await store.put(request, response)
        return response

    async def stale_while_revalidate(self, request: httpx.Request) -> httpx.Response:
        store = self.lifecycle.runtime_store()
        cached = await store.match(request)

        revalidation = self.spawn(self._revalidate(store, request, cached))
        if cached is None:
            return await revalidation

        # The stored copy is already settled, so it wins the race; the
        # revalidation keeps running and still updates the store.
        return cached

    async def _revalidate(
        self,
        store: CacheStore,
        request: httpx.Request,
        cached: httpx.Response | None,
    ) -> httpx.Response:
        try:
            response = await self.fetch(request)
        except httpx.RequestError:
            if cached is None:
                raise
            return cached

        if response.is_success:
            await store.put(request, response)
        return response

    def spawn(self, coro) -> asyncio.Task:
        """Run coro as a tracked background task."""
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait until every background revalidation has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
