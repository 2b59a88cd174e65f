"""Host for the offline cache: owns the active generation and routes fetches.

OfflineTransport plugs the worker into any httpx.AsyncClient, so outbound
requests are intercepted without the caller knowing about the cache.
"""

import logging
from pathlib import Path

import httpx

from mapsketch.offline.dispatcher import TILE_HOST_SUFFIX, CacheDispatcher
from mapsketch.offline.lifecycle import SHELL, CacheLifecycle, LifecycleState
from mapsketch.offline.storage import CacheStorage, snapshot_headers

logger = logging.getLogger(__name__)


class OfflineWorker:
    """Runs install/activate for a cache version and answers intercepted fetches.

    Args:
        cache_dir: Root directory of the named cache stores
        client: HTTP client used for every network fetch
        version: Cache generation tag
        origin: Origin of the app, used to resolve shell paths
        tile_host_suffix: Host suffix of the remote tile server
    """

    def __init__(
        self,
        cache_dir: Path,
        client: httpx.AsyncClient,
        version: str,
        origin: str,
        tile_host_suffix: str = TILE_HOST_SUFFIX,
        shell: tuple[str, ...] = SHELL,
    ):
        self.storage = CacheStorage(cache_dir)
        self.client = client
        self.origin = origin
        self.tile_host_suffix = tile_host_suffix
        self.shell = shell
        self.lifecycle = CacheLifecycle(self.storage, version, origin, shell)
        self.dispatcher: CacheDispatcher | None = None

    async def _fetch(self, request: httpx.Request) -> httpx.Response:
        return await self.client.send(request)

    async def start(self) -> None:
        """Install and activate the configured generation."""
        await self.lifecycle.install(self._fetch)
        await self._activate(self.lifecycle)

    async def upgrade(self, version: str) -> None:
        """Replace the active generation with a new version.

        The old generation keeps serving if the new one fails to install.
        Requests still in flight on the old generation finish, but their
        writes to its deleted stores are dropped.
        """
        lifecycle = CacheLifecycle(self.storage, version, self.origin, self.shell)
        await lifecycle.install(self._fetch)

        previous = self.lifecycle
        if self.dispatcher is not None:
            await self.dispatcher.drain()
        await self._activate(lifecycle)
        previous.supersede()
        logger.info("Cache generation %s superseded by %s", previous.version, version)

    async def _activate(self, lifecycle: CacheLifecycle) -> None:
        await lifecycle.activate()
        self.lifecycle = lifecycle
        self.dispatcher = CacheDispatcher(lifecycle, self._fetch, self.tile_host_suffix)

    async def fetch(self, request: httpx.Request) -> httpx.Response | None:
        """Answer a fetch through the active generation.

        Returns None when the request is not intercepted (or nothing is active
        yet); the caller then goes to the network itself.
        """
        if self.dispatcher is None or self.lifecycle.state is not LifecycleState.ACTIVE:
            return None
        return await self.dispatcher.handle(request)

    async def drain(self) -> None:
        if self.dispatcher is not None:
            await self.dispatcher.drain()


class OfflineTransport(httpx.AsyncBaseTransport):
    """Transport that answers requests through an OfflineWorker.

    Requests the worker does not intercept go to the wrapped transport. The
    worker's own client must not use this transport, or its network fetches
    would loop back into the worker.
    """

    def __init__(
        self,
        worker: OfflineWorker,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.worker = worker
        self.transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        response = await self.worker.fetch(request)
        if response is None:
            return await self.transport.handle_async_request(request)

        # Body is already decoded, so the transfer headers no longer apply
        return httpx.Response(
            status_code=response.status_code,
            headers=snapshot_headers(response.headers),
            content=response.content,
        )

    async def aclose(self) -> None:
        await self.transport.aclose()
