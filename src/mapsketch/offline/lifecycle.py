"""Versioned cache generations for the offline worker.

A generation owns two stores named after its version, ``app-<version>`` for
the shell and static assets and ``runtime-<version>`` for remote tiles.
Activating a generation deletes every other store, so storage never holds
more than one generation's data.
"""

import logging
from enum import Enum
from typing import Sequence
from urllib.parse import urljoin

import httpx

from mapsketch.offline.storage import CacheStorage, CacheStore, Fetch

logger = logging.getLogger(__name__)

SHELL = ("/index.html", "/manifest.webmanifest")


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INSTALLING = "installing"
    ACTIVE = "active"
    SUPERSEDED = "superseded"


class InstallError(Exception):
    """The shell could not be cached; the generation stays uninitialized."""


def app_cache_name(version: str) -> str:
    return f"app-{version}"


def runtime_cache_name(version: str) -> str:
    return f"runtime-{version}"


class CacheLifecycle:
    """Install/activate lifecycle of one cache generation.

    Only this class creates or deletes stores; other components get theirs
    from app_store() and runtime_store().
    """

    def __init__(
        self,
        storage: CacheStorage,
        version: str,
        origin: str,
        shell: Sequence[str] = SHELL,
    ):
        self.storage = storage
        self.version = version
        self.origin = origin
        self.shell = tuple(shell)
        self.state = LifecycleState.UNINITIALIZED
        self.skip_waiting = False
        self.clients_claimed = False

    @property
    def app_cache(self) -> str:
        return app_cache_name(self.version)

    @property
    def runtime_cache(self) -> str:
        return runtime_cache_name(self.version)

    def _open(self, name: str) -> CacheStore:
        # A superseded generation never recreates stores deleted on activation
        return self.storage.open(name, create=self.state is not LifecycleState.SUPERSEDED)

    def app_store(self) -> CacheStore:
        return self._open(self.app_cache)

    def runtime_store(self) -> CacheStore:
        return self._open(self.runtime_cache)

    async def install(self, fetch: Fetch) -> None:
        """Cache the shell documents and ask to take over immediately.

        Raises:
            InstallError: If any shell document cannot be fetched
        """
        self.state = LifecycleState.INSTALLING
        urls = [urljoin(self.origin, path) for path in self.shell]
        try:
            await self.app_store().add_all(urls, fetch)
        except httpx.HTTPError as e:
            self.state = LifecycleState.UNINITIALIZED
            raise InstallError(f"Failed to cache shell for {self.version}: {e}") from e

        self.skip_waiting = True
        logger.info("Installed cache generation %s", self.version)

    async def activate(self) -> list[str]:
        """Delete stores of other generations and claim all clients.

        Returns:
            Names of the deleted stores
        """
        current = {self.app_cache, self.runtime_cache}
        deleted = [name for name in self.storage.keys() if name not in current]
        for name in deleted:
            self.storage.delete(name)
            logger.info("Deleted stale cache %s", name)

        self.state = LifecycleState.ACTIVE
        self.clients_claimed = True
        return deleted

    def supersede(self) -> None:
        """Mark this generation as replaced by a newer one."""
        self.state = LifecycleState.SUPERSEDED
        self.clients_claimed = False
