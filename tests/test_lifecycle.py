"""Tests for cache generation install/activate."""

import httpx
import pytest

from mapsketch.offline.lifecycle import (
    CacheLifecycle,
    InstallError,
    LifecycleState,
    app_cache_name,
    runtime_cache_name,
)
from mapsketch.offline.storage import CacheStorage

ORIGIN = "https://app.example"


@pytest.fixture
def storage(tmp_path):
    return CacheStorage(tmp_path)


def test_store_names():
    assert app_cache_name("v1") == "app-v1"
    assert runtime_cache_name("v1") == "runtime-v1"


class TestInstall:
    @pytest.mark.asyncio
    async def test_install_caches_shell(self, storage, network):
        lifecycle = CacheLifecycle(storage, "v1", ORIGIN)

        await lifecycle.install(network)

        assert lifecycle.state is LifecycleState.INSTALLING
        assert lifecycle.skip_waiting is True
        assert [str(r.url) for r in network.requests] == [
            "https://app.example/index.html",
            "https://app.example/manifest.webmanifest",
        ]
        store = lifecycle.app_store()
        assert await store.match(httpx.Request("GET", "https://app.example/index.html")) is not None
        assert len(store.keys()) == 2

    @pytest.mark.asyncio
    async def test_failed_install(self, storage, network):
        network.online = False
        lifecycle = CacheLifecycle(storage, "v1", ORIGIN)

        with pytest.raises(InstallError):
            await lifecycle.install(network)

        assert lifecycle.state is LifecycleState.UNINITIALIZED
        assert lifecycle.skip_waiting is False
        assert lifecycle.app_store().keys() == []


class TestActivate:
    @pytest.mark.asyncio
    async def test_only_current_generation_survives(self, storage):
        for name in ("app-v1", "runtime-v1", "app-v0", "runtime-v0", "unrelated-cache"):
            storage.open(name)
        lifecycle = CacheLifecycle(storage, "v1", ORIGIN)

        deleted = await lifecycle.activate()

        assert storage.keys() == ["app-v1", "runtime-v1"]
        assert sorted(deleted) == ["app-v0", "runtime-v0", "unrelated-cache"]
        assert lifecycle.state is LifecycleState.ACTIVE
        assert lifecycle.clients_claimed is True

    @pytest.mark.asyncio
    async def test_activate_keeps_installed_shell(self, storage, network):
        lifecycle = CacheLifecycle(storage, "v2", ORIGIN)
        await lifecycle.install(network)
        await lifecycle.activate()
        assert len(lifecycle.app_store().keys()) == 2

    def test_supersede(self, storage):
        lifecycle = CacheLifecycle(storage, "v1", ORIGIN)
        lifecycle.supersede()
        assert lifecycle.state is LifecycleState.SUPERSEDED
        assert lifecycle.clients_claimed is False

    @pytest.mark.asyncio
    async def test_superseded_generation_does_not_recreate_stores(self, storage, network):
        old = CacheLifecycle(storage, "v1", ORIGIN)
        await old.install(network)
        await old.activate()
        new = CacheLifecycle(storage, "v2", ORIGIN)
        await new.install(network)
        await new.activate()
        old.supersede()

        old.app_store()
        old.runtime_store()

        assert storage.keys() == ["app-v2"]
