"""Tests for file-based named cache stores."""

import httpx
import pytest

from mapsketch.offline.storage import CacheStorage, request_key


def get(url):
    return httpx.Request("GET", url)


class TestRequestKey:
    def test_method_and_url(self):
        assert request_key(get("https://app.example/a.js?v=1")) == "GET https://app.example/a.js?v=1"

    def test_fragment_ignored(self):
        assert request_key(get("https://app.example/#map")) == request_key(get("https://app.example/"))

    def test_headers_ignored(self):
        with_header = httpx.Request("GET", "https://app.example/", headers={"Accept": "text/html"})
        assert request_key(with_header) == request_key(get("https://app.example/"))


class TestCacheStore:
    @pytest.fixture
    def store(self, tmp_path):
        return CacheStorage(tmp_path).open("app-v1")

    @pytest.mark.asyncio
    async def test_put_and_match(self, store):
        request = get("https://app.example/app.js")
        await store.put(
            request,
            httpx.Response(200, content=b"console.log(1)", headers={"Content-Type": "text/javascript"}),
        )

        cached = await store.match(request)

        assert cached is not None
        assert cached.status_code == 200
        assert cached.content == b"console.log(1)"
        assert cached.headers["content-type"] == "text/javascript"

    @pytest.mark.asyncio
    async def test_miss(self, store):
        assert await store.match(get("https://app.example/nope.js")) is None

    @pytest.mark.asyncio
    async def test_put_overwrites(self, store):
        request = get("https://app.example/app.css")
        await store.put(request, httpx.Response(200, content=b"old"))
        await store.put(request, httpx.Response(200, content=b"new"))
        assert (await store.match(request)).content == b"new"
        assert store.keys() == ["GET https://app.example/app.css"]

    @pytest.mark.asyncio
    async def test_keys_in_insertion_order(self, store):
        for name in ("a", "b", "c"):
            await store.put(get(f"https://app.example/{name}.js"), httpx.Response(200))
        assert store.keys() == [
            "GET https://app.example/a.js",
            "GET https://app.example/b.js",
            "GET https://app.example/c.js",
        ]

    @pytest.mark.asyncio
    async def test_put_into_deleted_store_is_dropped(self, tmp_path):
        storage = CacheStorage(tmp_path)
        store = storage.open("app-v1")
        storage.delete("app-v1")

        await store.put(get("https://app.example/a.js"), httpx.Response(200, content=b"a"))

        assert storage.keys() == []
        assert await store.match(get("https://app.example/a.js")) is None

    @pytest.mark.asyncio
    async def test_add_all(self, store, network):
        await store.add_all(["https://app.example/index.html", "https://app.example/manifest.webmanifest"], network)
        assert len(store.keys()) == 2
        cached = await store.match(get("https://app.example/index.html"))
        assert cached.content == b"/index.html#1"

    @pytest.mark.asyncio
    async def test_add_all_is_all_or_nothing(self, store, network):
        network.status_code = 404
        with pytest.raises(httpx.HTTPStatusError):
            await store.add_all(["https://app.example/index.html"], network)
        assert store.keys() == []


class TestCacheStorage:
    def test_open_creates_store(self, tmp_path):
        storage = CacheStorage(tmp_path)
        storage.open("runtime-v1")
        assert storage.keys() == ["runtime-v1"]

    def test_open_without_create(self, tmp_path):
        storage = CacheStorage(tmp_path)
        store = storage.open("runtime-v1", create=False)
        assert store.keys() == []
        assert storage.keys() == []

    @pytest.mark.asyncio
    async def test_delete_store(self, tmp_path):
        storage = CacheStorage(tmp_path)
        store = storage.open("app-v0")
        await store.put(get("https://app.example/a.js"), httpx.Response(200))

        assert storage.delete("app-v0") is True
        assert storage.delete("app-v0") is False
        assert storage.keys() == []
