"""File-based named cache stores for the offline worker.

Each store is a directory under the storage root; each entry is a body file
plus a JSON metadata file named after a hash of the request identity.
Directory structure: root/{store_name}/{digest}.body + {digest}.meta
"""

import hashlib
import json
import logging
import shutil
import time
from pathlib import Path
from typing import Awaitable, Callable, Iterable, NamedTuple

import httpx

logger = logging.getLogger(__name__)

Fetch = Callable[[httpx.Request], Awaitable[httpx.Response]]


def request_key(request: httpx.Request) -> str:
    """Identity of a request in a store: method plus URL without fragment.

    Vary headers are ignored.
    """
    url = str(request.url).split("#", 1)[0]
    return f"{request.method.upper()} {url}"


def snapshot_headers(headers: httpx.Headers) -> dict[str, str]:
    """Headers of a response with those describing the original transfer removed."""
    return {
        k: v
        for k, v in headers.items()
        if k.lower() not in ("content-encoding", "content-length", "transfer-encoding")
    }


class CachedResponse(NamedTuple):
    """Stored response snapshot."""

    content: bytes
    status_code: int
    headers: dict[str, str]
    key: str
    cached_at: float

    def to_response(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code=self.status_code,
            headers=self.headers,
            content=self.content,
            request=request,
        )


class CacheStore:
    """One named store of request -> response snapshots."""

    def __init__(self, name: str, directory: Path):
        self.name = name
        self.directory = directory

    def _get_paths(self, request: httpx.Request) -> tuple[Path, Path]:
        digest = hashlib.sha256(request_key(request).encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.body", self.directory / f"{digest}.meta"

    def _read(self, request: httpx.Request) -> CachedResponse | None:
        body_path, meta_path = self._get_paths(request)

        # Metadata is written last, so an entry without it is incomplete
        if not meta_path.exists():
            return None

        try:
            meta = json.loads(meta_path.read_text())
            content = body_path.read_bytes()
        except (json.JSONDecodeError, OSError):
            return None

        return CachedResponse(
            content=content,
            status_code=meta["status_code"],
            headers=meta.get("headers", {}),
            key=meta["key"],
            cached_at=meta["cached_at"],
        )

    async def match(self, request: httpx.Request) -> httpx.Response | None:
        """Return the stored response for request, or None."""
        cached = self._read(request)
        if cached is None:
            return None
        return cached.to_response(request)

    async def put(self, request: httpx.Request, response: httpx.Response) -> None:
        """Store a snapshot of response, overwriting any previous entry.

        A store deleted while the response was in flight stays deleted and
        the write is dropped.
        """
        if not self.directory.is_dir():
            logger.info("Store %s was deleted, not caching %s", self.name, request.url)
            return

        body_path, meta_path = self._get_paths(request)
        body_path.write_bytes(response.content)
        meta = {
            "key": request_key(request),
            "status_code": response.status_code,
            "headers": snapshot_headers(response.headers),
            "cached_at": time.time(),
        }
        meta_path.write_text(json.dumps(meta))

    async def add_all(self, urls: Iterable[str], fetch: Fetch) -> None:
        """Fetch every URL and store the responses, all or nothing.

        Raises:
            httpx.HTTPStatusError: If any response is not successful; nothing
                is stored in that case
            httpx.RequestError: If any fetch fails
        """
        fetched = []
        for url in urls:
            request = httpx.Request("GET", url)
            response = await fetch(request)
            response.raise_for_status()
            fetched.append((request, response))

        for request, response in fetched:
            await self.put(request, response)

    def keys(self) -> list[str]:
        """Request identities in this store, oldest insertion first."""
        entries = []
        for meta_path in self.directory.glob("*.meta"):
            try:
                meta = json.loads(meta_path.read_text())
            except (json.JSONDecodeError, OSError):
                continue
            entries.append((meta["cached_at"], meta["key"]))
        return [key for _, key in sorted(entries)]


class CacheStorage:
    """Registry of named cache stores under one root directory."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def open(self, name: str, create: bool = True) -> CacheStore:
        """Open a store, creating it unless create is False."""
        directory = self.root / name
        if create:
            directory.mkdir(parents=True, exist_ok=True)
        return CacheStore(name, directory)

    def keys(self) -> list[str]:
        """Names of all existing stores."""
        if not self.root.exists():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def delete(self, name: str) -> bool:
        """Delete a whole store. Returns whether it existed."""
        store_dir = self.root / name
        if not store_dir.is_dir():
            return False
        shutil.rmtree(store_dir)
        return True
