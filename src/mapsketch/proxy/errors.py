"""Proxy error types."""


class ProxyError(Exception):
    """Base class for failures while serving a proxy request."""


class UpstreamError(ProxyError):
    """The upstream answered with a non-success status."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Upstream returned {status_code}")
