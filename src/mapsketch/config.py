"""Runtime configuration for the shell server, the offline cache and the proxy."""

import json
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# Paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent
STATIC_DIR = Path(os.environ.get("MAPSKETCH_STATIC_DIR", BASE_DIR / "static"))
SECRETS_FILE = Path(os.environ.get("MAPSKETCH_SECRETS_FILE", BASE_DIR / "secrets.json"))

# Cache generation tag; bump to evict every store of the previous release
CACHE_VERSION = os.environ.get("MAPSKETCH_CACHE_VERSION", "v1.2.0")

# Servers
PORT = int(os.environ.get("PORT", "8080"))
PROXY_PORT = int(os.environ.get("PROXY_PORT", "8787"))
SSL_KEY = os.environ.get("SSL_KEY")
SSL_CERT = os.environ.get("SSL_CERT")

LOG_LEVEL = os.environ.get("MAPSKETCH_LOG_LEVEL", "info")

# Secrets loaded at startup
SECRETS: dict = {}


def load_secrets() -> None:
    """Load upstream credentials from secrets.json.

    The file maps a provider name to its auth params, e.g.
    ``{"os_ngd": {"key": "..."}}``. A missing or unreadable file leaves
    SECRETS empty.
    """
    global SECRETS
    if SECRETS_FILE.exists():
        try:
            SECRETS = json.loads(SECRETS_FILE.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load %s: %s", SECRETS_FILE.name, e)
            SECRETS = {}


load_secrets()


def get_api_key() -> str:
    """Return the OS NGD API key for upstream calls.

    The environment wins over secrets.json. Used as a FastAPI dependency so
    the credential is resolved per request.
    """
    key = os.environ.get("OS_NGD_API_KEY") or SECRETS.get("os_ngd", {}).get("key", "")
    if not key:
        logger.warning("No OS NGD API key configured; upstream calls will be unauthenticated")
    return key


def get_ssl_files() -> tuple[str, str] | None:
    """Return (keyfile, certfile) when both are configured and exist."""
    if SSL_KEY and SSL_CERT and Path(SSL_KEY).exists() and Path(SSL_CERT).exists():
        return SSL_KEY, SSL_CERT
    return None


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Send application logs to stdout at the given level."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
