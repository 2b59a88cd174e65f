"""FastAPI application serving the MapSketch shell and static assets."""

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from mapsketch import config
from mapsketch.static_files import ShellStaticFiles

logger = logging.getLogger(__name__)


def create_app(static_dir: Path = config.STATIC_DIR) -> FastAPI:
    """Build the shell server for a static directory."""
    app = FastAPI(
        title="MapSketch",
        description="Offline-capable sketch map shell",
    )

    # Gzip/deflate
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # Mount static files last so it catches every path
    app.mount("/", ShellStaticFiles(directory=static_dir, html=True, check_dir=False), name="static")
    return app


app = create_app()


def run() -> None:
    """Start the shell server, over HTTPS when SSL_KEY and SSL_CERT exist."""
    import uvicorn

    config.configure_logging()

    ssl_files = config.get_ssl_files()
    if ssl_files:
        keyfile, certfile = ssl_files
        logger.info("HTTPS on https://localhost:%d", config.PORT)
        uvicorn.run(
            "mapsketch.main:app",
            host="0.0.0.0",
            port=config.PORT,
            ssl_keyfile=keyfile,
            ssl_certfile=certfile,
        )
    else:
        logger.info("HTTP on http://localhost:%d", config.PORT)
        logger.info("Tip: set SSL_KEY & SSL_CERT env vars for HTTPS (PWA on mobile over LAN).")
        uvicorn.run("mapsketch.main:app", host="0.0.0.0", port=config.PORT)


if __name__ == "__main__":
    run()
