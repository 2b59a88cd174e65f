"""FastAPI application for the OS NGD / LiDAR edge proxy."""

from fastapi import FastAPI

from mapsketch import config
from mapsketch.proxy import routes

# Create app
app = FastAPI(
    title="MapSketch API Proxy",
    description="Keyed proxy for OS NGD tiles/features and regional LiDAR WMS",
)

app.include_router(routes.router, tags=["proxy"])


def run() -> None:
    """Start the proxy under uvicorn."""
    import uvicorn

    config.configure_logging()
    uvicorn.run("mapsketch.proxy.main:app", host="0.0.0.0", port=config.PROXY_PORT)


if __name__ == "__main__":
    run()
