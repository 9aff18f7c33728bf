from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import bridge as bridge_api
from .api import health
from .config import settings
from .core.bridge import get_bridge_status_tracker
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    tracker = get_bridge_status_tracker()
    if settings.bridge_tracking_enabled:
        await tracker.start()
    try:
        yield
    finally:
        await tracker.shutdown()


app = FastAPI(
    title="Bridgewatch API",
    description="Cross-chain bridge quote ranking and transaction status tracking",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(health.router, tags=["Health"])
app.include_router(bridge_api.router, tags=["Bridge"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Bridgewatch API",
        "version": __version__,
        "description": "Cross-chain bridge quote ranking and transaction status tracking",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bridgewatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
