"""
Market Pull API — FastAPI application entry point.

Run with: uvicorn api.main:app --reload --port 8000
Set MARKET_PULL_CORS_ORIGINS (comma-separated) when the dashboard is served
from anywhere other than the local dev server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pipeline import JobManager, Settings
from .routers import market_pull

logger = logging.getLogger("marketpull.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """One JobManager per process; routes reach it through app.state."""
    logger.info("🚀 Starting Market Pull API...")
    app.state.job_manager = JobManager()
    yield
    logger.info("👋 Shutting down Market Pull API")


def create_app(settings: Settings = None) -> FastAPI:
    settings = settings or Settings.from_env()
    application = FastAPI(
        title="Market Pull",
        description="Google Maps market pull: listings, scraped and enriched emails, verified CSV export",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # The dashboard polls /status and opens the /stream EventSource cross-origin
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
        expose_headers=["Content-Disposition"],
    )

    application.include_router(market_pull.router, prefix="/api")

    @application.get("/api/health")
    async def health():
        return {"status": "ok", "service": "market-pull"}

    return application


app = create_app()
