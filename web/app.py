"""
FastAPI application for the Shuma valuation support API.

Production deployment configuration via environment variables.
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shuma import __version__
from shuma.ingestion import (
    InMemoryFingerprintStore,
    IngestionRunRepository,
    JsonFileFingerprintStore,
)
from utils.config import Config
from web.api_routes import router as api_router


logger = logging.getLogger(__name__)


# =============================================================================
# Environment Configuration
# =============================================================================

IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

# CORS: explicit origins in production, localhost only in development
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]


def create_app(
    config: Optional[Config] = None,
    persist: bool = True,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application config (default: loaded from environment)
        persist: Store ingestion runs and fingerprints under config.data_dir;
            False keeps everything in memory

    Returns:
        Configured FastAPI app with repository and store on app.state
    """
    config = config or Config.load()

    app = FastAPI(
        title="Shuma Engine",
        description="Valuation support for Israeli residential appraisal",
        version=__version__,
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=config.debug and not IS_PRODUCTION,
    )

    # Healthchecks are registered first and perform no IO
    @app.get("/", include_in_schema=False)
    def root():
        """Root healthcheck. No dependencies, no IO."""
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        """Secondary health endpoint with version info."""
        return {
            "status": "healthy",
            "version": __version__,
            "environment": "production" if IS_PRODUCTION else "development",
        }

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.state.config = config
    if persist:
        app.state.ingestion_runs = IngestionRunRepository(persist_path=config.ingestion_runs_path)
        app.state.fingerprint_store = JsonFileFingerprintStore(config.fingerprint_store_path)
    else:
        app.state.ingestion_runs = IngestionRunRepository()
        app.state.fingerprint_store = InMemoryFingerprintStore()

    app.include_router(api_router)

    logger.info("Shuma Engine app created (data_dir=%s, persist=%s)", config.data_dir, persist)
    return app


# Create app instance for uvicorn
app = create_app()
