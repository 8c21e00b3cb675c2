"""FastAPI application setup."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from ..run_state import get_run_state_registry
from ..schemas import HealthResponse
from .routes import chats, transcriptions

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop the run state sweeper with the app."""
    logger.info("Niblet assistant service starting...")
    registry = get_run_state_registry()
    await registry.start()

    yield

    logger.info("Niblet assistant service shutting down...")
    await registry.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Niblet Assistant Service",
        description="Assistant run orchestration for the Niblet nutrition chat",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chats.router, prefix="/chats", tags=["chats"])
    app.include_router(transcriptions.router, prefix="/transcriptions", tags=["transcriptions"])

    @app.get("/healthz", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse()

    return app


app = create_app()
