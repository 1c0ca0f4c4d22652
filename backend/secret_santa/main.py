"""Secret Santa API - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map SantaError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and identity client initialized on startup, closed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: cleaner startup/shutdown pairing
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from secret_santa.api.error_handlers import register_error_handlers
from secret_santa.api.routes import draws, health, matches
from secret_santa.config import get_settings
from secret_santa.infrastructure.database import init_db
from secret_santa.infrastructure.identity_client import init_identity
from secret_santa.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    identity = init_identity(
        settings.identity_url,
        settings.identity_service_key,
        redirect_to=settings.invite_redirect_url,
        max_retries=settings.identity_max_retries,
        base_delay_ms=settings.identity_base_delay_ms,
        max_delay_ms=settings.identity_max_delay_ms,
        timeout_seconds=settings.identity_timeout_seconds,
        page_size=settings.identity_page_size,
    )
    logger.info("Secret Santa API started")
    yield
    logger.info("Secret Santa API shutting down")
    await identity.aclose()
    await db.dispose()


app = FastAPI(
    title="Secret Santa API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(draws.router)
app.include_router(matches.router)

register_error_handlers(app)
