"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from src.api import receipts, settings as settings_api
from src.config import get_settings
from src.database import SessionLocal, init_db
from src.logging_config import configure_logging
from src.services.config_store import ConfigStore
from src.services.extraction import get_extraction_client
from src.services.form_submission import SubmissionClient
from src.services.ledger import Ledger

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the form configuration and set up the receipt ledger."""
    configure_logging(settings.log_level)
    init_db()

    config_store = ConfigStore(SessionLocal)
    config_store.load()

    extraction_client = get_extraction_client(settings)
    if not extraction_client.is_configured:
        logger.warning(f"Extraction backend '{settings.extraction_backend}' is not configured")

    app.state.config_store = config_store
    app.state.extraction_client = extraction_client
    app.state.ledger = Ledger(
        config_store,
        extraction_client=extraction_client,
        submission_client=SubmissionClient(timeout=settings.submission_timeout),
    )
    yield
    await app.state.ledger.aclose()


app = FastAPI(
    title="PayTrack API",
    description="Receipt capture with AI field extraction and Google Form submission",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Register routers
app.include_router(receipts.router)
app.include_router(settings_api.router)


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    extraction_client = getattr(request.app.state, "extraction_client", None)
    return {
        "status": "healthy",
        "environment": settings.environment,
        "extraction_backend": settings.extraction_backend,
        "extraction_configured": bool(extraction_client and extraction_client.is_configured),
    }
