"""FastAPI application wiring."""
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from alignsync.config import FuzzyThresholds, PollConfig, get_db_file
from alignsync.routes import alignments_router, assets_router, settings_router
from alignsync.services import AlignmentApiClient, AlignmentSession, ApiError, MissingApiKeyError
from alignsync.state import AlignmentCache
from alignsync.storage import RecordStore, SettingsStore

from .middleware import RequestIdFilter, RequestLoggingMiddleware

_logger = logging.getLogger("alignsync")


def _setup_logger() -> None:
    """Configure the application logger once, whether or not uvicorn's CLI started us."""
    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s request_id=%(request_id)s %(message)s")
        )
        handler.addFilter(RequestIdFilter())
        _logger.addHandler(handler)
    _logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    _logger.propagate = False


def build_session(db_file: Optional[str] = None) -> AlignmentSession:
    """Build a session from environment configuration."""
    db_file = db_file or get_db_file()
    session = AlignmentSession(
        client=AlignmentApiClient(),
        cache=AlignmentCache(thresholds=FuzzyThresholds.from_env()),
        settings=SettingsStore(db_file),
        records=RecordStore(db_file),
        poll_config=PollConfig.from_env(),
    )
    session.load_api_key()
    return session


@asynccontextmanager
async def _lifespan(app: FastAPI):
    session: AlignmentSession = app.state.session
    await session.reload_assets()
    if session.authorized:
        try:
            await session.sync_from_api()
        except (ApiError, MissingApiKeyError, httpx.HTTPError) as exc:
            _logger.error("Initial task sync failed error=%s", exc)
    else:
        _logger.warning("No API key configured; set one via PUT /settings/api-key")
    try:
        yield
    finally:
        await session.client.aclose()


def create_app(session: Optional[AlignmentSession] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    _setup_logger()

    app = FastAPI(
        title="alignsync",
        description="Submit audio for lyric alignment, track jobs and pair them with demo assets",
        lifespan=_lifespan,
    )
    app.state.session = session or build_session()

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(settings_router)
    app.include_router(alignments_router)
    app.include_router(assets_router)

    return app


def start_api(host: Optional[str] = None, port: Optional[int] = None) -> None:
    host = host or os.getenv("HOST", "0.0.0.0")
    port = port or int(os.getenv("PORT", "8000"))
    app = create_app()
    _logger.info("Starting uvicorn host=%s port=%s", host, port)
    uvicorn.run(app, host=host, port=port)
