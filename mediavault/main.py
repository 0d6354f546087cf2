from __future__ import annotations
import datetime as dt
import logging
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional
from fastapi import FastAPI, Request
from .blobstore import BlobStore
from .config import Settings, get_settings
from .db import Database
from .errors import register_exception_handlers
from .logging_config import setup_logging
from .models import utcnow
from .reaper import ReaperThread
from .routers.albums import router as albums_router
from .routers.locked import router as locked_router
from .routers.media import router as media_router
from .routers.storage import router as storage_router
from .routers.trash import router as trash_router
from .services import build_services

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    blob_store=None,
    clock: Callable[[], dt.datetime] = utcnow,
    start_reaper: Optional[bool] = None,
) -> FastAPI:
    """Build the application.

    Collaborators passed in are wired immediately (tests do this); anything
    missing is built from settings when the app starts.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        owned_db = None
        if getattr(app.state, "services", None) is None:
            owned_db = Database(settings.database_url, echo=settings.database_echo)
            owned_db.create_all()
            store = blob_store or BlobStore.from_settings(settings)
            app.state.services = build_services(settings, owned_db, store, clock=clock)
        run_reaper = settings.reaper_enabled if start_reaper is None else start_reaper
        reaper_thread = None
        if run_reaper:
            reaper_thread = ReaperThread(app.state.services.reaper, settings.reaper_interval_seconds)
            reaper_thread.start()
        logger.info(f"Starting {settings.app_name}")
        yield
        if reaper_thread is not None:
            reaper_thread.stop()
        if owned_db is not None:
            owned_db.dispose()
        logger.info(f"Stopped {settings.app_name}")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.services = None
    if database is not None and blob_store is not None:
        app.state.services = build_services(settings, database, blob_store, clock=clock)

    register_exception_handlers(app)
    app.include_router(media_router)
    app.include_router(albums_router)
    app.include_router(trash_router)
    app.include_router(locked_router)
    app.include_router(storage_router)

    @app.get("/ping")
    def ping():
        return {"status": "ok"}

    @app.get("/version")
    def version():
        """Return build/version information for the server."""
        return {
            "version": os.getenv("GIT_COMMIT", os.getenv("COMMIT", "unknown")),
            "build": os.getenv("BUILD_DATE", "unknown"),
        }

    @app.get("/healthz")
    def healthz(request: Request):
        """Run simple checks for the database and the blob store."""
        services = request.app.state.services
        db_status = "skipped"
        blob_status = "skipped"
        if services is not None:
            db_status = "ok" if services.database.ping() else "error"
            ping = getattr(services.blob_store, "ping", None)
            if ping is not None:
                blob_status = "ok" if ping() else "error"
        ok = db_status in ("ok", "skipped") and blob_status in ("ok", "skipped")
        return {
            "status": "ok" if ok else "error",
            "ok": ok,
            "db": db_status,
            "blobStore": blob_status,
            "serverTime": int(dt.datetime.now(dt.timezone.utc).timestamp() * 1_000_000),
        }

    return app


app = create_app()
