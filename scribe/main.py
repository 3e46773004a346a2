from contextlib import asynccontextmanager
from typing import Final

from fastapi import FastAPI
from sqlalchemy.engine import make_url

from .application.deletion_queue import DeletionQueue
from .application.history_service import make_commit_delete
from .application.pending_delete import PendingDeleteStore
from .application.restore_registry import RestoreRegistry
from .application.transcription_feed import TranscriptionFeed
from .config import Settings, settings
from .infrastructure.database.database import (
    create_engine_for,
    create_session_factory,
    init_async_db,
)
from .logging_config import get_logger, setup_logging
from .logging_utils import log_system_info
from .middleware import log_requests_middleware
from .presentation.api_routes import api_router
from .presentation.error_handlers import register_error_handlers
from .telemetry import setup_telemetry


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application around one pending-delete store."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        logger = get_logger(__name__)

        engine = create_engine_for(app_settings)
        await init_async_db(engine)
        session_factory = create_session_factory(engine)
        logger.info("Async database initialized successfully")

        registry = RestoreRegistry()
        queue = DeletionQueue(make_commit_delete(session_factory))
        store = PendingDeleteStore(
            queue, registry, undo_timeout_ms=app_settings.undo_timeout_ms
        )

        app.state.settings = app_settings
        app.state.session_factory = session_factory
        app.state.feed = TranscriptionFeed()
        app.state.store = store

        log_system_info(
            app_settings.app_name,
            make_url(app_settings.async_database_url).render_as_string(
                hide_password=True
            ),
            app_settings.undo_timeout_ms,
        )

        yield

        # Commit a deletion the user did not undo before the engine goes away
        await store.close()
        await engine.dispose()
        logger.info("Application shutdown completed")

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.version,
        debug=app_settings.debug,
        lifespan=lifespan,
        description="""
**Scribe History** keeps recent voice transcriptions and lets you delete them
with undo.

Deleting a transcription hides it at once. It stays recoverable for a short
undo window and is then deleted permanently. Only one deletion is pending at a
time: deleting another transcription commits the previous one first.
        """.strip(),
        openapi_tags=[
            {
                "name": "transcriptions",
                "description": "Browse, save, delete, and restore transcriptions",
            },
        ],
    )

    setup_telemetry(app)
    app.middleware("http")(log_requests_middleware)
    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app: Final = create_app()
