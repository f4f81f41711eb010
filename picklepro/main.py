"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Each app instance owns exactly one preload cache

For local development:
    SNOWFLAKE_MOCK_MODE=true DEBUG_OVERLAY_ENABLED=true uvicorn picklepro.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.dependencies import build_connection_factory, build_data_source
from .api.routes import data, debug, health, session
from .config.settings import Settings, get_settings
from .core.preload.provider import PreloadProvider
from .core.preload.service import PreloadingService
from .core.session import SessionStore

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager: the composition root.

        Builds the session store, the preloading service and the provider
        once, wires the provider to the session, and tears it down on
        shutdown (cancelling a pending sign-in preload).
        """
        logger.info(
            "PicklePro API starting",
            extra={
                "version": __version__,
                "mock_mode": {"snowflake": settings.snowflake_mock_mode},
            }
        )

        missing_fields = settings.validate_required_fields()
        if missing_fields:
            logger.error(
                "Missing required configuration",
                extra={"missing_fields": missing_fields}
            )

        session_store = SessionStore()
        connection_factory = build_connection_factory(settings)
        service = PreloadingService(
            build_data_source(
                settings,
                user_id_provider=lambda: session_store.current.user_id,
                connection_factory=connection_factory,
            )
        )
        provider = PreloadProvider(service, debounce_seconds=settings.preload_debounce_seconds)
        provider.bind_session(session_store)

        app.state.settings = settings
        app.state.connection_factory = connection_factory
        app.state.session_store = session_store
        app.state.preloading_service = service
        app.state.preload_provider = provider

        yield

        provider.close()
        logger.info("PicklePro API shutting down")

    return lifespan


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application. Tests pass their own
    Settings; production reads them from the environment.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Data layer for the PicklePro training app.

        ## Workflow

        1. **Sign in**: `POST /api/v1/session/sign-in`
           - Programs, coaches and logbook entries are preloaded in the background
        2. **Read**: `GET /api/v1/data/{programs|coaches|logbook}`
           - Served from cache; fetched on demand if nothing is cached
        3. **Retry**: `POST /api/v1/data/{resource}/refresh`
           - Returns 502 with the backend's message if the fetch fails
        4. **Sign out**: `POST /api/v1/session/sign-out`
           - Clears every cached resource
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_lifespan(settings),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        session.router,
        prefix="/api/v1/session",
        tags=["Session"],
    )

    app.include_router(
        data.router,
        prefix="/api/v1/data",
        tags=["Data"],
    )

    app.include_router(
        debug.router,
        prefix="/debug",
        tags=["Debug"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "PicklePro Training API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Logs the full error server-side and returns a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "picklepro.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
