"""Main FastAPI application"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
import logging

from manifesto.api import api_router
from manifesto.core.config import Settings, get_settings
from manifesto.core.context import AppContext
from manifesto.core.exceptions import register_exception_handlers
from manifesto.core.logging import setup_logging
from manifesto.core.middleware import setup_middleware
from manifesto.core.rate_limit import limiter, rate_limit_exceeded_handler
from manifesto.core.responses import PrettyJSONResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings: Settings = app.state.settings
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")

    owns_context = app.state.context is None
    if owns_context:
        app.state.context = AppContext.from_settings(settings)
        if app.state.context.database.engine.dialect.name == "sqlite":
            await app.state.context.database.create_all()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    if owns_context:
        await app.state.context.close()
        app.state.context = None


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application.
    A ready-made context is used as is and left open on shutdown;
    otherwise one is built from settings when the app starts.
    """
    if settings is None:
        settings = context.settings if context is not None else get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Manifesto store API: accounts, cart, drafts, orders and reading library",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        default_response_class=PrettyJSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.context = context

    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    register_exception_handlers(app)
    setup_middleware(app, settings)

    app.include_router(api_router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "docs": "/api/docs",
            "health": "/api/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "manifesto.main:app",
        host=_settings.HOST,
        port=_settings.PORT,
        reload=_settings.DEBUG,
    )
