from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from secretshare import __version__
from secretshare.config import Settings
from secretshare.context import AppContext, build_context
from secretshare.errors import SecretShareError
from secretshare.logging_config import setup_logging
from secretshare.middleware.logging import LoggingMiddleware
from secretshare.routers import secrets

logger = structlog.get_logger()


async def secret_share_error_handler(request: Request, exc: SecretShareError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request format"})


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """
    Build the application.

    The component graph is built when the app starts (or taken from ``context``)
    and exposed as ``app.state.context``.
    """
    settings = settings or (context.settings if context else Settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build components, run the sweep scheduler, and tear down in order."""
        setup_logging(settings)
        app_context = context or build_context(settings)
        app.state.context = app_context
        app_context.start()
        try:
            yield
        finally:
            app_context.close()

    app = FastAPI(
        title="SecretShare",
        description="Zero-knowledge one-time secret sharing service",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(SecretShareError, secret_share_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        max_age=86400,
    )

    app.include_router(secrets.router, prefix="/api", tags=["secrets"])

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    return app
