"""
FastAPI Application - Breadthwise Auth
GitHub login and session lifecycle for the Breadthwise web and mobile clients.

Run with: uvicorn breadthwise_auth.main:create_app --factory
"""

import time
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from breadthwise_auth.api.v1 import router as api_v1_router
from breadthwise_auth.config import Settings, get_settings
from breadthwise_auth.core.database import create_engine, create_session_factory
from breadthwise_auth.core.errors import AuthError
from breadthwise_auth.core.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)
from breadthwise_auth.core.platform import detect_platform, get_client_ip

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup and shutdown events"""
    settings: Settings = app.state.settings

    # Tests may install their own session factory before startup
    engine = None
    if getattr(app.state, "session_factory", None) is None:
        engine = create_engine(settings)
        app.state.session_factory = create_session_factory(engine)

    logger.info(
        "app_startup",
        environment=settings.ENVIRONMENT,
        database=settings.DATABASE_URL.split("@")[1] if "@" in settings.DATABASE_URL else "configured",
    )
    yield
    if engine is not None:
        await engine.dispose()
    logger.info("app_shutdown")


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render AuthError subclasses with their stable code."""
    logger.info(
        "auth_error",
        code=exc.code,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for uncaught errors"""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_SERVER_ERROR",
        },
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; defaults to get_settings()
    """
    settings = settings or get_settings()
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="GitHub OAuth login and token session lifecycle",
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = None

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Tag every log line of a request with a request id and log the outcome."""
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        set_request_context(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                platform=detect_platform(request),
                ip_address=get_client_ip(request, settings.TRUST_PROXY_HEADERS),
                user_agent=request.headers.get("User-Agent"),
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            response.headers["X-Request-Id"] = request_id
            return response
        finally:
            clear_request_context()
            structlog.contextvars.clear_contextvars()

    app.add_exception_handler(AuthError, auth_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint - API information"""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint"""
        return {"status": "healthy"}

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    return app
