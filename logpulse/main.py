"""
LogPulse AI - Main Application
==============================

FastAPI application for production log diagnosis.

Responsibilities:
- Accept error logs and identify callers by network address
- Enforce the per-caller analysis quota
- Diagnose logs through the configured backend (with offline fallback)
- Store every completed analysis
- Map core errors to structured error responses
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from logpulse.api.routes import router as api_router
from logpulse.api.schemas import ErrorResponse
from logpulse.config import Settings, get_settings
from logpulse.core.backends import build_backend
from logpulse.core.diagnosis_provider import DiagnosisProvider
from logpulse.core.exceptions import LogPulseError
from logpulse.core.history_store import build_history_store
from logpulse.core.orchestrator import Orchestrator
from logpulse.core.rate_limiter import RateLimiter
from logpulse_shared.constants import ErrorKind
from logpulse_shared.utils.logging import get_logger, set_correlation_id, setup_logging

logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.PERSISTENCE_FAILURE: 500,
    ErrorKind.INTERNAL_ERROR: 500,
}


def build_orchestrator(settings: Settings) -> Orchestrator:
    """Wire the core components from configuration."""
    store = build_history_store(settings)
    provider = DiagnosisProvider(build_backend(settings))
    rate_limiter = RateLimiter(
        store,
        max_requests=settings.rate_limit_max_requests,
        window=timedelta(hours=settings.rate_limit_window_hours),
    )
    return Orchestrator(
        rate_limiter,
        provider,
        store,
        min_chars=settings.input_min_chars,
        max_chars=settings.input_max_chars,
        max_words=settings.input_max_words,
        strict_quota=settings.rate_limit_strict,
    )


def _error_response(
    request: Request,
    kind: ErrorKind,
    message: str,
    detail: Optional[str] = None,
) -> JSONResponse:
    payload = ErrorResponse(
        error=kind,
        message=message,
        detail=detail,
        timestamp=datetime.now(timezone.utc),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=ERROR_STATUS.get(kind, 500),
        content=payload.model_dump(mode="json"),
    )


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[Orchestrator] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration, defaults to the cached environment settings
        orchestrator: Pre-built core, built from ``settings`` when omitted
    """
    settings = settings or get_settings()

    setup_logging(
        service_name=settings.service_name,
        log_level=settings.log_level,
        json_output=settings.log_json
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        logger.info(
            f"Starting {settings.service_name} v{settings.service_version}",
            extra={
                "version": settings.service_version,
                "provider": settings.provider.value
            }
        )

        core = orchestrator or build_orchestrator(settings)
        await core.provider.initialize()
        app.state.orchestrator = core
        logger.info(f"Diagnosis provider initialized: {core.provider.name}")

        yield

        logger.info("Shutting down diagnosis service...")
        await core.provider.shutdown()
        core.store.close()
        logger.info("Diagnosis service shutdown complete")

    app = FastAPI(
        title="LogPulse AI - Diagnosis Service",
        description="Production error log diagnosis with per-caller quotas",
        version=settings.service_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """Extract or generate the request correlation ID."""
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

        set_correlation_id(correlation_id)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id

        return response

    @app.exception_handler(LogPulseError)
    async def logpulse_error_handler(request: Request, exc: LogPulseError):
        """Structured response for errors raised by the core."""
        logger.warning(
            f"{exc.kind.value}: {exc.message}",
            extra={"path": request.url.path, "error_kind": exc.kind.value}
        )
        return _error_response(request, exc.kind, exc.message, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Schema errors in the request body or query."""
        problems = {
            ".".join(str(part) for part in error.get("loc", ())): error.get("msg", "")
            for error in exc.errors()
        }
        logger.warning(f"Validation failed: {problems}", extra={"path": request.url.path})
        return _error_response(
            request,
            ErrorKind.VALIDATION_ERROR,
            "Validation failed",
            str(problems),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(
            f"Unhandled exception: {exc}",
            extra={"path": request.url.path},
            exc_info=True
        )
        return _error_response(
            request,
            ErrorKind.INTERNAL_ERROR,
            "An unexpected error occurred",
            str(exc) if settings.debug else None,
        )

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.service_name,
            "version": settings.service_version
        }

    @app.get("/ready", tags=["health"])
    async def readiness_check(request: Request):
        """Readiness check endpoint."""
        core = getattr(request.app.state, "orchestrator", None)
        provider_ready = core is not None and core.provider.is_ready()

        return {
            "status": "ready" if provider_ready else "degraded",
            "service": settings.service_name,
            "provider": settings.provider.value,
            "provider_ready": provider_ready
        }

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "logpulse.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
