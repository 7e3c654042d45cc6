"""
LogPulse AI - API Routes
========================

FastAPI endpoints for log diagnosis, quota status and history.
Errors raised by the orchestrator are turned into ErrorResponse payloads by
the exception handlers registered in main.py.
"""

from datetime import timedelta
from fastapi import APIRouter, Query, Request

from logpulse.api.schemas import (
    DiagnosisResponse,
    HistoryItem,
    HistoryResponse,
    LogRequest,
    RateLimitStatus,
)
from logpulse.core.orchestrator import Orchestrator
from logpulse_shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["diagnosis"])


def get_client_ip(request: Request) -> str:
    """
    Identify the caller by network address.

    Behind a proxy the first X-Forwarded-For entry (or X-Real-IP) is the
    real client; otherwise the socket peer is used.
    """
    if request.app.state.settings.trust_forwarded_headers:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first

        real_ip = request.headers.get("X-Real-IP")
        if real_ip and real_ip.strip():
            return real_ip.strip()

    if request.client is not None:
        return request.client.host
    return "unknown"


def _orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


# =============================================================================
# ANALYSIS
# =============================================================================

@router.post("/analyze", response_model=DiagnosisResponse)
async def analyze_logs(body: LogRequest, request: Request):
    """
    Analyze production error logs.

    Returns a diagnosis with severity, title and the stored analysis id.
    """
    ip_address = get_client_ip(request)
    logger.info(
        f"Received log analysis request from {ip_address}",
        extra={"identity": ip_address, "input_chars": len(body.logs)}
    )

    result = await _orchestrator(request).handle(body.logs, ip_address)

    return DiagnosisResponse(
        severity=result.severity,
        title=result.title,
        diagnosis=result.diagnosis,
        timestamp=result.timestamp,
        analysis_id=result.analysis_id,
    )


# =============================================================================
# QUOTA AND HISTORY
# =============================================================================

@router.get("/rate-limit-status", response_model=RateLimitStatus)
async def get_rate_limit_status(request: Request):
    """Requests the caller may still make in the current window."""
    ip_address = get_client_ip(request)
    orchestrator = _orchestrator(request)

    return RateLimitStatus(
        remaining_requests=orchestrator.remaining(ip_address),
        max_requests=orchestrator.rate_limiter.max_requests,
        window_hours=orchestrator.rate_limiter.window_hours,
        ip_address=ip_address,
    )


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    request: Request,
    hours: int = Query(default=24, ge=1, le=720)
):
    """The caller's analyses from the last ``hours`` hours, newest first."""
    ip_address = get_client_ip(request)
    events = _orchestrator(request).history(ip_address, timedelta(hours=hours))

    return HistoryResponse(
        ip_address=ip_address,
        window_hours=hours,
        count=len(events),
        items=[
            HistoryItem(
                analysis_id=event.id,
                severity=event.severity,
                title=event.title,
                input_text=event.input_text,
                diagnosis=event.diagnosis,
                created_at=event.created_at,
            )
            for event in events
        ],
    )


# =============================================================================
# INFO AND CONFIGURATION
# =============================================================================

@router.get("/")
async def api_info(request: Request):
    """API information."""
    settings = request.app.state.settings
    return {
        "name": "LogPulse AI API",
        "version": settings.service_version,
        "description": "AI-powered production log analyzer",
        "endpoints": {
            "POST /api/v1/analyze": "Analyze production error logs",
            "GET /api/v1/rate-limit-status": "Check remaining requests",
            "GET /api/v1/history": "List recent analyses",
            "GET /health": "Health check",
        },
    }


@router.get("/config")
async def get_configuration(request: Request):
    """Current non-secret configuration."""
    settings = request.app.state.settings
    return {
        "provider": settings.provider.value,
        "provider_model": settings.provider_model_name,
        "provider_temperature": settings.provider_temperature,
        "provider_max_tokens": settings.provider_max_tokens,
        "provider_timeout_seconds": settings.provider_timeout_seconds,
        "rate_limit_max_requests": settings.rate_limit_max_requests,
        "rate_limit_window_hours": settings.rate_limit_window_hours,
        "input_min_chars": settings.input_min_chars,
        "input_max_chars": settings.input_max_chars,
        "input_max_words": settings.input_max_words,
        "history_backend": "sql" if settings.database_url else "memory",
    }
