"""
LogPulse AI - API Schemas
=========================

Pydantic models for the diagnosis API.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from logpulse_shared.constants import ErrorKind, Limits, Severity


class LogRequest(BaseModel):
    """Logs submitted for diagnosis."""

    logs: str = Field(
        ...,
        max_length=Limits.MAX_INPUT_CHARS,
        description="Production error log text (at most 2000 characters)"
    )


class DiagnosisResponse(BaseModel):
    """Result of a successful analysis."""

    severity: Severity = Field(
        ...,
        description="Severity level (critical, warning, info)"
    )
    title: str = Field(
        ...,
        description="Short title of the issue"
    )
    diagnosis: str = Field(
        ...,
        description="HTML diagnosis: what happened, how to fix, prevention tips"
    )
    timestamp: str = Field(
        ...,
        description="ISO 8601 time the analysis was stored"
    )
    analysis_id: int = Field(
        ...,
        description="Identifier of the stored analysis"
    )


class ErrorResponse(BaseModel):
    """Standard error payload."""

    error: ErrorKind = Field(
        ...,
        description="Machine-readable error kind"
    )
    message: str = Field(
        ...,
        description="Human-readable message"
    )
    detail: Optional[str] = Field(
        None,
        description="Additional guidance"
    )
    timestamp: datetime = Field(
        ...,
        description="When the error occurred"
    )
    path: str = Field(
        ...,
        description="Request path that produced the error"
    )


class RateLimitStatus(BaseModel):
    """Quota left for the calling identity."""

    remaining_requests: int = Field(..., ge=0)
    max_requests: int
    window_hours: int
    ip_address: str


class HistoryItem(BaseModel):
    """One past analysis."""

    analysis_id: int
    severity: Severity
    title: str
    input_text: str
    diagnosis: str
    created_at: datetime


class HistoryResponse(BaseModel):
    """Past analyses for the calling identity, newest first."""

    ip_address: str
    window_hours: int
    count: int
    items: list[HistoryItem] = Field(default_factory=list)
