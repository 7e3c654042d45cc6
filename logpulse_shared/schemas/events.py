"""
LogPulse AI - Event Schemas
===========================

The persisted record of one completed diagnosis.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from logpulse_shared.constants import Severity, Limits


class AnalysisEvent(BaseModel):
    """
    One completed diagnosis interaction.

    Built by the orchestrator with ``id=None``; the history store assigns the
    id when the event is appended and hands back a copy carrying it. Events
    are immutable once built.
    """

    id: Optional[int] = Field(
        None,
        description="Store-assigned identifier, unique and never reused"
    )
    identity: str = Field(
        ...,
        description="Caller network address used as the quota key"
    )
    input_text: str = Field(
        ...,
        description="Raw submitted log text"
    )
    diagnosis: str = Field(
        ...,
        description="Backend output or fallback document (HTML)"
    )
    severity: Severity = Field(
        ...,
        description="Heuristic severity of the submitted text"
    )
    title: str = Field(
        ...,
        max_length=Limits.MAX_TITLE_CHARS,
        description="Short title extracted from the submitted text"
    )
    created_at: datetime = Field(
        ...,
        description="When the event was persisted (UTC)"
    )

    class Config:
        frozen = True
