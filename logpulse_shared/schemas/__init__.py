"""
LogPulse AI - Shared Schemas
"""

from logpulse_shared.schemas.events import AnalysisEvent

__all__ = ["AnalysisEvent"]
