"""
LogPulse AI - Core Package
"""

from logpulse.core.classifier import severity_of, title_of
from logpulse.core.diagnosis_provider import DiagnosisProvider, ProviderResult
from logpulse.core.backends import DiagnosisBackend, build_backend
from logpulse.core.history_store import HistoryStore, InMemoryHistoryStore, SqlHistoryStore
from logpulse.core.rate_limiter import RateLimiter, Admit, Deny
from logpulse.core.orchestrator import Orchestrator, DiagnosisResult

__all__ = [
    "severity_of",
    "title_of",
    "DiagnosisProvider",
    "ProviderResult",
    "DiagnosisBackend",
    "build_backend",
    "HistoryStore",
    "InMemoryHistoryStore",
    "SqlHistoryStore",
    "RateLimiter",
    "Admit",
    "Deny",
    "Orchestrator",
    "DiagnosisResult",
]
