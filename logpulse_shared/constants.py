"""
LogPulse AI - Shared Constants
==============================

Centralized constants used across the service.
Most of these values can be overridden via environment variables (see config.py).
"""

from enum import Enum


class Severity(str, Enum):
    """Severity assigned to a submitted log."""
    CRITICAL = "critical"  # Crash, OOM, unreachable dependency
    WARNING = "warning"    # Errors and exceptions the service survived
    INFO = "info"          # Nothing alarming found


class ErrorKind(str, Enum):
    """Kinds of errors that cross the core boundary."""
    INVALID_INPUT = "invalid_input"
    RATE_LIMITED = "rate_limited"
    PERSISTENCE_FAILURE = "persistence_failure"
    VALIDATION_ERROR = "validation_error"
    INTERNAL_ERROR = "internal_server_error"


class ProviderName(str, Enum):
    """Available diagnosis backends."""
    MOCK = "mock"        # Deterministic offline responses
    OPENAI = "openai"    # Any OpenAI-compatible chat API (Groq, OpenAI, ...)
    GEMINI = "gemini"    # Google Generative Language API
    OLLAMA = "ollama"    # Ollama local inference


class Limits:
    """Input and output size limits."""
    MIN_INPUT_CHARS = 10
    MAX_INPUT_CHARS = 2000
    MAX_INPUT_WORDS = 200
    MAX_TITLE_CHARS = 100
    FALLBACK_EXCERPT_CHARS = 500
    ELLIPSIS = "..."


class RateLimitDefaults:
    """Default quota applied per caller identity."""
    MAX_REQUESTS = 10
    WINDOW_HOURS = 24


DEFAULT_TITLE = "Production Error Analysis"
