"""
LogPulse AI - Diagnosis Orchestrator
====================================

Runs one analysis request end to end:

1. Validate the submitted text
2. Check the caller's quota
3. Get a diagnosis (never fails; falls back on backend errors)
4. Classify severity and title from the raw text
5. Persist the analysis and build the response

Each step can stop the request. Nothing is persisted unless every earlier
step succeeded, and a result is only returned once the analysis has been
stored and assigned an id.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from weakref import WeakValueDictionary
import asyncio

from logpulse.core.classifier import severity_of, title_of
from logpulse.core.diagnosis_provider import DiagnosisProvider
from logpulse.core.exceptions import (
    InvalidInput,
    InvalidInputReason,
    PersistenceFailure,
    RateLimited,
)
from logpulse.core.history_store import HistoryStore
from logpulse.core.rate_limiter import Deny, RateLimiter
from logpulse_shared.constants import Limits, Severity
from logpulse_shared.schemas.events import AnalysisEvent
from logpulse_shared.utils.logging import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_log_input(
    text: Optional[str],
    min_chars: int = Limits.MIN_INPUT_CHARS,
    max_chars: int = Limits.MAX_INPUT_CHARS,
    max_words: int = Limits.MAX_INPUT_WORDS,
) -> None:
    """
    Reject empty, too short or too long log text.

    The text itself is not modified; later steps see exactly what was sent.

    Raises:
        InvalidInput: with reason EMPTY, TOO_SHORT or TOO_LONG
    """
    if text is None or not text.strip():
        raise InvalidInput(InvalidInputReason.EMPTY, "Logs cannot be empty", max_words)

    stripped = text.strip()
    if len(stripped) < min_chars:
        raise InvalidInput(
            InvalidInputReason.TOO_SHORT,
            f"Logs are too short. Please provide more context (at least {min_chars} characters)",
            max_words,
        )

    word_count = len(stripped.split())
    if word_count > max_words:
        raise InvalidInput(
            InvalidInputReason.TOO_LONG,
            f"Logs are too long ({word_count} words). Please limit to {max_words} words or less",
            max_words,
        )

    if len(text) > max_chars:
        raise InvalidInput(
            InvalidInputReason.TOO_LONG,
            f"Logs are too long ({len(text)} characters). Please limit to {max_chars} characters or less",
            max_words,
        )


@dataclass(frozen=True)
class DiagnosisResult:
    """What a successful analysis returns to the transport layer."""
    analysis_id: int
    severity: Severity
    title: str
    diagnosis: str
    timestamp: str


class Orchestrator:
    """
    Sequences validation, quota, diagnosis, classification and persistence.

    All collaborators are passed in explicitly. With ``strict_quota`` the
    quota check, diagnosis and append for one identity run under a
    per-identity lock, so concurrent requests from the same caller cannot
    both be admitted on the last free slot. Without it the check and the
    append are not atomic and a burst from one caller may overshoot the
    quota slightly.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        provider: DiagnosisProvider,
        store: HistoryStore,
        *,
        min_chars: int = Limits.MIN_INPUT_CHARS,
        max_chars: int = Limits.MAX_INPUT_CHARS,
        max_words: int = Limits.MAX_INPUT_WORDS,
        strict_quota: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.rate_limiter = rate_limiter
        self.provider = provider
        self.store = store
        self.min_chars = min_chars
        self.max_chars = max_chars
        self.max_words = max_words
        self.strict_quota = strict_quota
        self.clock = clock
        self._locks: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()

    def _identity_lock(self, identity: str) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        return lock

    async def handle(self, raw_text: Optional[str], identity: str) -> DiagnosisResult:
        """
        Analyze a log submitted by ``identity``.

        Raises:
            InvalidInput: the text failed validation
            RateLimited: the caller's quota for the window is used up
            PersistenceFailure: the analysis could not be stored
        """
        logger.info(f"Analyzing logs from {identity}", extra={"identity": identity})

        validate_log_input(raw_text, self.min_chars, self.max_chars, self.max_words)

        if self.strict_quota:
            async with self._identity_lock(identity):
                return await self._run_admitted(raw_text, identity)
        return await self._run_admitted(raw_text, identity)

    async def _run_admitted(self, raw_text: str, identity: str) -> DiagnosisResult:
        try:
            decision = self.rate_limiter.check_and_admit(identity, self.clock())
        except Exception as e:
            logger.error(
                f"Failed to read request history for {identity}: {e}",
                extra={"identity": identity},
                exc_info=True
            )
            raise PersistenceFailure() from e

        if isinstance(decision, Deny):
            raise RateLimited(decision.limit, decision.window_hours)

        diagnosis = await self.provider.produce(raw_text)

        severity = severity_of(raw_text)
        title = title_of(raw_text)

        stored = self._persist(identity, raw_text, diagnosis, severity, title)

        logger.info(
            f"Analysis completed successfully. ID: {stored.id}",
            extra={"analysis_id": stored.id, "identity": identity, "severity": severity.value}
        )

        return DiagnosisResult(
            analysis_id=stored.id,
            severity=stored.severity,
            title=stored.title,
            diagnosis=stored.diagnosis,
            timestamp=stored.created_at.isoformat(),
        )

    def _persist(
        self,
        identity: str,
        raw_text: str,
        diagnosis: str,
        severity: Severity,
        title: str,
    ) -> AnalysisEvent:
        try:
            event = AnalysisEvent(
                identity=identity,
                input_text=raw_text,
                diagnosis=diagnosis,
                severity=severity,
                title=title,
                created_at=self.clock(),
            )
            stored = self.store.append(event)
        except Exception as e:
            logger.error(
                f"Failed to persist analysis for {identity}: {e}",
                extra={"identity": identity},
                exc_info=True
            )
            raise PersistenceFailure() from e

        if stored.id is None:
            logger.error("History store returned an event without an id", extra={"identity": identity})
            raise PersistenceFailure()

        return stored

    def remaining(self, identity: str) -> int:
        """Requests ``identity`` may still make in the current window."""
        return self.rate_limiter.remaining(identity, self.clock())

    def history(self, identity: str, window: Optional[timedelta] = None) -> list[AnalysisEvent]:
        """Past analyses for ``identity``, newest first."""
        since = self.clock() - (window or self.rate_limiter.window)
        return self.store.list_since(identity, since)
