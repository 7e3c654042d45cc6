"""
LogPulse AI - Diagnosis Provider
================================

Wraps a DiagnosisBackend and guarantees a diagnosis for every log.

The backend is called exactly once per request. If that call fails for any
reason (network, status, timeout, malformed body, auth) the failure is
logged and a fixed fallback document is returned instead; the orchestrator
never sees the error.
"""

from dataclasses import dataclass
from typing import Optional
import html

import nh3

from logpulse.core.backends import DiagnosisBackend, build_prompt
from logpulse_shared.constants import Limits
from logpulse_shared.utils.logging import get_logger

logger = get_logger(__name__)


FALLBACK_SUGGESTIONS = (
    "Check that your environment variables are set correctly",
    "Verify database connection strings and credentials",
    "Make sure all dependencies are installed in the deployed image",
    "Look at your platform's deployment logs for more context",
    "Confirm memory and CPU limits are not being exceeded",
)

FALLBACK_TEMPLATE = """<div class="diagnosis">
    <h3>AI Diagnosis Temporarily Unavailable</h3>
    <p>We could not run an automated diagnosis for your log right now. Here is what we can tell you:</p>

    <h3>Your Error Log:</h3>
    <pre>{excerpt}</pre>

    <h3>Common Solutions:</h3>
    <ul>
{suggestions}
    </ul>

    <p>Please try again in a few moments. If the issue persists, contact support.</p>
</div>"""


def excerpt_of(text: str, limit: int = Limits.FALLBACK_EXCERPT_CHARS) -> str:
    """First ``limit`` characters of ``text``, with an ellipsis when cut."""
    if len(text) > limit:
        return text[:limit] + Limits.ELLIPSIS
    return text


def fallback_diagnosis(text: str) -> str:
    """Deterministic diagnosis used when the backend is unavailable."""
    suggestions = "\n".join(f"        <li>{item}</li>" for item in FALLBACK_SUGGESTIONS)
    return FALLBACK_TEMPLATE.format(
        excerpt=html.escape(excerpt_of(text)),
        suggestions=suggestions,
    )


# Tags a diagnosis may use; anything else is dropped and only its text kept.
ALLOWED_TAGS = {
    "div", "h3", "h4", "p", "ul", "ol", "li",
    "pre", "code", "strong", "em", "b", "i", "br",
}
ALLOWED_ATTRIBUTES = {"div": {"class"}}
# Removed together with their content.
DROPPED_ELEMENTS = {"script", "style", "iframe", "object", "embed", "template"}


def sanitize_html(markup: str) -> str:
    """
    Reduce backend HTML to the formatting tags a diagnosis is rendered with.

    Only ``class`` on ``div`` survives as an attribute, so no event handler
    or URL reaches the caller.
    """
    cleaned = nh3.clean(
        markup,
        tags=ALLOWED_TAGS,
        clean_content_tags=DROPPED_ELEMENTS,
        attributes=ALLOWED_ATTRIBUTES,
    )
    return cleaned.strip()


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of a single backend call."""
    backend: str
    diagnosis: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.diagnosis is not None


class DiagnosisProvider:
    """
    Diagnosis capability over a pluggable backend.

    Swap the backend to change providers; callers only use ``produce``.
    """

    def __init__(self, backend: DiagnosisBackend):
        self.backend = backend

    @property
    def name(self) -> str:
        return self.backend.name

    async def initialize(self) -> None:
        await self.backend.initialize()

    async def shutdown(self) -> None:
        await self.backend.shutdown()

    def is_ready(self) -> bool:
        return self.backend.is_ready()

    async def attempt(self, text: str) -> ProviderResult:
        """Call the backend once and capture the outcome without raising."""
        logger.info(
            f"Requesting diagnosis from {self.backend.name} backend (no retry)",
            extra={"backend": self.backend.name, "input_chars": len(text)}
        )
        try:
            diagnosis = await self.backend.call(build_prompt(text))
        except Exception as e:
            # Message only, no traceback.
            logger.error(
                f"Diagnosis backend {self.backend.name} failed: {e}",
                extra={"backend": self.backend.name, "error_type": type(e).__name__}
            )
            return ProviderResult(backend=self.backend.name, error=e)

        return ProviderResult(backend=self.backend.name, diagnosis=diagnosis)

    def reduce(self, text: str, result: ProviderResult) -> str:
        """Turn a backend outcome into the diagnosis text that gets stored."""
        if result.ok:
            cleaned = sanitize_html(result.diagnosis)
            if cleaned:
                return cleaned
            logger.error(
                f"Diagnosis from {result.backend} was empty after sanitizing",
                extra={"backend": result.backend}
            )

        logger.warning(
            "Generating fallback diagnosis (backend unavailable)",
            extra={"backend": result.backend}
        )
        return fallback_diagnosis(text)

    async def produce(self, text: str) -> str:
        """Return a diagnosis for ``text``; never raises on backend failure."""
        result = await self.attempt(text)
        return self.reduce(text, result)
