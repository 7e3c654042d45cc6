"""
LogPulse AI - Log Classifier
============================

Keyword heuristics that derive a severity and a short title from raw log
text. Both functions are pure and always return a value.
"""

from logpulse_shared.constants import Severity, Limits, DEFAULT_TITLE

# Checked in order: any critical keyword wins over any warning keyword.
CRITICAL_KEYWORDS = (
    "fatal",
    "outofmemoryerror",
    "cannot connect",
    "connection refused",
    "segmentation fault",
    "core dumped",
)

WARNING_KEYWORDS = (
    "error",
    "exception",
    "failed",
    "timeout",
)

TITLE_KEYWORDS = ("error", "exception")


def severity_of(text: str) -> Severity:
    """Classify log text as critical, warning or info."""
    lowered = text.lower()

    if any(keyword in lowered for keyword in CRITICAL_KEYWORDS):
        return Severity.CRITICAL
    if any(keyword in lowered for keyword in WARNING_KEYWORDS):
        return Severity.WARNING
    return Severity.INFO


def truncate_title(line: str) -> str:
    """Cap a title at 100 characters, ending in an ellipsis when cut."""
    if len(line) > Limits.MAX_TITLE_CHARS:
        keep = Limits.MAX_TITLE_CHARS - len(Limits.ELLIPSIS)
        return line[:keep] + Limits.ELLIPSIS
    return line


def title_of(text: str) -> str:
    """
    Pick a short title for a log.

    Prefers the first line mentioning an error or exception, then the first
    non-empty line, then a fixed default.
    """
    lines = [line.strip() for line in text.split("\n")]

    for line in lines:
        lowered = line.lower()
        if any(keyword in lowered for keyword in TITLE_KEYWORDS):
            return truncate_title(line)

    for line in lines:
        if line:
            return truncate_title(line)

    return DEFAULT_TITLE
