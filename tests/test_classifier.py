"""
LogPulse AI - Classifier Tests
==============================

Unit tests for severity and title heuristics.
"""

import pytest

from logpulse.core.classifier import severity_of, title_of
from logpulse_shared.constants import Severity, DEFAULT_TITLE


class TestSeverity:
    """Tests for severity_of."""

    @pytest.mark.parametrize("text", [
        "FATAL: could not start worker",
        "java.lang.OutOfMemoryError: Java heap space",
        "Cannot connect to MySQL server on db:3306",
        "connect ECONNREFUSED: Connection refused",
        "Segmentation fault (core dumped)",
    ])
    def test_critical_keywords(self, text):
        """Test that any critical keyword yields critical."""
        assert severity_of(text) == Severity.CRITICAL

    @pytest.mark.parametrize("text", [
        "ERROR in request handler",
        "Unhandled exception in thread main",
        "Job failed after 3 attempts",
        "Upstream TIMEOUT while reading response",
    ])
    def test_warning_keywords(self, text):
        """Test that warning keywords yield warning."""
        assert severity_of(text) == Severity.WARNING

    def test_info_when_nothing_matches(self):
        """Test that unremarkable text is info."""
        assert severity_of("Server started on port 8080") == Severity.INFO

    def test_critical_wins_over_warning(self):
        """Test keyword priority: critical checked before warning."""
        assert severity_of("Connection refused: request failed") == Severity.CRITICAL

    def test_is_case_insensitive_substring(self):
        """Test matching inside longer words regardless of case."""
        assert severity_of("NullPointerException at Service.java:42") == Severity.WARNING


class TestTitle:
    """Tests for title_of."""

    def test_prefers_first_error_line(self):
        """Test that the first line mentioning an error is used."""
        text = "2024-01-15 starting job\n  Caused by: IOException: disk full  \nERROR again"
        assert title_of(text) == "Caused by: IOException: disk full"

    def test_falls_back_to_first_non_empty_line(self):
        """Test fallback to the first non-empty line."""
        text = "\n   \n  Worker 7 stopped unexpectedly\nsecond line"
        assert title_of(text) == "Worker 7 stopped unexpectedly"

    def test_default_title_for_blank_text(self):
        """Test the fixed default when no line has content."""
        assert title_of("  \n \n") == DEFAULT_TITLE

    def test_truncates_long_line(self):
        """Test that a 150-char line becomes 97 chars plus an ellipsis."""
        line = "error " + "x" * 144
        assert len(line) == 150

        title = title_of(line)

        assert len(title) == 100
        assert title.endswith("...")
        assert title[:97] == line[:97]

    def test_exactly_100_chars_not_truncated(self):
        """Test the truncation boundary."""
        line = "exception " + "y" * 90
        assert title_of(line) == line

    def test_handles_crlf_lines(self):
        """Test Windows line endings are trimmed."""
        assert title_of("first\r\nError: boom\r\n") == "Error: boom"
