"""
LogPulse AI - History Store Tests
=================================

Tests for the in-memory and SQL history stores.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from logpulse.core.history_store import (
    InMemoryHistoryStore,
    SqlHistoryStore,
    build_history_store,
)
from logpulse_shared.constants import Severity
from logpulse_shared.schemas.events import AnalysisEvent

T0 = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def make_event(identity="10.0.0.1", created_at=T0, title="Error: boom"):
    return AnalysisEvent(
        identity=identity,
        input_text="Error: boom at Worker.run",
        diagnosis="<p>diagnosis</p>",
        severity=Severity.WARNING,
        title=title,
        created_at=created_at,
    )


@pytest.fixture(params=["memory", "sql"])
def history_store(request):
    """Run each contract test against both adapters."""
    if request.param == "memory":
        store = InMemoryHistoryStore()
    else:
        store = SqlHistoryStore("sqlite:///:memory:")
    yield store
    store.close()


class TestHistoryStoreContract:
    """Behaviour shared by every HistoryStore adapter."""

    def test_append_assigns_increasing_ids(self, history_store):
        """Test that ids are assigned once and never reused."""
        event = make_event()

        first = history_store.append(event)
        second = history_store.append(make_event())

        assert event.id is None
        assert first.id is not None
        assert second.id > first.id

    def test_append_preserves_fields(self, history_store):
        """Test that the stored copy carries the submitted fields."""
        stored = history_store.append(make_event())
        listed = history_store.list_since("10.0.0.1", T0)

        assert listed == [stored]
        assert listed[0].created_at == T0
        assert listed[0].severity == Severity.WARNING

    def test_count_since_filters_identity_and_time(self, history_store):
        """Test windowed counting per identity."""
        history_store.append(make_event(created_at=T0 - timedelta(hours=2)))
        history_store.append(make_event(created_at=T0))
        history_store.append(make_event(created_at=T0 + timedelta(minutes=1)))
        history_store.append(make_event(identity="10.0.0.2", created_at=T0))

        assert history_store.count_since("10.0.0.1", T0) == 2
        assert history_store.count_since("10.0.0.1", T0 - timedelta(hours=3)) == 3
        assert history_store.count_since("10.0.0.3", T0) == 0

    def test_list_since_newest_first(self, history_store):
        """Test ordering of windowed listings."""
        history_store.append(make_event(created_at=T0, title="first"))
        history_store.append(make_event(created_at=T0 + timedelta(minutes=5), title="second"))
        history_store.append(make_event(created_at=T0 + timedelta(minutes=5), title="third"))

        titles = [e.title for e in history_store.list_since("10.0.0.1", T0)]

        assert titles == ["third", "second", "first"]


class TestBuildHistoryStore:
    """Tests for store selection from configuration."""

    def test_memory_when_no_database_url(self):
        settings = MagicMock(database_url="")
        assert isinstance(build_history_store(settings), InMemoryHistoryStore)

    def test_sql_when_database_url_set(self):
        settings = MagicMock(database_url="sqlite:///:memory:")
        store = build_history_store(settings)
        assert isinstance(store, SqlHistoryStore)
        store.close()
