"""
LogPulse AI - History Store
===========================

Append-only record of completed analyses, queryable per identity over a
time window. Two adapters:

- InMemoryHistoryStore: thread-safe dict storage for development and tests.
- SqlHistoryStore: SQLAlchemy-backed table for durable deployments.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from itertools import count
from threading import Lock

from sqlalchemy import DateTime, Index, Integer, String, Text, create_engine, func, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from logpulse_shared.constants import Severity
from logpulse_shared.schemas.events import AnalysisEvent
from logpulse_shared.utils.logging import get_logger

logger = get_logger(__name__)


class HistoryStore(ABC):
    """Storage contract used by the rate limiter and the orchestrator."""

    @abstractmethod
    def append(self, event: AnalysisEvent) -> AnalysisEvent:
        """Persist an event and return it with its assigned id."""

    @abstractmethod
    def count_since(self, identity: str, since: datetime) -> int:
        """Count events for ``identity`` created at or after ``since``."""

    @abstractmethod
    def list_since(self, identity: str, since: datetime) -> list[AnalysisEvent]:
        """Events for ``identity`` created at or after ``since``, newest first."""

    def close(self) -> None:
        """Release any held resources."""


class InMemoryHistoryStore(HistoryStore):
    """
    Thread-safe in-memory history storage.

    Events are kept per identity in append order, so windowed queries only
    touch that identity's list.
    """

    def __init__(self):
        self._events: dict[str, list[AnalysisEvent]] = {}
        self._ids = count(1)
        self._lock = Lock()

    def append(self, event: AnalysisEvent) -> AnalysisEvent:
        with self._lock:
            stored = event.model_copy(update={"id": next(self._ids)})
            self._events.setdefault(stored.identity, []).append(stored)
        logger.debug(
            f"Stored analysis {stored.id}",
            extra={"analysis_id": stored.id, "identity": stored.identity}
        )
        return stored

    def count_since(self, identity: str, since: datetime) -> int:
        with self._lock:
            return sum(1 for e in self._events.get(identity, []) if e.created_at >= since)

    def list_since(self, identity: str, since: datetime) -> list[AnalysisEvent]:
        with self._lock:
            events = [e for e in self._events.get(identity, []) if e.created_at >= since]
        events.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return events

    def __len__(self) -> int:
        with self._lock:
            return sum(len(events) for events in self._events.values())


# =============================================================================
# SQL ADAPTER
# =============================================================================

class Base(DeclarativeBase):
    pass


class AnalysisHistoryRow(Base):
    __tablename__ = "analysis_history"
    __table_args__ = (
        Index("ix_analysis_history_ip_created", "ip_address", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False)
    log_input: Mapped[str] = mapped_column(Text, nullable=False)
    diagnosis: Mapped[str] = mapped_column(Text)
    severity: Mapped[str] = mapped_column(String(20))
    title: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


def _to_db_time(value: datetime) -> datetime:
    """Normalise to naive UTC, the form stored in the table."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)


def _row_to_event(row: AnalysisHistoryRow) -> AnalysisEvent:
    return AnalysisEvent(
        id=row.id,
        identity=row.ip_address,
        input_text=row.log_input,
        diagnosis=row.diagnosis,
        severity=Severity(row.severity),
        title=row.title,
        created_at=_from_db_time(row.created_at),
    )


class SqlHistoryStore(HistoryStore):
    """
    SQLAlchemy-backed history storage.

    Every append runs in its own transaction; a failed commit is rolled back
    and re-raised so the caller never sees a half-written event.
    """

    def __init__(self, database_url: str, create_schema: bool = True):
        engine_kwargs = {}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
                engine_kwargs["poolclass"] = StaticPool

        self._engine = create_engine(database_url, **engine_kwargs)
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)

        if create_schema:
            Base.metadata.create_all(self._engine)

        logger.info(
            "SQL history store ready",
            extra={"dialect": self._engine.dialect.name}
        )

    def append(self, event: AnalysisEvent) -> AnalysisEvent:
        row = AnalysisHistoryRow(
            ip_address=event.identity,
            log_input=event.input_text,
            diagnosis=event.diagnosis,
            severity=event.severity.value,
            title=event.title,
            created_at=_to_db_time(event.created_at),
        )
        with self._sessions.begin() as session:
            session.add(row)
            session.flush()
            assigned_id = row.id
        return event.model_copy(update={"id": assigned_id})

    def count_since(self, identity: str, since: datetime) -> int:
        stmt = (
            select(func.count(AnalysisHistoryRow.id))
            .where(AnalysisHistoryRow.ip_address == identity)
            .where(AnalysisHistoryRow.created_at >= _to_db_time(since))
        )
        with Session(self._engine) as session:
            return session.scalar(stmt) or 0

    def list_since(self, identity: str, since: datetime) -> list[AnalysisEvent]:
        stmt = (
            select(AnalysisHistoryRow)
            .where(AnalysisHistoryRow.ip_address == identity)
            .where(AnalysisHistoryRow.created_at >= _to_db_time(since))
            .order_by(AnalysisHistoryRow.created_at.desc(), AnalysisHistoryRow.id.desc())
        )
        with Session(self._engine) as session:
            return [_row_to_event(row) for row in session.scalars(stmt)]

    def close(self) -> None:
        self._engine.dispose()


def build_history_store(settings) -> HistoryStore:
    """Pick the store implementation from configuration."""
    if settings.database_url:
        return SqlHistoryStore(settings.database_url)
    logger.info("No database_url configured, keeping analysis history in memory")
    return InMemoryHistoryStore()
