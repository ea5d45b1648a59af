"""
history_store.py

Read/write access to persisted conversation summaries.
The history-summary provider only ever calls load_summaries();
the CLI writes a summary when a conversation ends.
Part of Vesper — Local-First Personal Assistant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

import config
from core.errors import StoreConfigurationError
from database.models import ConversationSummary, create_all_tables, get_session

_log = logging.getLogger("vesper.history_store")
_handler = logging.FileHandler(config.LOGS_DIR / "history.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))


@dataclass(frozen=True)
class SummaryRecord:
    """One conversation summary as seen by providers."""

    date: date
    short_summary: str
    detailed_summary: str


class HistoryStore:
    """
    SQLAlchemy-backed store of conversation summaries.

    An unreachable database degrades to "no summaries" and is logged.
    A database directory that cannot be created is a configuration error.

    Example:
        store = HistoryStore("sqlite:///data/vesper.db")
        store.save_summary("c-1", "Trip planning", "Planned the Brno trip.")
        store.load_summaries(date(2026, 1, 12), date(2026, 1, 18))
    """

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url or config.DATABASE_URL
        self._ready = False

    def _ensure_tables(self) -> None:
        if self._ready:
            return
        if self.database_url.startswith("sqlite:///"):
            db_path = self.database_url[len("sqlite:///"):]
            if db_path and db_path != ":memory:":
                try:
                    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    raise StoreConfigurationError(f"cannot create database directory for {db_path}: {exc}") from exc
        create_all_tables(self.database_url)
        self._ready = True

    def load_summaries(self, start: date, end: date) -> list[SummaryRecord]:
        """
        Return summaries created within [start, end], oldest first.

        Args:
            start: First day (inclusive).
            end: Last day (inclusive).

        Returns:
            A list of SummaryRecord. Empty if the store is unavailable.

        Raises:
            StoreConfigurationError: If the database directory cannot be created.
        """
        lower = datetime.combine(start, time.min)
        upper = datetime.combine(end + timedelta(days=1), time.min)
        try:
            self._ensure_tables()
            db = get_session(self.database_url)
            try:
                stmt = (
                    select(ConversationSummary)
                    .where(ConversationSummary.created_at >= lower)
                    .where(ConversationSummary.created_at < upper)
                    .order_by(ConversationSummary.created_at.asc(), ConversationSummary.id.asc())
                )
                rows = list(db.scalars(stmt).all())
            finally:
                db.close()
        except SQLAlchemyError as exc:
            _log.warning("LOAD SUMMARIES FAILED | url=%s | error=%s", self.database_url, exc)
            return []

        _log.debug("LOAD SUMMARIES | start=%s | end=%s | rows=%d", start, end, len(rows))
        return [
            SummaryRecord(
                date=row.created_at.date(),
                short_summary=row.short_summary or "",
                detailed_summary=row.detailed_summary or "",
            )
            for row in rows
        ]

    def save_summary(
        self,
        conversation_id: str,
        short_summary: str,
        detailed_summary: str,
        created_at: datetime | None = None,
    ) -> None:
        """
        Persist one conversation summary.

        Raises:
            SQLAlchemyError: If the write fails (after rollback).
        """
        self._ensure_tables()
        db = get_session(self.database_url)
        try:
            db.add(ConversationSummary(
                conversation_id=conversation_id,
                short_summary=short_summary,
                detailed_summary=detailed_summary,
                created_at=created_at or datetime.now(),
            ))
            db.commit()
            _log.info("SAVED SUMMARY | conversation=%s | short='%s'", conversation_id, short_summary[:60])
        except SQLAlchemyError:
            db.rollback()
            _log.exception("Failed to save conversation summary")
            raise
        finally:
            db.close()
