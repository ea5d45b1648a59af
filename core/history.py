"""
history.py

History-summary provider. Answers "what did we talk about" style
questions from persisted conversation summaries. One summary entry
is one counted unit.
Part of Vesper — Local-First Personal Assistant.
"""

import logging
from datetime import date, datetime
from typing import Callable, Optional, Protocol

import config
from core import intent
from core.dates import DateRange, DateReference, date_in_range, iso_week_of
from core.providers import ContextBlock, ContextProvider, ProviderResult, SourceKind
from core.tokens import TokenSet

_log = logging.getLogger("vesper.providers.history")
_handler = logging.FileHandler(config.LOGS_DIR / "providers.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

FALLBACK_SUMMARY = "Conversation"


class SummarySource(Protocol):
    def load_summaries(self, start: date, end: date) -> list: ...


def summary_text(record) -> str:
    """Short summary, else the detailed one, else a generic label."""
    return (record.short_summary or "").strip() or (record.detailed_summary or "").strip() or FALLBACK_SUMMARY


def format_summary_line(record) -> str:
    return f"- {record.date:%Y-%m-%d}: {summary_text(record)}"


class HistoryProvider(ContextProvider):
    """
    Provider over a HistoryStore-like collaborator.

    Activates on recap wording or on any resolved date reference. Without a
    date reference the current ISO week is used.

    Example:
        provider = HistoryProvider(HistoryStore())
        provider.retrieve(tokens, None, "what did we discuss?")
    """

    kind = SourceKind.HISTORY

    def __init__(self, store: SummarySource, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.store = store
        self.clock = clock or datetime.now

    def _window(self, date_ref: Optional[DateReference]) -> DateRange:
        if date_ref is not None:
            return date_ref.as_range()
        return iso_week_of(self.clock().date()).date_range()

    def retrieve(self, tokens: TokenSet, date_ref: Optional[DateReference], raw_query: str) -> ProviderResult:
        lowered = raw_query.lower()
        if not intent.has_recap_intent(lowered) and date_ref is None:
            return ProviderResult()

        window = self._window(date_ref)
        records = [
            record for record in self.store.load_summaries(window.start, window.end)
            if date_in_range(record.date, window)
        ]
        records.sort(key=lambda record: record.date)

        blocks = [
            ContextBlock(SourceKind.HISTORY, f"{record.date:%Y-%m-%d}", format_summary_line(record))
            for record in records
        ]
        _log.info("HISTORY | window=%s | entries=%d", window.label(), len(blocks))
        return ProviderResult(blocks=blocks, units_used=len(blocks))
