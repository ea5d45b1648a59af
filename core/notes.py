"""
notes.py

Notes provider over a read-only Markdown vault (Obsidian-style).

Three branches, checked in order:
  1. Live-events query   -> abstain and ask the caller to prefer search.
  2. Date reference      -> daily ("YYYY-MM-DD") and weekly ("YYYY-Www")
                            notes inside the resolved window.
  3. Anything else       -> lexical search, top MAX_RESULTS notes.

One included note is one counted unit. Note bodies share a budget of
MAX_CONTEXT_CHARS characters per query.
Part of Vesper — Local-First Personal Assistant.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import Optional

import config
from core import intent
from core.dates import DateRange, DateReference, IsoWeek, date_in_range, parse_daily_name, parse_weekly_name
from core.errors import ProviderIOError, StoreConfigurationError
from core.providers import ContextBlock, ContextProvider, ProviderResult, SourceKind
from core.tokens import TokenSet, content_tokens, count_occurrences, line_matches_tokens, normalize_for_match

_log = logging.getLogger("vesper.providers.notes")
_handler = logging.FileHandler(config.LOGS_DIR / "providers.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

DAILY_LINES = 12
WEEKLY_LINES = 40
DETAIL_LINES = 120
SNIPPET_LINES = 20
MAX_RESULTS = 8
MIN_TITLE_MATCH = 3
MAX_CONTEXT_CHARS = 32000

NOTICE_NO_VAULT = "Notes vault is not configured."
NOTICE_NO_MATCH = 'No matching notes found for "{query}".'

BODY_WEIGHT = 2
TITLE_WEIGHT = 3


# ===========================================================================
# Vault
# ===========================================================================

@dataclass(frozen=True)
class Note:
    path: Path
    title: str
    content: str
    day: Optional[date] = None
    week: Optional[IsoWeek] = None

    @property
    def kind(self) -> str:
        if self.day is not None:
            return "daily"
        if self.week is not None:
            return "weekly"
        return "note"

    def date_range(self) -> Optional[DateRange]:
        if self.day is not None:
            return DateRange(self.day, self.day)
        if self.week is not None:
            return self.week.date_range()
        return None


class NoteVault:
    """
    A directory of Markdown notes, scanned recursively in sorted path order.

    Parsed notes are cached per path and re-read when the file's mtime changes.

    Raises:
        StoreConfigurationError: From notes() if the path exists but is not a directory.
    """

    def __init__(self, path: str | Path | None) -> None:
        self.path = Path(path) if path else None
        self._cache: dict[Path, tuple[int, Note]] = {}
        self._lock = threading.Lock()

    def validate(self) -> None:
        if self.path is not None and self.path.exists() and not self.path.is_dir():
            raise StoreConfigurationError(f"notes vault {self.path} is not a directory")

    def _load(self, file_path: Path) -> Note:
        try:
            mtime = file_path.stat().st_mtime_ns
        except OSError as exc:
            raise ProviderIOError(f"cannot stat {file_path}: {exc}") from exc
        with self._lock:
            cached = self._cache.get(file_path)
        if cached is not None and cached[0] == mtime:
            return cached[1]
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ProviderIOError(f"cannot read {file_path}: {exc}") from exc
        title = file_path.stem
        note = Note(
            path=file_path,
            title=title,
            content=content,
            day=parse_daily_name(title),
            week=parse_weekly_name(title),
        )
        with self._lock:
            self._cache[file_path] = (mtime, note)
        return note

    def notes(self) -> list[Note]:
        """Return every readable note. Missing vault -> []."""
        self.validate()
        if self.path is None or not self.path.is_dir():
            return []
        loaded = []
        for file_path in sorted(self.path.rglob("*.md")):
            if not file_path.is_file():
                continue
            try:
                loaded.append(self._load(file_path))
            except ProviderIOError as exc:
                _log.warning("NOTE SKIP | %s", exc)
        return loaded


# ===========================================================================
# Snippets
# ===========================================================================

def extract_checklist(content: str) -> list[str]:
    """Return "- [ ]" / "- [x]" lines, stripped."""
    return [line.strip() for line in content.splitlines() if line.strip().startswith("- [")]


def head_lines(content: str, limit: int) -> str:
    return "\n".join(content.strip().splitlines()[:limit]).strip()


def extract_snippet(content: str, tokens: TokenSet, trailing: int) -> str:
    """
    One line of leading context plus up to `trailing` lines starting at the
    first line that contains a token. Falls back to the head of the note.
    """
    lines = content.splitlines()
    for index, line in enumerate(lines):
        if line_matches_tokens(line, tokens):
            start = max(0, index - 1)
            return "\n".join(lines[start:index + trailing]).strip()
    return "\n".join(lines[:trailing]).strip()


def score_note(note: Note, tokens: TokenSet) -> int:
    """BODY_WEIGHT per body occurrence plus TITLE_WEIGHT per title occurrence."""
    return sum(
        BODY_WEIGHT * count_occurrences(note.content, token)
        + TITLE_WEIGHT * count_occurrences(note.title, token)
        for token in tokens
    )


def clamp_blocks(blocks: list[ContextBlock], limit: int = MAX_CONTEXT_CHARS) -> list[ContextBlock]:
    """
    Keep blocks in order until their bodies reach `limit` characters.
    The block that crosses the limit is cut short; later blocks are dropped.
    """
    kept = []
    remaining = limit
    for block in blocks:
        body = block.body if len(block.body) <= remaining else block.body[:remaining].rstrip()
        if not body.strip():
            break
        kept.append(block if body == block.body else replace(block, body=body))
        remaining -= len(body)
        if remaining <= 0:
            break
    if len(kept) < len(blocks):
        _log.info("NOTES CLAMPED | kept=%d | dropped=%d | limit=%d", len(kept), len(blocks) - len(kept), limit)
    return kept


def _note_block(note: Note, body: str) -> Optional[ContextBlock]:
    if not body.strip():
        return None
    label = note.title if note.kind == "note" else f"{note.title} ({note.kind} note)"
    return ContextBlock(SourceKind.NOTES, label, body)


# ===========================================================================
# Provider
# ===========================================================================

class NotesProvider(ContextProvider):
    """
    Example:
        provider = NotesProvider(NoteVault("~/Obsidian/Main"))
        provider.retrieve(tokens, IsoWeek(2026, 3), "what did i write last week?")
    """

    kind = SourceKind.NOTES

    def __init__(self, vault: NoteVault) -> None:
        self.vault = vault

    def retrieve(self, tokens: TokenSet, date_ref: Optional[DateReference], raw_query: str) -> ProviderResult:
        shape = intent.analyze(raw_query)
        if shape.is_external_event:
            _log.info("NOTES ABSTAIN | live-events query")
            return ProviderResult(prefer_search=True)

        if date_ref is not None:
            blocks = self._window_blocks(date_ref.as_range(), shape)
            branch = "window"
        elif shape.is_small_talk:
            blocks = []
            branch = "small-talk"
        else:
            blocks = self._search_blocks(tokens, raw_query, shape)
            branch = "search"

        blocks = clamp_blocks(blocks)
        _log.info("NOTES | branch=%s | notes=%d", branch, len(blocks))
        if not blocks and branch != "small-talk" and shape.mentions_notes:
            blocks = [self._notice_block(raw_query)]
        return ProviderResult(blocks=blocks, units_used=sum(block.units_counted for block in blocks))

    def _notice_block(self, raw_query: str) -> ContextBlock:
        """Zero-unit block telling the model an explicit notes lookup came up empty."""
        if self.vault.path is None:
            text = NOTICE_NO_VAULT
        else:
            text = NOTICE_NO_MATCH.format(query=raw_query.strip())
        return ContextBlock(SourceKind.NOTES, "Notes lookup", text, units_counted=0)

    def _window_blocks(self, window: DateRange, shape: intent.QueryShape) -> list[ContextBlock]:
        selected = []
        for note in self.vault.notes():
            span = note.date_range()
            if span is None or not (date_in_range(span.start, window) and date_in_range(span.end, window)):
                continue
            selected.append(note)
        selected.sort(key=lambda note: (note.kind != "weekly", note.date_range().start))

        blocks = []
        for note in selected:
            if shape.is_checklist:
                body = "\n".join(extract_checklist(note.content)[:DETAIL_LINES])
            elif shape.wants_details:
                body = head_lines(note.content, DETAIL_LINES)
            else:
                budget = WEEKLY_LINES if note.kind == "weekly" else DAILY_LINES
                body = head_lines(note.content, budget)
            block = _note_block(note, body)
            if block is not None:
                blocks.append(block)
        return blocks

    def _search_blocks(self, tokens: TokenSet, raw_query: str, shape: intent.QueryShape) -> list[ContextBlock]:
        search_tokens = tuple(token for token in content_tokens(tokens) if token not in intent.NOTE_WORDS)
        if not search_tokens:
            return []
        normalized_query = normalize_for_match(raw_query)
        trailing = DETAIL_LINES if shape.wants_details else SNIPPET_LINES

        ranked = []
        for index, note in enumerate(self.vault.notes()):
            if not note.content.strip():
                continue
            normalized_title = normalize_for_match(note.title)
            direct = (
                shape.mentions_notes
                and len(normalized_title) >= MIN_TITLE_MATCH
                and normalized_title in normalized_query
            )
            score = score_note(note, search_tokens)
            if not direct and score == 0:
                continue
            ranked.append((0 if direct else 1, -score, index, note, direct))
        ranked.sort(key=lambda entry: entry[:3])

        blocks = []
        for _, _, _, note, direct in ranked[:MAX_RESULTS]:
            snippet = extract_snippet(note.content, search_tokens, DETAIL_LINES if direct else trailing)
            block = _note_block(note, snippet)
            if block is not None:
                blocks.append(block)
        return blocks
