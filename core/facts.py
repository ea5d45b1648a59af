"""
facts.py

Facts provider: persistent personal facts from two text files.

  profile.md   — [always] sections (always included) and
                 [context:<topic>] sections (included on topic match).
  memories.md  — [context:<tag>] sections of one-fact lines with
                 "value | key=value" metadata.

One included section is one counted unit. Always-on sections are
included but not counted.
Part of Vesper — Local-First Personal Assistant.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import config
from core.dates import DateReference
from core.errors import ProviderIOError, StoreConfigurationError
from core.providers import ContextBlock, ContextProvider, ProviderResult, SourceKind
from core.tokens import TokenSet, content_tokens, extract_keywords, line_matches_tokens, tokenize_query

_log = logging.getLogger("vesper.providers.facts")
_handler = logging.FileHandler(config.LOGS_DIR / "providers.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

ALWAYS_TAG = "always"
_PLACEHOLDERS = ("n/a", "na", "none")


@dataclass(frozen=True)
class FactSection:
    tag: str
    lines: tuple[str, ...]

    @property
    def always_on(self) -> bool:
        return self.tag == ALWAYS_TAG

    @property
    def body(self) -> str:
        return "\n".join(self.lines).strip()


def _section_header(line: str) -> Optional[str]:
    stripped = line.strip()
    if stripped.lower() == "[always]":
        return ALWAYS_TAG
    lowered = stripped.lower()
    if lowered.startswith("[context:") and lowered.endswith("]"):
        return lowered[len("[context:"):-1].strip()
    return None


def parse_sections(text: str) -> list[FactSection]:
    """
    Split section-tagged text into FactSections, in file order.

    Text before the first header is ignored. Repeated tags are merged.

    Example:
        parse_sections("[always]\\nName: Ada\\n[context:coffee]\\nFlat white")
        # [FactSection("always", ("Name: Ada",)), FactSection("coffee", ("Flat white",))]
    """
    order: list[str] = []
    collected: dict[str, list[str]] = {}
    current: Optional[str] = None
    for line in text.splitlines():
        tag = _section_header(line)
        if tag is not None:
            current = tag
            if tag not in collected:
                order.append(tag)
                collected[tag] = []
            continue
        if current is not None:
            collected[current].append(line.rstrip())
    sections = []
    for tag in order:
        lines = tuple(collected[tag])
        while lines and not lines[-1].strip():
            lines = lines[:-1]
        while lines and not lines[0].strip():
            lines = lines[1:]
        sections.append(FactSection(tag, lines))
    return sections


def clean_memory_line(line: str) -> str:
    """Strip list bullets; return "" for blank or placeholder values."""
    value = line.strip()
    for prefix in ("- ", "* ", "• "):
        if value.startswith(prefix):
            value = value[len(prefix):].strip()
    head = value.split("|", 1)[0].strip().lower()
    if not head or head in _PLACEHOLDERS or head.startswith("<value"):
        return ""
    return value


def parse_memories(text: str) -> list[FactSection]:
    """Parse the memories file, dropping placeholder lines and [always] sections."""
    sections = []
    for section in parse_sections(text):
        if section.always_on:
            continue
        lines = tuple(cleaned for cleaned in (clean_memory_line(line) for line in section.lines) if cleaned)
        if lines:
            sections.append(FactSection(section.tag, lines))
    return sections


def topic_matches(section: FactSection, tokens: TokenSet) -> bool:
    """
    A topic section matches if its tag or any body keyword is a query token.

    Stopwords on either side never produce a match.
    """
    query_terms = set(content_tokens(tokens))
    if not query_terms:
        return False
    if set(tokenize_query(section.tag)) & query_terms:
        return True
    return bool(extract_keywords(section.body) & query_terms)


class FactsProvider(ContextProvider):
    """
    Reads the profile and memories files on every retrieve().

    Example:
        provider = FactsProvider(Path("data/profile/profile.md"), Path("data/profile/memories.md"))
        result = provider.retrieve(("coffee",), None, "coffee?")
    """

    kind = SourceKind.FACTS

    def __init__(self, profile_path: Optional[Path] = None, memories_path: Optional[Path] = None) -> None:
        self.profile_path = Path(profile_path or config.PROFILE_FILE)
        self.memories_path = Path(memories_path or config.MEMORIES_FILE)

    def _read(self, path: Path) -> str:
        if not path.exists():
            return ""
        if path.is_dir():
            raise StoreConfigurationError(f"facts file {path} is a directory")
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ProviderIOError(f"cannot read {path}: {exc}") from exc

    def _read_or_skip(self, path: Path) -> str:
        try:
            return self._read(path)
        except ProviderIOError as exc:
            _log.warning("FACTS SKIP | %s", exc)
            return ""

    def retrieve(self, tokens: TokenSet, date_ref: Optional[DateReference], raw_query: str) -> ProviderResult:
        blocks: list[ContextBlock] = []

        for section in parse_sections(self._read_or_skip(self.profile_path)):
            if not section.body:
                continue
            if section.always_on:
                blocks.append(ContextBlock(SourceKind.FACTS, ALWAYS_TAG, section.body, 0, always_on=True))
            elif topic_matches(section, tokens):
                blocks.append(ContextBlock(SourceKind.FACTS, section.tag, section.body))

        query_terms = content_tokens(tokens)
        query_words = set(query_terms)
        for section in parse_memories(self._read_or_skip(self.memories_path)):
            if set(tokenize_query(section.tag)) & query_words:
                lines = section.lines
            else:
                lines = tuple(line for line in section.lines if line_matches_tokens(line, query_terms))
            if lines:
                blocks.append(ContextBlock(SourceKind.FACTS, section.tag, "\n".join(lines)))

        counted = sum(block.units_counted for block in blocks)
        _log.debug("FACTS | blocks=%d | counted=%d", len(blocks), counted)
        return ProviderResult(blocks=blocks, units_used=counted)
