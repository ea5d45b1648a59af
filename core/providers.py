"""
providers.py

Shared types for context source providers.
A provider turns (TokenSet, DateReference, raw query) into zero or more
ContextBlocks. Providers never see each other; the prompt assembler only
depends on this interface.
Part of Vesper — Local-First Personal Assistant.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from core.dates import DateReference
from core.tokens import TokenSet


class SourceKind(str, Enum):
    FACTS = "facts"
    HISTORY = "history"
    NOTES = "notes"
    SEARCH = "search"
    IDENTITY = "identity"
    PERSONALITY = "personality"


@dataclass(frozen=True)
class ContextBlock:
    """
    One unit of retrieved context.

    Attributes:
        source_kind: Which provider produced it.
        label: Short heading (section tag, note title, summary date, query).
        body: The text placed in the prompt. Never empty.
        units_counted: Relevance units this block contributes to ContextUsage.
        always_on: True for facts included by an [always] rule rather than
            a query match.

    Raises:
        ValueError: If body is blank.
    """

    source_kind: SourceKind
    label: str
    body: str
    units_counted: int = 1
    always_on: bool = False

    def __post_init__(self) -> None:
        if not self.body or not self.body.strip():
            raise ValueError(f"empty {self.source_kind.value} block '{self.label}'")


@dataclass(frozen=True)
class ContextUsage:
    """How many relevance units each provider contributed to a turn."""

    notes_used: int = 0
    history_used: int = 0
    facts_used: int = 0

    def any(self) -> bool:
        return bool(self.notes_used or self.history_used or self.facts_used)


@dataclass
class ProviderResult:
    """What a provider returns for one query."""

    blocks: list[ContextBlock] = field(default_factory=list)
    units_used: int = 0
    prefer_search: bool = False


class ContextProvider(ABC):
    """
    Base class for facts, history and notes providers.

    Implementations are read-only with respect to their backing store and
    must never return an empty ContextBlock.
    """

    kind: SourceKind

    @abstractmethod
    def retrieve(
        self,
        tokens: TokenSet,
        date_ref: Optional[DateReference],
        raw_query: str,
    ) -> ProviderResult:
        """
        Retrieve context for one query.

        Args:
            tokens: The turn's shared TokenSet.
            date_ref: The resolved DateReference, if any.
            raw_query: The original user text.

        Returns:
            A ProviderResult; empty when nothing matched.
        """
        ...

    def get_name(self) -> str:
        return self.kind.value
