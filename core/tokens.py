"""
tokens.py

Shared tokenizer and lexical scoring helpers.
Every context provider in a turn reuses the same TokenSet.
Part of Vesper — Local-First Personal Assistant.
"""

import re
from typing import Iterable

MIN_TOKEN_LENGTH = 2
MIN_KEYWORD_LENGTH = 3

TokenSet = tuple[str, ...]

_EDGE_PUNCTUATION = re.compile(r"^[^\w-]+|[^\w-]+$")

STOPWORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "if", "then", "else", "about", "to",
    "of", "with", "by", "from", "up", "is", "are", "was", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "can", "could",
    "will", "would", "should", "may", "might", "must", "i", "you", "he",
    "she", "it", "we", "they", "my", "your", "his", "her", "its", "our",
    "their", "what", "when", "where", "why", "how", "which", "who", "whom",
    "me", "know", "in", "on", "at", "for", "any", "there", "this", "that",
    "tell", "show", "give", "please",
})


def tokenize_query(query: str, exclude: Iterable[str] = ()) -> TokenSet:
    """
    Split a query into lowercased, de-duplicated tokens.

    Surrounding punctuation is stripped (hyphens are kept so "2026-W03"
    survives). Tokens shorter than MIN_TOKEN_LENGTH are discarded.

    Args:
        query: Raw user text.
        exclude: Tokens to drop (e.g. "notes" for vault search).

    Returns:
        An immutable tuple of tokens in first-seen order.

    Example:
        tokenize_query("What did I write, last week?")
        # ("what", "did", "write", "last", "week")
    """
    skip = set(exclude)
    tokens: list[str] = []
    for raw in query.split():
        cleaned = _EDGE_PUNCTUATION.sub("", raw).lower()
        if len(cleaned) < MIN_TOKEN_LENGTH or cleaned in skip:
            continue
        if cleaned not in tokens:
            tokens.append(cleaned)
    return tuple(tokens)


def content_tokens(tokens: Iterable[str]) -> TokenSet:
    """Drop STOPWORDS, keeping order."""
    return tuple(token for token in tokens if token not in STOPWORDS)


def normalize_for_match(value: str) -> str:
    """Lowercase and keep only alphanumeric characters."""
    return "".join(ch for ch in value.lower() if ch.isalnum())


def count_occurrences(haystack: str, token: str) -> int:
    """Count non-overlapping occurrences of a normalized token in normalized text."""
    needle = normalize_for_match(token)
    if not needle:
        return 0
    return normalize_for_match(haystack).count(needle)


def line_matches_tokens(line: str, tokens: Iterable[str]) -> bool:
    """Return True if any token appears as a substring of the lowercased line."""
    lowered = line.lower()
    return any(token in lowered for token in tokens)


def extract_keywords(content: str) -> set[str]:
    """
    Split free text on non-alphanumerics and keep words of at least
    MIN_KEYWORD_LENGTH characters.
    """
    words = re.split(r"[\W_]+", content.lower())
    return {word for word in words if len(word) >= MIN_KEYWORD_LENGTH}


def contains_word(text: str, word: str) -> bool:
    """Whole-word, case-insensitive containment check."""
    return re.search(rf"(?<![\w-]){re.escape(word)}(?![\w-])", text.lower()) is not None


def starts_any_word(text: str, terms: Iterable[str]) -> bool:
    """
    True if any term occurs at the start of a word.

    Example:
        starts_any_word("any events now?", ("event",))  # True
        starts_any_word("do you know", ("now",))        # False
    """
    lowered = text.lower()
    return any(re.search(rf"(?<![\w-]){re.escape(term)}", lowered) for term in terms)


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """Substring check against the lowercased text."""
    lowered = text.lower()
    return any(phrase in lowered for phrase in phrases)
