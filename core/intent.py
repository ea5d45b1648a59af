"""
intent.py

Declarative trigger tables and query-shape predicates.
Every keyword list the pipeline reacts to lives here so the
classifier, providers and router agree on what a query "looks like".
Part of Vesper — Local-First Personal Assistant.
"""

import re
from dataclasses import dataclass

from core.dates import parse_week_token
from core.tokens import contains_any, contains_word, starts_any_word

# ===========================================================================
# Trigger tables
# ===========================================================================

TIME_TRIGGERS = ("what time", "current time", "time is it")
DATE_TRIGGERS = ("what date", "what day is", "what's the date", "whats the date")
DAY_KEYWORDS = ("day after tomorrow", "day before yesterday", "today", "tomorrow", "yesterday")
WEATHER_TERMS = ("weather", "forecast", "temperature", "temp", "rain", "snow", "wind", "humidity")

# Words allowed around a bare day keyword for it to still count as a date question.
DATE_FILLER = frozenset({
    "what", "what's", "whats", "is", "it", "the", "date", "day", "was", "will",
    "be", "of", "week", "which", "tell", "me", "please", "and", "s",
})

EVENT_TERMS = ("happening", "happened", "news", "events", "what is going on", "what's going on")
EVENT_TIME_TERMS = ("today", "current", "latest", "now")
_LOCATION_CUE = re.compile(r"\b(?:in|near|at)\s+(?!my\b|our\b|your\b|the\s+notes?\b)\w")

RECAP_TRIGGERS = (
    "discuss", "recap", "summary", "happened", "remember", "catch me up",
    "what did we", "what have we", "what were we", "what we talked", "my week",
)
PERSONAL_RECAP_TRIGGERS = (
    "summarize my week", "summary of my week", "recap my week", "my week",
    "this week recap", "weekly summary",
)
WEEK_NOTE_TRIGGERS = (
    "weekly note", "week note", "this week", "last week", "next week",
    "weekly checklist", "week checklist",
)
CHECKLIST_TRIGGERS = ("checklist", "todo", "to-do", "tasks", "task list")
DETAIL_WORDS = ("all", "everything", "full", "details", "summarize", "summary", "content", "contains", "list")
DETAIL_PHRASES = (
    "show me", "bring that", "what i have", "what's in", "whats in", "what is in",
    "tell me what", "can you tell",
)
NOTE_WORDS = ("note", "notes", "obsidian", "vault")

SEARCH_TERMS = (
    "search", "look up", "lookup", "find", "latest", "current", "today", "now",
    "news", "update", "release date", "price", "event", "happening",
    "what is going on", "schedule", "score", "stock", "crypto",
)
SEARCH_TIME_CUES = ("this week", "this month")
_YEAR_TOKEN = re.compile(r"\b(?:19|20)\d{2}\b")

SMALL_TALK = frozenset({
    "hi", "hello", "hey", "yo", "sup", "thanks", "thank", "you", "bye", "goodbye",
    "good", "morning", "night", "evening", "afternoon", "ok", "okay", "yes", "no",
    "sure", "yeah", "nah", "cool", "great", "awesome", "nice", "wow", "lol", "haha",
})


# ===========================================================================
# Predicates
# ===========================================================================

def is_time_question(lowered: str) -> bool:
    return contains_any(lowered, TIME_TRIGGERS)


def is_weather_question(lowered: str) -> bool:
    """Whole-word match so "temple" or "attempt" never count."""
    return any(contains_word(lowered, term) for term in WEATHER_TERMS)


def is_date_question(lowered: str) -> bool:
    """
    True for "what date is it", "what day is tomorrow", "today's date?",
    or a bare "today?" / "tomorrow". A day keyword inside a longer request
    ("what did I write yesterday") does not count.
    """
    if contains_any(lowered, DATE_TRIGGERS):
        return True
    remainder = lowered
    found = False
    for keyword in DAY_KEYWORDS:
        if keyword in remainder:
            found = True
            remainder = remainder.replace(keyword, " ")
    if not found:
        return False
    words = (word.strip("'") for word in re.findall(r"[a-z']+", remainder))
    return all(word in DATE_FILLER for word in words if word)


def is_external_event_query(lowered: str) -> bool:
    """
    Live/real-world events: an event term plus a time term or a location.

    Example:
        is_external_event_query("what's happening today in prague")  # True
        is_external_event_query("what happened in my notes")         # False
    """
    if not starts_any_word(lowered, EVENT_TERMS):
        return False
    return starts_any_word(lowered, EVENT_TIME_TERMS) or _LOCATION_CUE.search(lowered) is not None


def is_personal_recap_query(lowered: str) -> bool:
    return contains_any(lowered, PERSONAL_RECAP_TRIGGERS)


def is_week_note_query(lowered: str) -> bool:
    return contains_any(lowered, WEEK_NOTE_TRIGGERS) or parse_week_token(lowered) is not None


def has_recap_intent(lowered: str) -> bool:
    return contains_any(lowered, RECAP_TRIGGERS)


def is_checklist_query(lowered: str) -> bool:
    return contains_any(lowered, CHECKLIST_TRIGGERS)


def wants_details(lowered: str) -> bool:
    if contains_any(lowered, DETAIL_PHRASES):
        return True
    return any(contains_word(lowered, word) for word in DETAIL_WORDS)


def mentions_notes(lowered: str) -> bool:
    return any(contains_word(lowered, word) for word in NOTE_WORDS)


def is_small_talk(lowered: str) -> bool:
    words = re.findall(r"[a-z']+", lowered)
    return bool(words) and all(word in SMALL_TALK for word in words)


def looks_like_entity_query(query: str) -> bool:
    """
    Short lookups such as "RTX 5090", "python-dotenv" or "Taylor Swift".

    Args:
        query: Raw (case-preserved) query.
    """
    trimmed = query.strip()
    if not trimmed:
        return False
    word_count = len(trimmed.split())
    if word_count > 4:
        return False
    has_separator = any(ch in trimmed for ch in "-./:")
    has_digit = any(ch.isdigit() for ch in trimmed)
    has_uppercase = any(ch.isupper() for ch in trimmed)
    return has_separator or has_digit or (has_uppercase and word_count <= 3)


def has_recency_cue(lowered: str) -> bool:
    if starts_any_word(lowered, SEARCH_TERMS) or contains_any(lowered, SEARCH_TIME_CUES):
        return True
    return _YEAR_TOKEN.search(lowered) is not None


def is_located_question(lowered: str) -> bool:
    looks_like_question = "?" in lowered or lowered.startswith("what ")
    return looks_like_question and _LOCATION_CUE.search(lowered) is not None


# ===========================================================================
# Query shape
# ===========================================================================

@dataclass(frozen=True)
class QueryShape:
    """All intent flags for one query, computed once per turn."""

    is_external_event: bool
    is_personal_recap: bool
    is_week_note: bool
    has_recap_intent: bool
    is_checklist: bool
    wants_details: bool
    mentions_notes: bool
    is_weather: bool
    is_small_talk: bool


def analyze(query: str) -> QueryShape:
    """
    Compute the QueryShape of a raw query.

    Example:
        analyze("what did i write last week?").is_week_note  # True
    """
    lowered = query.strip().lower()
    return QueryShape(
        is_external_event=is_external_event_query(lowered),
        is_personal_recap=is_personal_recap_query(lowered),
        is_week_note=is_week_note_query(lowered),
        has_recap_intent=has_recap_intent(lowered),
        is_checklist=is_checklist_query(lowered),
        wants_details=wants_details(lowered),
        mentions_notes=mentions_notes(lowered),
        is_weather=is_weather_question(lowered),
        is_small_talk=is_small_talk(lowered),
    )
