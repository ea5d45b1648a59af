"""
classifier.py

Deterministic fast path. Answers time, weather and date questions
without a model call. Rules are checked in table order; the first
match produces a terminal answer.
Part of Vesper — Local-First Personal Assistant.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import config
from core import dates, intent
from core.errors import ClassifierCollaboratorError
from system import weather

_log = logging.getLogger("vesper.classifier")
_handler = logging.FileHandler(config.LOGS_DIR / "pipeline.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))


@dataclass(frozen=True)
class DeterministicAnswer:
    """A terminal answer produced without any model call."""

    kind: str  # "time" | "weather" | "date"
    text: str


WeatherFetcher = Callable[[], dict]


def _answer_time(query: str, now: datetime, location: str, fetch_weather: WeatherFetcher) -> str:
    local = now if now.tzinfo else now.astimezone()
    return local.strftime("%H:%M:%S %Z").strip()


def _answer_weather(query: str, now: datetime, location: str, fetch_weather: WeatherFetcher) -> str:
    try:
        report = fetch_weather()
    except ClassifierCollaboratorError as exc:
        _log.warning("WEATHER FAILED | location=%s | error=%s", location, exc)
        return f"Weather lookup failed: {exc}"
    observed = weather.observed_clock_time(report.get("observed_at", ""))
    text = (
        f"Current weather in {location}: {report['temperature_c']:.1f}°C, "
        f"wind {report['wind_kph']:.1f} km/h"
    )
    if observed:
        text += f" (as of {observed})"
    return text + "."


def _answer_date(query: str, now: datetime, location: str, fetch_weather: WeatherFetcher) -> str:
    reference = dates.resolve(query, now)
    target = reference.value if isinstance(reference, dates.SingleDate) else now.date()
    return dates.format_long_date(target)


def _weather_applies(lowered: str, location: str) -> bool:
    return bool(location) and intent.is_weather_question(lowered)


# (kind, predicate, handler), checked in order.
_RULES = (
    ("time", lambda lowered, location: intent.is_time_question(lowered), _answer_time),
    ("weather", _weather_applies, _answer_weather),
    ("date", lambda lowered, location: intent.is_date_question(lowered), _answer_date),
)


def classify(
    query: str,
    now: Optional[datetime] = None,
    weather_location: Optional[str] = None,
    fetch_weather: Optional[WeatherFetcher] = None,
) -> Optional[DeterministicAnswer]:
    """
    Answer a query deterministically if it is a time, weather or date question.

    Args:
        query: Raw user text.
        now: Reference moment. Defaults to the local clock.
        weather_location: Place name for weather answers. Defaults to
            config.WEATHER_LOCATION; an empty value disables weather answers.
        fetch_weather: Zero-argument callable returning a weather report dict.
            Defaults to system.weather.fetch_current_weather.

    Returns:
        A DeterministicAnswer, or None if the pipeline should continue.

    Example:
        classify("what day is tomorrow?", now=datetime(2026, 1, 21, 9, 0))
        # DeterministicAnswer(kind="date", text="Thursday, January 22, 2026")
    """
    lowered = query.strip().lower()
    if not lowered:
        return None
    moment = now or datetime.now().astimezone()
    location = config.WEATHER_LOCATION if weather_location is None else weather_location
    fetcher = fetch_weather or weather.fetch_current_weather

    for kind, applies, handler in _RULES:
        if applies(lowered, location):
            text = handler(query, moment, location, fetcher)
            _log.info("DETERMINISTIC | kind=%s | query='%s'", kind, query[:50])
            return DeterministicAnswer(kind=kind, text=text)
    return None
