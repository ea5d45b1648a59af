"""
search.py

Live web search for Vesper via the Brave Search API.
Requires BRAVE_API_KEY; callers decide what to tell the user when it is
missing or when nothing comes back.
Part of Vesper — Local-First Personal Assistant.
"""

import html
import logging
import re
from typing import Optional

import requests

import config
from core.errors import SearchError

_log = logging.getLogger("vesper.browser")
_log_file = config.LOGS_DIR / "browser.log"
_handler = logging.FileHandler(_log_file)
_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)-8s | %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"

# Brave freshness codes: past day / week / month / year.
_FRESHNESS_RULES = (
    ("pd", ("today", "right now", "this morning", "this evening", "tonight")),
    ("pw", ("this week", "recent", "recently", "past few days")),
    ("pm", ("this month",)),
    ("py", ("this year",)),
)
_YEAR_TOKEN = re.compile(r"\b(19|20)\d{2}\b")


def detect_freshness(query: str) -> Optional[str]:
    """
    Derive a Brave freshness filter from time cues in the query.

    Args:
        query: The search query.

    Returns:
        "pd", "pw", "pm", "py" or None.

    Example:
        detect_freshness("football scores today")  # "pd"
    """
    lowered = query.lower()
    for code, phrases in _FRESHNESS_RULES:
        if any(phrase in lowered for phrase in phrases):
            return code
    if _YEAR_TOKEN.search(lowered):
        return "py"
    return None


def search(
    query: str,
    api_key: str,
    max_results: int = 8,
    freshness: Optional[str] = None,
    timeout: float = 15,
) -> list[dict]:
    """
    Search the web with Brave.

    Args:
        query: The search query string.
        api_key: Brave subscription token.
        max_results: Maximum number of results to return. Defaults to 8.
        freshness: Optional Brave freshness code (see detect_freshness).
        timeout: Request timeout in seconds.

    Returns:
        A list of result dicts, each with title, url, snippet.

    Raises:
        SearchError: On timeout, HTTP error or a malformed body.

    Example:
        results = search("Prague events today", api_key, freshness="pd")
        for r in results:
            print(r["title"], r["url"])
    """
    _log.info("SEARCH | query='%s' | max_results=%d | freshness=%s", query[:50], max_results, freshness)

    params = {"q": query, "count": max_results}
    if freshness:
        params["freshness"] = freshness
    headers = {
        "Accept": "application/json",
        "X-Subscription-Token": api_key,
    }

    try:
        response = requests.get(BRAVE_SEARCH_URL, params=params, headers=headers, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.Timeout as exc:
        _log.warning("SEARCH | timeout for query='%s'", query[:50])
        raise SearchError("search request timed out") from exc
    except requests.exceptions.RequestException as exc:
        _log.error("SEARCH | error: %s", exc)
        raise SearchError(str(exc)) from exc
    except ValueError as exc:
        _log.error("SEARCH | invalid JSON: %s", exc)
        raise SearchError("search returned an invalid response") from exc

    if not isinstance(data, dict):
        raise SearchError("search returned an invalid response")

    results = []
    items = (data.get("web") or {}).get("results") or []
    for item in items[:max_results]:
        title = _clean_html(item.get("title", ""))
        url = item.get("url", "")
        if not (title and url):
            continue
        results.append(
            {
                "title": title,
                "url": url,
                "snippet": _clean_html(item.get("description", "")),
            }
        )

    _log.info("SEARCH COMPLETE | query='%s' | results=%d", query[:50], len(results))
    return results


def format_results_for_llm(results: list[dict]) -> str:
    """
    Render results as a numbered plain-text list for a prompt.

    Example:
        format_results_for_llm([{"title": "A", "url": "https://a", "snippet": "x"}])
        # "1. A\n   https://a\n   x"
    """
    lines = []
    for index, result in enumerate(results, start=1):
        lines.append(f"{index}. {result['title']}")
        lines.append(f"   {result['url']}")
        if result.get("snippet"):
            lines.append(f"   {result['snippet']}")
    return "\n".join(lines)


def _clean_html(text: str) -> str:
    """
    Remove HTML tags and decode entities.

    Brave wraps matched terms in <strong> tags.

    Args:
        text: Text with HTML.

    Returns:
        Clean text.
    """
    text = html.unescape(re.sub(r"<[^>]+>", "", text))
    text = re.sub(r"\s+", " ", text)
    return text.strip()
