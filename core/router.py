"""
router.py

Search-routing decision and live search invocation.

decide() picks exactly one route per turn:
  1. forced     — live-events queries always search; recap and week-note
                  queries never do.
  2. model      — a small JSON classification call to the routing engine.
  3. heuristic  — keyword/shape rules; used whenever the model route
                  fails for any reason.

fetch_search_block() turns a Search decision into a ContextBlock or raises
SearchUnavailable carrying the user-facing notice.
Part of Vesper — Local-First Personal Assistant.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

import config
from browser import search as web_search
from core import intent
from core.errors import EngineError, RouterParseError, SearchError, SearchUnavailable
from core.providers import ContextBlock, SourceKind

_log = logging.getLogger("vesper.router")
_handler = logging.FileHandler(config.LOGS_DIR / "pipeline.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

ROUTER_SYSTEM_PROMPT = """You decide whether a personal assistant should run a live web search before answering.
Return ONLY valid JSON in this exact schema:
{"action":"search|direct|clarify","query":"<search query when action is search>"}

Rules:
- "search": proper nouns, products, people, places, prices, scores, releases,
  or anything that depends on recent or changing information.
- "direct": general knowledge, reasoning, writing, coding, or questions about
  the user's own notes, history or preferences.
- "clarify": the request is too ambiguous to act on.
- For "search", rewrite the request as a concise web search query.
"""

NOTICE_MISSING_KEY = "Live search is not configured. Add a Brave API key (BRAVE_API_KEY) to your .env file."
NOTICE_NO_RESULTS = "I couldn't find any live search results for that."
NOTICE_FAILED = "Live search failed: {error}"

ROUTE_FORCED = "forced"
ROUTE_MODEL = "model"
ROUTE_HEURISTIC = "heuristic"


# ===========================================================================
# Decisions
# ===========================================================================

@dataclass(frozen=True)
class SearchDecision:
    route: str


@dataclass(frozen=True)
class Search(SearchDecision):
    query: str


@dataclass(frozen=True)
class Direct(SearchDecision):
    pass


@dataclass(frozen=True)
class Clarify(SearchDecision):
    pass


def extract_json_object(text: str) -> Optional[str]:
    """Return the substring from the first "{" to the last "}", if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def parse_router_reply(reply: str) -> SearchDecision:
    """
    Parse the routing model's reply.

    Raises:
        RouterParseError: If no JSON object is present, it does not decode,
            the action is unknown, or a search has no query.
    """
    payload_text = extract_json_object(reply)
    if payload_text is None:
        raise RouterParseError("no JSON object in router reply")
    try:
        payload = json.loads(payload_text)
    except json.JSONDecodeError as exc:
        raise RouterParseError(f"invalid router JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise RouterParseError("router JSON is not an object")

    action = str(payload.get("action", "")).strip().lower()
    if action == "search":
        query = payload.get("query")
        if not isinstance(query, str) or not query.strip():
            raise RouterParseError("search action without a query")
        return Search(route=ROUTE_MODEL, query=query.strip())
    if action == "direct":
        return Direct(route=ROUTE_MODEL)
    if action == "clarify":
        return Clarify(route=ROUTE_MODEL)
    raise RouterParseError(f"unknown router action '{action}'")


def forced_decision(query: str, shape: intent.QueryShape) -> Optional[SearchDecision]:
    if shape.is_external_event:
        return Search(route=ROUTE_FORCED, query=query.strip())
    if shape.is_personal_recap or shape.is_week_note:
        return Direct(route=ROUTE_FORCED)
    return None


def should_search_heuristically(query: str) -> bool:
    """
    Keyword and shape rules for when the model route is unavailable.

    Example:
        should_search_heuristically("RTX 5090 price")        # True
        should_search_heuristically("weather in Prague?")    # False
    """
    lowered = query.strip().lower()
    if not lowered or intent.is_weather_question(lowered):
        return False
    if intent.looks_like_entity_query(query):
        return True
    if intent.has_recency_cue(lowered):
        return True
    return intent.is_located_question(lowered)


def decide(query: str, shape: intent.QueryShape, engine=None, use_model: bool = True) -> SearchDecision:
    """
    Decide whether this turn searches.

    Args:
        query: Raw user text.
        shape: The query's intent flags.
        engine: Routing engine (BaseEngine). None skips the model route.
        use_model: False skips the model route.

    Returns:
        Search, Direct or Clarify with its route.
    """
    decision = forced_decision(query, shape)
    if decision is None and engine is not None and use_model:
        messages = [
            {"role": "system", "content": ROUTER_SYSTEM_PROMPT},
            {"role": "user", "content": query},
        ]
        try:
            decision = parse_router_reply(engine.chat(messages))
        except (EngineError, RouterParseError) as exc:
            _log.info("ROUTER FALLBACK | reason=%s", exc)
    if decision is None:
        if should_search_heuristically(query):
            decision = Search(route=ROUTE_HEURISTIC, query=query.strip())
        else:
            decision = Direct(route=ROUTE_HEURISTIC)

    _log.info("ROUTE | route=%s | decision=%s | query='%s'", decision.route, type(decision).__name__, query[:50])
    return decision


# ===========================================================================
# Search execution
# ===========================================================================

def fetch_search_block(
    decision: Search,
    api_key: Optional[str] = None,
    max_results: Optional[int] = None,
) -> ContextBlock:
    """
    Run the live search for a Search decision.

    Args:
        decision: The Search decision.
        api_key: Brave key. Defaults to config.BRAVE_API_KEY.
        max_results: Defaults to config.SEARCH_MAX_RESULTS.

    Returns:
        A SEARCH ContextBlock labelled with the query.

    Raises:
        SearchUnavailable: Missing key, no results, or transport failure,
            each with its own notice.
    """
    key = config.BRAVE_API_KEY if api_key is None else api_key
    if not key.strip():
        raise SearchUnavailable(NOTICE_MISSING_KEY, "missing_key")

    try:
        results = web_search.search(
            decision.query,
            key.strip(),
            max_results=max_results or config.SEARCH_MAX_RESULTS,
            freshness=web_search.detect_freshness(decision.query),
        )
    except SearchError as exc:
        raise SearchUnavailable(NOTICE_FAILED.format(error=exc), "transport") from exc

    if not results:
        raise SearchUnavailable(NOTICE_NO_RESULTS, "empty")

    return ContextBlock(
        source_kind=SourceKind.SEARCH,
        label=decision.query,
        body=web_search.format_results_for_llm(results),
        units_counted=len(results),
    )
