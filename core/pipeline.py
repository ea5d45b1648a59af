"""
pipeline.py

Per-turn orchestration:

  classify (fast path, no model)
    -> analyze: providers and the search router run concurrently
    -> searching: live search if the router chose it
    -> generating: primary model call
    -> verifying: optional second pass

Turns run off the caller's thread via submit(); close() abandons
in-flight work without waiting for it.
Part of Vesper — Local-First Personal Assistant.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional

import config
from core import classifier, context, dates, intent, router, verification
from core.errors import (
    EngineError,
    PrimaryModelError,
    ProviderIOError,
    SearchUnavailable,
    StoreConfigurationError,
    TurnCancelled,
)
from core.facts import FactsProvider
from core.history import HistoryProvider
from core.notes import NotesProvider, NoteVault
from core.providers import ContextBlock, ContextProvider, ContextUsage
from core.tokens import tokenize_query
from core.verification import VerificationOutcome

_log = logging.getLogger("vesper.pipeline")
_handler = logging.FileHandler(config.LOGS_DIR / "pipeline.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

STAGE_ANALYZING = "analyzing"
STAGE_SEARCHING = "searching"
STAGE_GENERATING = "generating"
STAGE_VERIFYING = "verifying"

PRIMARY_ERROR_TEXT = "Sorry, I couldn't generate a response: {error}"


@dataclass
class TurnResult:
    """
    Outcome of one turn. Exactly one of answer, notice, error is set
    unless the turn was cancelled.
    """

    answer: Optional[str] = None
    usage: ContextUsage = field(default_factory=ContextUsage)
    verification: VerificationOutcome = VerificationOutcome.UNVERIFIED
    notice: Optional[str] = None
    error: Optional[str] = None
    deterministic: bool = False
    route: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def text(self) -> str:
        return self.answer or self.notice or self.error or ""


def default_providers(history_store=None) -> list[ContextProvider]:
    """Facts, history and notes providers wired to configuration."""
    if history_store is None:
        from database.history_store import HistoryStore

        history_store = HistoryStore()
    return [
        FactsProvider(),
        HistoryProvider(history_store),
        NotesProvider(NoteVault(config.NOTES_VAULT_PATH)),
    ]


class Pipeline:
    """
    Runs turns for one conversation.

    Example:
        pipeline = Pipeline(chat_engine=route("chat"), routing_engine=route("routing"))
        future = pipeline.submit("what did i write last week?", history)
        result = future.result()
        pipeline.close()
    """

    def __init__(
        self,
        chat_engine,
        routing_engine=None,
        providers: Optional[list[ContextProvider]] = None,
        verify: Optional[bool] = None,
        model_routing: Optional[bool] = None,
        brave_api_key: Optional[str] = None,
        weather_location: Optional[str] = None,
        weather_fetcher: Optional[Callable[[], dict]] = None,
        search_fetcher: Optional[Callable[..., ContextBlock]] = None,
        overlay_loader: Optional[Callable[[], list[ContextBlock]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        stage_callback: Optional[Callable[[str], None]] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.chat_engine = chat_engine
        self.routing_engine = routing_engine if routing_engine is not None else chat_engine
        self.providers = default_providers() if providers is None else list(providers)
        self.verify_enabled = config.VERIFY_RESPONSES if verify is None else verify
        self.model_routing = config.MODEL_ROUTING_ENABLED if model_routing is None else model_routing
        self.brave_api_key = config.BRAVE_API_KEY if brave_api_key is None else brave_api_key
        self.weather_location = weather_location
        self.weather_fetcher = weather_fetcher
        self.search_fetcher = search_fetcher or router.fetch_search_block
        self.overlay_loader = overlay_loader or context.load_overlay_blocks
        self.clock = clock or datetime.now
        self.stage_callback = stage_callback

        self._closed = threading.Event()
        self._disabled: set[str] = set()
        self._turn_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vesper-turn")
        self._work_executor = ThreadPoolExecutor(
            max_workers=max_workers or config.PIPELINE_WORKERS,
            thread_name_prefix="vesper-work",
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, query: str, chat_history: Iterable[dict] = (), images: Optional[list[str]] = None) -> Future:
        """
        Run a turn on the pipeline's worker thread.

        Returns:
            A Future resolving to a TurnResult.

        Raises:
            RuntimeError: If the pipeline is closed.
        """
        if self._closed.is_set():
            raise RuntimeError("pipeline is closed")
        return self._turn_executor.submit(self.run_turn, query, list(chat_history), images)

    def run_turn(self, query: str, chat_history: Iterable[dict] = (), images: Optional[list[str]] = None) -> TurnResult:
        """
        Run one turn synchronously.

        Args:
            query: The user's message.
            chat_history: Prior messages, oldest first.
            images: Base64 image attachments for this message.

        Returns:
            A TurnResult.
        """
        try:
            return self._run(query, list(chat_history), images)
        except TurnCancelled:
            _log.info("TURN CANCELLED | query='%s'", query[:50])
            return TurnResult(cancelled=True)

    def close(self) -> None:
        """Abandon in-flight work. Does not block."""
        self._closed.set()
        self._turn_executor.shutdown(wait=False, cancel_futures=True)
        self._work_executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "Pipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _stage(self, name: str) -> None:
        self._check_cancel()
        if self.stage_callback is not None:
            self.stage_callback(name)

    def _check_cancel(self) -> None:
        if self._closed.is_set():
            raise TurnCancelled("pipeline closed")

    def _submit(self, fn, *args) -> Future:
        try:
            return self._work_executor.submit(fn, *args)
        except RuntimeError as exc:
            if self._closed.is_set():
                raise TurnCancelled("pipeline closed") from exc
            raise

    def _await(self, future: Future):
        try:
            return future.result()
        except CancelledError as exc:
            raise TurnCancelled("pipeline closed") from exc

    def _run(self, query: str, chat_history: list[dict], images: Optional[list[str]]) -> TurnResult:
        self._check_cancel()
        now = self.clock()

        fast = classifier.classify(
            query,
            now=now,
            weather_location=self.weather_location,
            fetch_weather=self.weather_fetcher,
        )
        if fast is not None:
            return TurnResult(answer=fast.text, deterministic=True)

        self._stage(STAGE_ANALYZING)
        tokens = tokenize_query(query)
        date_ref = dates.resolve(query, now)
        shape = intent.analyze(query)

        active = [provider for provider in self.providers if provider.get_name() not in self._disabled]
        provider_futures = [
            (provider, self._submit(provider.retrieve, tokens, date_ref, query))
            for provider in active
        ]
        route_future = self._submit(router.decide, query, shape, self.routing_engine, self.model_routing)

        blocks, warnings, prefer_search = self._collect(provider_futures)
        decision = self._await(route_future)
        self._check_cancel()

        if prefer_search and not isinstance(decision, router.Search):
            decision = router.Search(route=router.ROUTE_FORCED, query=query.strip())

        if isinstance(decision, router.Search):
            self._stage(STAGE_SEARCHING)
            try:
                blocks.append(self.search_fetcher(decision, self.brave_api_key))
            except SearchUnavailable as exc:
                _log.info("SEARCH NOTICE | reason=%s | query='%s'", exc.reason, decision.query[:50])
                return TurnResult(notice=exc.notice, route=decision.route, warnings=warnings)

        blocks.extend(self.overlay_loader())
        plan = context.build(
            query,
            blocks,
            chat_history,
            now=now,
            images=images,
            clarify=isinstance(decision, router.Clarify),
        )

        self._stage(STAGE_GENERATING)
        try:
            answer = self._generate(plan.messages)
        except PrimaryModelError as exc:
            return TurnResult(
                error=PRIMARY_ERROR_TEXT.format(error=exc),
                usage=plan.usage,
                route=decision.route,
                warnings=warnings,
            )

        outcome = VerificationOutcome.UNVERIFIED
        if (
            self.verify_enabled
            and plan.should_verify
            and answer.strip()
            and verification.has_verifiable_context(plan.system_context)
        ):
            self._stage(STAGE_VERIFYING)
            answer, outcome = verification.verify(self.chat_engine, plan.system_context, answer, plan.should_verify)
        self._check_cancel()

        _log.info(
            "TURN | route=%s | notes=%d | history=%d | facts=%d | verification=%s",
            decision.route, plan.usage.notes_used, plan.usage.history_used,
            plan.usage.facts_used, outcome.value,
        )
        return TurnResult(
            answer=answer,
            usage=plan.usage,
            verification=outcome,
            route=decision.route,
            warnings=warnings,
        )

    def _collect(self, provider_futures) -> tuple[list[ContextBlock], list[str], bool]:
        blocks: list[ContextBlock] = []
        warnings: list[str] = []
        prefer_search = False
        for provider, future in provider_futures:
            try:
                result = self._await(future)
            except StoreConfigurationError as exc:
                self._disabled.add(provider.get_name())
                _log.error("PROVIDER DISABLED | provider=%s | error=%s", provider.get_name(), exc)
                warnings.append(f"{provider.get_name().capitalize()} disabled: {exc}")
                continue
            except ProviderIOError as exc:
                _log.warning("PROVIDER SKIPPED | provider=%s | error=%s", provider.get_name(), exc)
                continue
            blocks.extend(result.blocks)
            prefer_search = prefer_search or result.prefer_search
        return blocks, warnings, prefer_search

    def _generate(self, messages: list[dict]) -> str:
        try:
            return self.chat_engine.chat(messages)
        except EngineError as exc:
            _log.error("PRIMARY FAILED | engine=%s | error=%s", self.chat_engine.get_name(), exc)
            raise PrimaryModelError(str(exc)) from exc
