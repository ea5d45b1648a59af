"""Tests for per-turn orchestration."""

from unittest.mock import MagicMock

import pytest

from core.context import CLARIFY_INSTRUCTION, SEARCH_LABEL_PREFIX
from core.errors import EngineError, ProviderIOError, StoreConfigurationError
from core.history import HistoryProvider
from core.notes import NotesProvider, NoteVault
from core.pipeline import Pipeline
from core.providers import ContextBlock, ContextProvider, ProviderResult, SourceKind
from core.router import NOTICE_MISSING_KEY, ROUTE_FORCED, ROUTE_MODEL
from core.verification import VerificationOutcome
from database.history_store import HistoryStore


class FakeProvider(ContextProvider):
    def __init__(self, kind, result=None, error=None):
        self.kind = kind
        self.result = result or ProviderResult()
        self.error = error
        self.calls = 0

    def retrieve(self, tokens, date_ref, raw_query):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def _notes_result():
    block = ContextBlock(SourceKind.NOTES, "Garden", "Plant tomatoes in April.")
    return ProviderResult(blocks=[block], units_used=1)


@pytest.fixture
def make_pipeline(engine, fixed_now):
    created = []

    def _make(**overrides):
        options = dict(
            chat_engine=engine,
            providers=[],
            verify=True,
            model_routing=False,
            brave_api_key="",
            weather_location="",
            overlay_loader=lambda: [],
            clock=lambda: fixed_now,
        )
        options.update(overrides)
        pipeline = Pipeline(**options)
        created.append(pipeline)
        return pipeline

    yield _make
    for pipeline in created:
        pipeline.close()


# =============================================================================
# Fast path and notices
# =============================================================================


class TestShortCircuits:
    def test_deterministic_answer_skips_everything(self, make_pipeline, engine):
        provider = FakeProvider(SourceKind.NOTES)
        result = make_pipeline(providers=[provider]).run_turn("what day is tomorrow?")

        assert result.deterministic
        assert result.answer == "Thursday, January 22, 2026"
        assert provider.calls == 0
        engine.chat.assert_not_called()

    @pytest.mark.parametrize(
        "query",
        ["what time is it?", "what's the date today?", "what's today's date?", "is it going to rain?", "yesterday?"],
    )
    def test_no_model_call_for_deterministic_queries(self, make_pipeline, engine, query):
        report = {"temperature_c": 4.0, "wind_kph": 9.0, "observed_at": "2026-01-21T10:00"}
        routing = MagicMock()
        pipeline = make_pipeline(
            routing_engine=routing,
            model_routing=True,
            weather_location="Prague",
            weather_fetcher=lambda: report,
        )

        assert pipeline.run_turn(query).deterministic
        engine.chat.assert_not_called()
        routing.chat.assert_not_called()

    def test_missing_search_key_ends_turn_with_notice(self, make_pipeline, engine):
        stages = []
        pipeline = make_pipeline(stage_callback=stages.append)

        result = pipeline.run_turn("what's happening today in Prague")

        assert result.notice == NOTICE_MISSING_KEY
        assert result.answer is None
        assert result.route == ROUTE_FORCED
        assert stages == ["analyzing", "searching"]
        engine.chat.assert_not_called()

    def test_provider_can_upgrade_to_search(self, make_pipeline, engine):
        provider = FakeProvider(SourceKind.NOTES, ProviderResult(prefer_search=True))
        result = make_pipeline(providers=[provider]).run_turn("tell me a joke")

        assert result.notice == NOTICE_MISSING_KEY
        engine.chat.assert_not_called()


# =============================================================================
# Generation and verification
# =============================================================================


class TestGeneration:
    def test_primary_error_is_reported(self, make_pipeline, engine):
        engine.chat.side_effect = EngineError("connection refused")
        result = make_pipeline().run_turn("tell me a joke")

        assert result.answer is None
        assert result.error == "Sorry, I couldn't generate a response: connection refused"

    def test_stages_with_verification(self, make_pipeline, engine):
        stages = []
        provider = FakeProvider(SourceKind.NOTES, _notes_result())
        result = make_pipeline(providers=[provider], stage_callback=stages.append).run_turn("when do I plant tomatoes?")

        assert stages == ["analyzing", "generating", "verifying"]
        assert result.verification is VerificationOutcome.CONFIRMED
        assert result.usage.notes_used == 1
        assert engine.chat.call_count == 2

    def test_verification_disabled(self, make_pipeline, engine):
        provider = FakeProvider(SourceKind.NOTES, _notes_result())
        result = make_pipeline(providers=[provider], verify=False).run_turn("when do I plant tomatoes?")

        assert result.verification is VerificationOutcome.UNVERIFIED
        engine.chat.assert_called_once()

    def test_no_context_no_verification(self, make_pipeline, engine):
        result = make_pipeline().run_turn("tell me a joke")

        assert result.answer == "The answer."
        engine.chat.assert_called_once()

    def test_search_results_reach_the_prompt(self, make_pipeline, engine):
        block = ContextBlock(SourceKind.SEARCH, "prague events", "1. Jazz\n   https://example.com", units_counted=1)
        fetcher = MagicMock(return_value=block)
        pipeline = make_pipeline(brave_api_key="key", search_fetcher=fetcher)

        result = pipeline.run_turn("what's happening today in Prague")

        fetcher.assert_called_once()
        assert fetcher.call_args[0][1] == "key"
        system = engine.chat.call_args_list[0][0][0][0]["content"]
        assert SEARCH_LABEL_PREFIX in system
        assert result.verification is VerificationOutcome.CONFIRMED

    def test_model_route_clarify(self, make_pipeline, engine):
        router_engine = MagicMock()
        router_engine.chat.return_value = '{"action": "clarify"}'
        pipeline = make_pipeline(routing_engine=router_engine, model_routing=True)

        result = pipeline.run_turn("that thing from before")

        assert result.route == ROUTE_MODEL
        system = engine.chat.call_args[0][0][0]["content"]
        assert CLARIFY_INSTRUCTION in system

    def test_chat_history_is_forwarded(self, make_pipeline, engine):
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
        make_pipeline().run_turn("tell me a joke", history, images=["AAAA"])

        messages = engine.chat.call_args[0][0]
        assert messages[1:] == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "tell me a joke", "images": ["AAAA"]},
        ]


class TestEndToEnd:
    def test_last_week_notes_are_verified(self, make_pipeline, engine, vault):
        (vault / "2026-W03.md").write_text("# Week 3\nFocus: finish the report\n", encoding="utf-8")
        (vault / "2026-01-13.md").write_text("Called the plumber\n", encoding="utf-8")
        (vault / "2026-01-20.md").write_text("Outside the window\n", encoding="utf-8")
        pipeline = make_pipeline(providers=[NotesProvider(NoteVault(vault))])

        result = pipeline.run_turn("what did i write last week?")

        assert result.usage.notes_used == 2
        assert result.route == ROUTE_FORCED
        assert result.verification is VerificationOutcome.CONFIRMED
        assert engine.chat.call_count == 2
        system = engine.chat.call_args_list[0][0][0][0]["content"]
        assert "### 2026-W03 (weekly note)" in system
        assert "Outside the window" not in system


# =============================================================================
# Provider failures
# =============================================================================


class TestProviderFailures:
    def test_store_configuration_error_warns_once(self, make_pipeline):
        broken = FakeProvider(SourceKind.NOTES, error=StoreConfigurationError("vault is not a directory"))
        pipeline = make_pipeline(providers=[broken])

        first = pipeline.run_turn("tell me a joke")
        second = pipeline.run_turn("tell me another joke")

        assert first.warnings == ["Notes disabled: vault is not a directory"]
        assert second.warnings == []
        assert broken.calls == 1
        assert second.answer == "The answer."

    def test_unusable_history_database_warns_once(self, make_pipeline, tmp_path, fixed_now):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        store = HistoryStore(f"sqlite:///{blocker / 'history.db'}")
        pipeline = make_pipeline(providers=[HistoryProvider(store, clock=lambda: fixed_now)])

        first = pipeline.run_turn("recap please")
        second = pipeline.run_turn("recap please")

        assert len(first.warnings) == 1
        assert first.warnings[0].startswith("History disabled: cannot create database directory")
        assert second.warnings == []
        assert second.answer == "The answer."

    def test_io_error_is_skipped(self, make_pipeline):
        flaky = FakeProvider(SourceKind.FACTS, error=ProviderIOError("cannot read profile.md"))
        working = FakeProvider(SourceKind.NOTES, _notes_result())

        result = make_pipeline(providers=[flaky, working]).run_turn("when do I plant tomatoes?")

        assert result.warnings == []
        assert result.usage.notes_used == 1


# =============================================================================
# Threading and shutdown
# =============================================================================


class TestLifecycle:
    def test_submit_returns_future(self, make_pipeline):
        future = make_pipeline().submit("tell me a joke")
        assert future.result(timeout=5).answer == "The answer."

    def test_close_cancels(self, make_pipeline):
        pipeline = make_pipeline()
        pipeline.close()

        assert pipeline.run_turn("tell me a joke").cancelled
        with pytest.raises(RuntimeError):
            pipeline.submit("tell me a joke")

    def test_context_manager_closes(self, engine, fixed_now):
        with Pipeline(chat_engine=engine, providers=[], clock=lambda: fixed_now) as pipeline:
            pass
        assert pipeline.run_turn("anything").cancelled

    def test_close_during_analysis_cancels(self, make_pipeline):
        holder = {}

        def on_stage(name):
            if name == "analyzing":
                holder["pipeline"].close()

        provider = FakeProvider(SourceKind.NOTES, _notes_result())
        holder["pipeline"] = make_pipeline(providers=[provider], stage_callback=on_stage)

        result = holder["pipeline"].run_turn("tell me a joke")

        assert result.cancelled
        assert provider.calls == 0

    def test_close_from_provider_cancels_queued_work(self, make_pipeline, engine):
        holder = {}

        class ClosingProvider(FakeProvider):
            def retrieve(self, tokens, date_ref, raw_query):
                holder["pipeline"].close()
                return super().retrieve(tokens, date_ref, raw_query)

        holder["pipeline"] = make_pipeline(providers=[ClosingProvider(SourceKind.NOTES)], max_workers=1)

        assert holder["pipeline"].run_turn("tell me a joke").cancelled
        engine.chat.assert_not_called()
