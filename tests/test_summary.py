"""Tests for end-of-conversation summaries."""

from datetime import datetime
from unittest.mock import MagicMock

from core.errors import EngineError
from core.summary import (
    FALLBACK_SUMMARY,
    build_summary_messages,
    parse_summary_reply,
    save_conversation_summary,
    summarize_conversation,
)

HISTORY = [
    {"role": "user", "content": "Help me plan the Brno trip"},
    {"role": "assistant", "content": "Sure, when are you going?"},
]


class TestParseSummaryReply:
    def test_both_lines(self):
        assert parse_summary_reply("Short: Trip plans\nDetailed: Planned the Brno trip.") == (
            "Trip plans",
            "Planned the Brno trip.",
        )

    def test_short_is_clamped(self):
        short, _ = parse_summary_reply("Short: " + " ".join(f"w{n}" for n in range(20)))
        assert len(short.split()) == 12

    def test_free_text_reply(self):
        assert parse_summary_reply("We planned a trip.") == ("We planned a trip.", "We planned a trip.")

    def test_empty_reply(self):
        assert parse_summary_reply("") == (FALLBACK_SUMMARY, FALLBACK_SUMMARY)


class TestSummarize:
    def test_transcript_in_request(self):
        messages = build_summary_messages(HISTORY + [{"role": "system", "content": "hidden"}])

        assert "User: Help me plan the Brno trip" in messages[1]["content"]
        assert "hidden" not in messages[1]["content"]

    def test_engine_failure_falls_back(self):
        engine = MagicMock()
        engine.chat.side_effect = EngineError("down")
        assert summarize_conversation(engine, HISTORY) == (FALLBACK_SUMMARY, FALLBACK_SUMMARY)

    def test_save(self, engine):
        engine.chat.return_value = "Short: Brno trip\nDetailed: Started planning the Brno trip."
        store = MagicMock()
        when = datetime(2026, 1, 21, 18, 0)

        saved = save_conversation_summary(engine, store, "c-1", HISTORY, created_at=when)

        assert saved == ("Brno trip", "Started planning the Brno trip.")
        store.save_summary.assert_called_once_with(
            "c-1", "Brno trip", "Started planning the Brno trip.", created_at=when
        )

    def test_skips_conversation_without_user_message(self, engine):
        store = MagicMock()
        assert save_conversation_summary(engine, store, "c-2", []) is None
        engine.chat.assert_not_called()
        store.save_summary.assert_not_called()
