"""Tests for the CLI entry point helpers."""

from unittest.mock import MagicMock, patch

import main
from core.pipeline import TurnResult
from core.providers import ContextUsage
from core.verification import VerificationOutcome


class TestParseArgs:
    def test_defaults(self):
        args = main.parse_args([])
        assert (args.command, args.engine, args.no_verify) == ("chat", None, False)

    def test_flags(self):
        args = main.parse_args(["chat", "--engine", "remote", "--no-verify"])
        assert (args.engine, args.no_verify) == ("remote", True)


class TestFormatResult:
    def test_plain_answer(self):
        assert main.format_result(TurnResult(answer="Hello.")) == "Hello."

    def test_usage_footer(self):
        result = TurnResult(
            answer="You wrote about the report.",
            usage=ContextUsage(notes_used=2, history_used=0, facts_used=1),
            verification=VerificationOutcome.CONFIRMED,
        )
        assert main.format_result(result) == (
            "You wrote about the report.\n(notes: 2, history: 0, facts: 1, confirmed)"
        )

    def test_warnings_first(self):
        result = TurnResult(answer="Hi.", warnings=["Notes disabled: bad path"])
        assert main.format_result(result) == "! Notes disabled: bad path\nHi."


class TestChatLoop:
    def test_records_answers_and_saves_summary(self, engine):
        pipeline = MagicMock()
        pipeline.submit.return_value.result.return_value = TurnResult(answer="Hi!")
        store = MagicMock()

        with patch("builtins.input", side_effect=["hello", "exit"]), \
                patch("main.save_conversation_summary") as mock_save:
            main.chat_loop(pipeline, engine, store)

        history = mock_save.call_args[0][3]
        assert history == [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "Hi!"},
        ]

    def test_notices_are_not_recorded(self, engine):
        pipeline = MagicMock()
        pipeline.submit.return_value.result.return_value = TurnResult(notice="Live search is not configured.")

        with patch("builtins.input", side_effect=["news today?", "quit"]), \
                patch("main.save_conversation_summary") as mock_save:
            main.chat_loop(pipeline, engine, MagicMock())

        assert mock_save.call_args[0][3] == []

    def test_config_command(self, capsys):
        assert main.main(["config"]) == 0
        assert "OLLAMA_MODEL" in capsys.readouterr().out
