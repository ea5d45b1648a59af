"""Tests for the Markdown notes provider."""

import os
from datetime import date, timedelta
from pathlib import Path

import pytest

from core.dates import IsoWeek, resolve
from core.errors import StoreConfigurationError
from core.notes import (
    MAX_CONTEXT_CHARS,
    MAX_RESULTS,
    NOTICE_NO_MATCH,
    NOTICE_NO_VAULT,
    Note,
    NotesProvider,
    NoteVault,
    clamp_blocks,
    extract_checklist,
    extract_snippet,
    score_note,
)
from core.providers import ContextBlock, SourceKind
from core.tokens import tokenize_query


@pytest.fixture
def populated_vault(vault):
    (vault / "2026-01-13.md").write_text(
        "Morning run 5k\nCalled the plumber\n- [ ] buy milk\n- [x] pay rent\n", encoding="utf-8"
    )
    (vault / "2026-01-14.md").write_text("Quiet day.\n", encoding="utf-8")
    (vault / "2026-W03.md").write_text(
        "# Week 3\nFocus: finish the report\n- [ ] draft intro\n- [x] send invoice\n", encoding="utf-8"
    )
    (vault / "2026-01-20.md").write_text("Outside the window.\n", encoding="utf-8")
    (vault / "Projects").mkdir()
    (vault / "Projects" / "Garden.md").write_text("Plant tomatoes in April.\nBuy compost.\n", encoding="utf-8")
    return vault


def _retrieve(provider, query, date_ref=None):
    return provider.retrieve(tokenize_query(query), date_ref, query)


# =============================================================================
# Date window branch
# =============================================================================


class TestWindowBranch:
    def test_last_week_includes_only_in_range_notes(self, populated_vault):
        provider = NotesProvider(NoteVault(populated_vault))
        result = _retrieve(provider, "what did i write last week?", IsoWeek(2026, 3))

        assert [block.label for block in result.blocks] == [
            "2026-W03 (weekly note)",
            "2026-01-13 (daily note)",
            "2026-01-14 (daily note)",
        ]
        assert result.units_used == len(result.blocks)
        assert "Outside the window" not in "".join(block.body for block in result.blocks)

    def test_checklist_lines_only(self, populated_vault):
        provider = NotesProvider(NoteVault(populated_vault))
        result = _retrieve(provider, "show me my checklist for last week", IsoWeek(2026, 3))

        bodies = {block.label: block.body for block in result.blocks}
        assert bodies == {
            "2026-W03 (weekly note)": "- [ ] draft intro\n- [x] send invoice",
            "2026-01-13 (daily note)": "- [ ] buy milk\n- [x] pay rent",
        }
        assert result.units_used == 2

    def test_daily_budget(self, vault):
        (vault / "2026-01-13.md").write_text("\n".join(f"line {n}" for n in range(30)), encoding="utf-8")
        provider = NotesProvider(NoteVault(vault))
        result = _retrieve(provider, "what did i write last week?", IsoWeek(2026, 3))

        assert len(result.blocks[0].body.splitlines()) == 12

    def test_year_window_is_capped(self, vault, fixed_now):
        line = "Worked on the garden beds and wrote down the plan for the next season."
        day = date(2025, 1, 1)
        while day.year == 2025:
            (vault / f"{day:%Y-%m-%d}.md").write_text("\n".join([line] * 12), encoding="utf-8")
            day += timedelta(days=1)
        provider = NotesProvider(NoteVault(vault))
        query = "what did i write last year?"

        result = _retrieve(provider, query, resolve(query, fixed_now))

        assert 0 < len(result.blocks) < 365
        assert sum(len(block.body) for block in result.blocks) <= MAX_CONTEXT_CHARS
        assert result.blocks[0].label == "2025-01-01 (daily note)"
        assert result.units_used == len(result.blocks)


# =============================================================================
# Lexical search branch
# =============================================================================


class TestSearchBranch:
    def test_keyword_match(self, populated_vault):
        provider = NotesProvider(NoteVault(populated_vault))
        result = _retrieve(provider, "when do I plant tomatoes?")

        assert [block.label for block in result.blocks] == ["Garden"]
        assert "Plant tomatoes in April." in result.blocks[0].body

    def test_direct_title_match_ranks_first(self, populated_vault):
        (populated_vault / "Compost.md").write_text("garden garden garden compost\n", encoding="utf-8")
        provider = NotesProvider(NoteVault(populated_vault))
        result = _retrieve(provider, "what's in my garden note?")

        assert result.blocks[0].label == "Garden"

    def test_higher_score_ranks_first(self, vault):
        (vault / "a.md").write_text("kiwi\n", encoding="utf-8")
        (vault / "b.md").write_text("kiwi kiwi kiwi\n", encoding="utf-8")
        provider = NotesProvider(NoteVault(vault))
        result = _retrieve(provider, "kiwi")

        assert [block.label for block in result.blocks] == ["b", "a"]

    def test_caps_results(self, vault):
        for n in range(MAX_RESULTS + 2):
            (vault / f"fruit-{n:02d}.md").write_text("kiwi\n", encoding="utf-8")
        provider = NotesProvider(NoteVault(vault))

        assert len(_retrieve(provider, "kiwi").blocks) == MAX_RESULTS

    def test_small_talk_skips_search(self, populated_vault):
        provider = NotesProvider(NoteVault(populated_vault))
        assert _retrieve(provider, "thanks!").blocks == []

    def test_deterministic(self, populated_vault):
        provider = NotesProvider(NoteVault(populated_vault))
        first = _retrieve(provider, "plumber report compost")
        second = _retrieve(provider, "plumber report compost")

        assert first.blocks == second.blocks
        assert first.units_used == len(first.blocks) == 3


# =============================================================================
# Abstain and errors
# =============================================================================


class TestAbstainAndErrors:
    def test_live_events_prefer_search(self, populated_vault):
        provider = NotesProvider(NoteVault(populated_vault))
        result = _retrieve(provider, "what's happening today in Prague")

        assert result.prefer_search
        assert result.blocks == []

    def test_explicit_lookup_without_matches_leaves_a_notice(self, populated_vault):
        provider = NotesProvider(NoteVault(populated_vault))
        result = _retrieve(provider, "what do my notes say about sailing?")

        assert [block.body for block in result.blocks] == [
            NOTICE_NO_MATCH.format(query="what do my notes say about sailing?")
        ]
        assert result.blocks[0].units_counted == 0
        assert result.units_used == 0

    def test_explicit_lookup_without_vault(self):
        result = _retrieve(NotesProvider(NoteVault(None)), "check my notes for the wifi password")

        assert [block.body for block in result.blocks] == [NOTICE_NO_VAULT]
        assert result.units_used == 0

    def test_no_notice_without_notes_mention(self, populated_vault):
        assert _retrieve(NotesProvider(NoteVault(populated_vault)), "sailing tips").blocks == []

    def test_file_as_vault_is_configuration_error(self, tmp_path):
        path = tmp_path / "vault.md"
        path.write_text("not a directory", encoding="utf-8")
        provider = NotesProvider(NoteVault(path))

        with pytest.raises(StoreConfigurationError):
            _retrieve(provider, "anything")

    def test_missing_or_unset_vault(self, tmp_path):
        assert NoteVault(tmp_path / "missing").notes() == []
        assert NoteVault(None).notes() == []

    def test_modified_note_is_reloaded(self, vault):
        path = vault / "Ideas.md"
        path.write_text("first draft\n", encoding="utf-8")
        note_vault = NoteVault(vault)
        assert note_vault.notes()[0].content == "first draft\n"

        path.write_text("second draft\n", encoding="utf-8")
        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

        assert note_vault.notes()[0].content == "second draft\n"


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:
    def test_score_weights(self):
        note = Note(path=Path("kiwi.md"), title="kiwi", content="kiwi kiwi")
        assert score_note(note, ("kiwi",)) == 7

    def test_extract_checklist(self):
        assert extract_checklist("a\n  - [ ] one\n- [x] two\n- three") == ["- [ ] one", "- [x] two"]

    def test_extract_snippet_keeps_one_leading_line(self):
        content = "\n".join(["intro", "before", "the plumber came", "after", "end"])
        assert extract_snippet(content, ("plumber",), 2) == "before\nthe plumber came\nafter"

    def test_clamp_blocks_cuts_the_crossing_block(self):
        blocks = [
            ContextBlock(SourceKind.NOTES, "a", "x" * 6),
            ContextBlock(SourceKind.NOTES, "b", "y" * 6),
            ContextBlock(SourceKind.NOTES, "c", "z" * 6),
        ]
        kept = clamp_blocks(blocks, limit=10)

        assert [block.body for block in kept] == ["xxxxxx", "yyyy"]

    def test_clamp_blocks_under_limit(self):
        blocks = [ContextBlock(SourceKind.NOTES, "a", "short")]
        assert clamp_blocks(blocks, limit=10) == blocks
