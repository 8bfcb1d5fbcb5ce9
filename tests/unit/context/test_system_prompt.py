"""Tests for the system preamble builder."""

from notechat.context import build_system_prompt
from notechat.context.preamble import BASE_PREAMBLE
from notechat.core.types import AIContext, NoteExcerpt, SearchResult


class TestBuildSystemPrompt:
    def test_no_context_is_base_preamble(self) -> None:
        assert build_system_prompt(None) == BASE_PREAMBLE
        assert build_system_prompt(AIContext()) == BASE_PREAMBLE

    def test_current_note_block(self) -> None:
        context = AIContext(current_note=NoteExcerpt("n1", "Daily Log", "Met with Sam."))

        prompt = build_system_prompt(context)

        assert prompt.startswith(BASE_PREAMBLE)
        assert '[Current Note: "Daily Log"]\nMet with Sam.\n[End of Note Context]' in prompt
        assert "User has 0 related notes" in prompt

    def test_related_notes_and_search_results(self) -> None:
        context = AIContext(
            related_notes=(NoteExcerpt("a", "Alpha", "first"), NoteExcerpt("b", "Beta", "second")),
            search_results=(SearchResult("c", "Gamma", "hit"),),
        )

        prompt = build_system_prompt(context)

        assert "User has 2 related notes" in prompt
        assert '- "Alpha": first' in prompt
        assert '- "Beta": second' in prompt
        assert "Search results:\n- \"Gamma\": hit" in prompt

    def test_extra_instructions_appended_last(self) -> None:
        context = AIContext(extra_instructions=("Continue where you stopped.",))

        prompt = build_system_prompt(context)

        assert prompt.endswith("Continue where you stopped.")
