"""System preamble shared by every backend."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notechat.core.types import AIContext

BASE_PREAMBLE = """You are an AI assistant integrated into a personal knowledge management app. You help users with their notes, writing, and knowledge organization.

Guidelines:
- Be helpful and concise
- Reference relevant notes when appropriate
- Suggest connections between ideas
- Help with writing, organizing, and expanding knowledge
- When mentioning specific notes, use their exact names"""


def build_system_prompt(context: AIContext | None) -> str:
    """Build the system message from the budgeted context.

    Note content is expected to be sized already; this only formats it.
    """
    if context is None or context.is_empty:
        return BASE_PREAMBLE

    parts = [
        BASE_PREAMBLE,
        "Current context:\n"
        f"- User has {len(context.related_notes)} related notes in their knowledge base\n"
        "- This conversation may reference existing notes and their connections",
    ]

    if context.current_note is not None:
        note = context.current_note
        parts.append(f'[Current Note: "{note.title}"]\n{note.content}\n[End of Note Context]')

    if context.related_notes:
        lines = ["Relevant notes from the user's knowledge base:"]
        for note in context.related_notes:
            lines.append(f'- "{note.title}": {note.content}')
        parts.append("\n".join(lines))

    if context.search_results:
        lines = ["Search results:"]
        for hit in context.search_results:
            lines.append(f'- "{hit.title}": {hit.snippet}')
        parts.append("\n".join(lines))

    parts.extend(context.extra_instructions)
    return "\n\n".join(parts)
