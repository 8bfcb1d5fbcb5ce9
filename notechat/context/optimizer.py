"""Budget-aware shrinking of note content before it enters the prompt.

Long notes are reduced to their structurally important lines (headings,
links, tasks, tagged lines and substantial prose) and then cut line by
line to the token budget. Every result fits its budget.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from notechat.context.compaction import truncate_to_tokens
from notechat.context.token_counter import get_token_counter

if TYPE_CHECKING:
    from notechat.context.token_counter import TokenCounter
    from notechat.core.types import NoteExcerpt, SearchResult

TRUNCATION_NOTICE = "[... content truncated for context ...]"

_TAG_RE = re.compile(r"(^|\s)#\w+")
_MIN_SUBSTANTIAL_LINE = 30
_MAX_SUBSTANTIAL_LINE = 500


@dataclass(frozen=True)
class OptimizationOptions:
    """Which line kinds survive when a note must be shrunk."""

    preserve_headings: bool = True
    preserve_links: bool = True
    preserve_tasks: bool = True
    preserve_tags: bool = True
    preserve_code_blocks: bool = False
    include_notice: bool = True


@dataclass(frozen=True)
class OptimizedContent:
    content: str
    token_estimate: int
    truncated: bool
    original_length: int


def _is_important(line: str, options: OptimizationOptions) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    if options.preserve_headings and stripped.startswith("#") and not _TAG_RE.match(stripped):
        return True
    if options.preserve_links and ("[[" in stripped or "](" in stripped):
        return True
    if options.preserve_tasks and stripped.startswith(("- [ ]", "- [x]", "- [X]")):
        return True
    if options.preserve_tags and _TAG_RE.search(stripped):
        return True
    return _MIN_SUBSTANTIAL_LINE < len(stripped) < _MAX_SUBSTANTIAL_LINE


def extract_important_lines(content: str, options: OptimizationOptions) -> list[str]:
    """Keep the lines that carry structure, dropping filler and (optionally) code."""
    important: list[str] = []
    in_code = False
    for line in content.split("\n"):
        if line.strip().startswith("```"):
            in_code = not in_code
            if options.preserve_code_blocks:
                important.append(line)
            continue
        if in_code:
            if options.preserve_code_blocks:
                important.append(line)
            continue
        if _is_important(line, options):
            important.append(line)
    return important


def optimize_content(
    content: str,
    max_tokens: int,
    options: OptimizationOptions | None = None,
    counter: TokenCounter | None = None,
) -> OptimizedContent:
    """Shrink content to at most max_tokens estimated tokens."""
    options = options or OptimizationOptions()
    counter = counter or get_token_counter()

    if not content.strip() or max_tokens <= 0:
        return OptimizedContent("", 0, bool(content.strip()), len(content))

    tokens = counter.count(content)
    if tokens <= max_tokens:
        return OptimizedContent(content, tokens, False, len(content))

    notice = f"\n\n{TRUNCATION_NOTICE}" if options.include_notice else ""
    notice_tokens = counter.count(notice)
    budget = max_tokens - notice_tokens
    if budget <= 0:
        notice, budget = "", max_tokens

    kept: list[str] = []
    used = 0
    for line in extract_important_lines(content, options):
        # +1 for the joining newline
        line_tokens = counter.count(line + "\n")
        if used + line_tokens > budget:
            break
        kept.append(line)
        used += line_tokens

    if not kept:
        # No important line fits whole; fall back to the head of the note
        kept = [truncate_to_tokens(content, budget, counter)]

    optimized = truncate_to_tokens("\n".join(kept), budget, counter) + notice
    return OptimizedContent(optimized, counter.count(optimized), True, len(content))


def optimize_note(
    note: NoteExcerpt,
    max_tokens: int,
    options: OptimizationOptions | None = None,
    counter: TokenCounter | None = None,
) -> NoteExcerpt:
    """Return the note with its content sized to max_tokens."""
    result = optimize_content(note.content, max_tokens, options, counter)
    if not result.truncated:
        return note
    return replace(note, content=result.content)


def optimize_notes(
    notes: list[NoteExcerpt],
    max_tokens: int,
    options: OptimizationOptions | None = None,
    counter: TokenCounter | None = None,
) -> list[NoteExcerpt]:
    """Distribute max_tokens evenly over several notes and size each one."""
    if not notes:
        return []
    per_note = max_tokens // len(notes)
    if per_note <= 0:
        return []
    return [optimize_note(note, per_note, options, counter) for note in notes]


def fit_search_results(
    results: list[SearchResult],
    max_tokens: int,
    counter: TokenCounter | None = None,
) -> list[SearchResult]:
    """Truncate search snippets so their total fits max_tokens."""
    counter = counter or get_token_counter()
    if not results:
        return []
    per_result = max_tokens // len(results)
    if per_result <= 0:
        return []
    return [
        replace(hit, snippet=truncate_to_tokens(hit.snippet, per_result, counter))
        for hit in results
    ]
