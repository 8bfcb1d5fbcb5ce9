"""Best-effort extraction of analysis fields from model prose.

Kept apart from the strict JSON repair path in ``notechat.intent``: this
module never fails, it only falls back to per-field defaults.
"""

from __future__ import annotations

import re

from notechat.analysis.types import (
    Analysis,
    AnalysisKind,
    ConnectionsAnalysis,
    FullAnalysis,
    Sentiment,
    SummaryAnalysis,
    TagsAnalysis,
    TopicsAnalysis,
)

ANALYSIS_PROMPTS: dict[AnalysisKind, str] = {
    AnalysisKind.SUMMARY: "Please provide a concise summary of the following content:\n\n{content}",
    AnalysisKind.TOPICS: "Extract the main topics and themes from this content:\n\n{content}",
    AnalysisKind.TAGS: (
        "Suggest relevant tags for this content (return as comma-separated list):\n\n{content}"
    ),
    AnalysisKind.CONNECTIONS: (
        "Based on this content, suggest what other notes or topics this might "
        "connect to:\n\n{content}"
    ),
    AnalysisKind.FULL: """Analyze this content and provide:
1. Summary: a brief summary
2. Topics: key topics and themes
3. Tags: suggested tags (comma-separated)
4. Connections: potential connections to other notes
5. Sentiment: overall sentiment (positive/neutral/negative)
6. Complexity: complexity level (1-10)
7. Readability: readability score (1-10)

Content:
{content}""",
}

DEFAULT_SENTIMENT: Sentiment = "neutral"
DEFAULT_COMPLEXITY = 5
DEFAULT_READABILITY = 7

_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+")
_SENTIMENT_RE = re.compile(r"sentiment\W*(positive|neutral|negative)", re.IGNORECASE)
_MARKUP_RE = re.compile(r"[*_`]+")


def build_analysis_prompt(content: str, kind: AnalysisKind) -> str:
    return ANALYSIS_PROMPTS[kind].format(content=content)


def _clean(item: str) -> str:
    return _MARKUP_RE.sub("", _BULLET_RE.sub("", item)).strip().strip(".")


def _split_items(text: str) -> list[str]:
    items = (_clean(part) for part in re.split(r"[\n,;]", text))
    return [item for item in items if item]


def _find_header(lines: list[str], keyword: str) -> int | None:
    pattern = re.compile(rf"\b{keyword}s?\b", re.IGNORECASE)
    for index, line in enumerate(lines):
        if pattern.search(line):
            return index
    return None


def _inline_value(line: str) -> str:
    _, sep, rest = line.partition(":")
    return _clean(rest) if sep else ""


def section_text(text: str, keyword: str) -> str | None:
    """Value of a ``keyword: value`` line, or the line after a bare header."""
    lines = text.splitlines()
    index = _find_header(lines, keyword)
    if index is None:
        return None
    value = _inline_value(lines[index])
    if value:
        return value
    for line in lines[index + 1:]:
        if line.strip():
            return _clean(line) or None
    return None


def section_items(text: str, keyword: str) -> list[str]:
    """Items listed inline after ``keyword:`` or as bullets below it.

    Collection stops at the next numbered line (the next section of a
    numbered answer) or the first non-bullet line after the items.
    """
    lines = text.splitlines()
    index = _find_header(lines, keyword)
    if index is None:
        return []
    inline = _inline_value(lines[index])
    if inline:
        return _split_items(inline)

    items: list[str] = []
    for line in lines[index + 1:]:
        if not line.strip():
            if items:
                break
            continue
        if _NUMBERED_RE.match(line) and items:
            break
        if not _BULLET_RE.match(line):
            break
        items.extend(_split_items(line))
    return items


def list_items(text: str) -> list[str]:
    """Bulleted or numbered items anywhere in text, else comma/line split."""
    bullets = [_clean(line) for line in text.splitlines() if _BULLET_RE.match(line)]
    bullets = [item for item in bullets if item]
    return bullets or _split_items(text)


def extract_tags(text: str) -> list[str]:
    source = section_text(text, "tag") or text
    tags = (item.lstrip("#").strip() for item in _split_items(source))
    unique: dict[str, str] = {}
    for tag in tags:
        if tag:
            unique.setdefault(tag.lower(), tag)
    return list(unique.values())


def extract_sentiment(text: str) -> Sentiment:
    match = _SENTIMENT_RE.search(text)
    if match is None:
        return DEFAULT_SENTIMENT
    return match.group(1).lower()  # type: ignore[return-value]


def extract_score(text: str, keyword: str, default: int) -> int:
    """Integer after ``keyword``, clamped to 1-10, else default."""
    match = re.search(rf"{keyword}\D{{0,30}}?(\d+)", text, re.IGNORECASE)
    if match is None:
        return default
    return min(max(int(match.group(1)), 1), 10)


def extract_full(text: str) -> FullAnalysis:
    """Scrape every FullAnalysis field, falling back to its default."""
    first_line = next((_clean(line) for line in text.splitlines() if line.strip()), "")
    return FullAnalysis(
        summary=section_text(text, "summary") or first_line,
        key_topics=tuple(section_items(text, "topic")),
        suggested_tags=tuple(extract_tags(text)),
        suggested_connections=tuple(section_items(text, "connection")),
        sentiment=extract_sentiment(text),
        complexity=extract_score(text, "complexity", DEFAULT_COMPLEXITY),
        readability_score=extract_score(text, "readability", DEFAULT_READABILITY),
        raw=text,
    )


def extract_analysis(text: str, kind: AnalysisKind) -> Analysis:
    """Map a model response to the variant for kind."""
    if kind is AnalysisKind.SUMMARY:
        return SummaryAnalysis(summary=text.strip(), raw=text)
    if kind is AnalysisKind.TOPICS:
        return TopicsAnalysis(topics=tuple(list_items(text)), raw=text)
    if kind is AnalysisKind.TAGS:
        return TagsAnalysis(tags=tuple(extract_tags(text)), raw=text)
    if kind is AnalysisKind.CONNECTIONS:
        return ConnectionsAnalysis(connections=tuple(list_items(text)), raw=text)
    return extract_full(text)
