"""Closed set of note-analysis results.

Every backend produces these through the same extractor, so callers match
on the variant type and never on backend identity.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


class AnalysisKind(str, Enum):
    SUMMARY = "summary"
    TOPICS = "topics"
    TAGS = "tags"
    CONNECTIONS = "connections"
    FULL = "full"


Sentiment = Literal["positive", "neutral", "negative"]


@dataclass(frozen=True)
class SummaryAnalysis:
    summary: str
    raw: str = ""


@dataclass(frozen=True)
class TopicsAnalysis:
    topics: tuple[str, ...]
    raw: str = ""


@dataclass(frozen=True)
class TagsAnalysis:
    tags: tuple[str, ...]
    raw: str = ""


@dataclass(frozen=True)
class ConnectionsAnalysis:
    connections: tuple[str, ...]
    raw: str = ""


@dataclass(frozen=True)
class FullAnalysis:
    """Structured analysis scraped from free-form model prose.

    Defaults apply field by field when the prose does not mention it:
    empty summary and lists, ``neutral`` sentiment, complexity 5 and
    readability 7 (both on a 1-10 scale).
    """

    summary: str = ""
    key_topics: tuple[str, ...] = ()
    suggested_tags: tuple[str, ...] = ()
    suggested_connections: tuple[str, ...] = ()
    sentiment: Sentiment = "neutral"
    complexity: int = 5
    readability_score: int = 7
    raw: str = field(default="", compare=False)


Analysis = SummaryAnalysis | TopicsAnalysis | TagsAnalysis | ConnectionsAnalysis | FullAnalysis
