"""Note analysis variants and the prose extractor that produces them."""

from notechat.analysis.extractor import build_analysis_prompt, extract_analysis
from notechat.analysis.types import (
    Analysis,
    AnalysisKind,
    ConnectionsAnalysis,
    FullAnalysis,
    SummaryAnalysis,
    TagsAnalysis,
    TopicsAnalysis,
)

__all__ = [
    "Analysis",
    "AnalysisKind",
    "ConnectionsAnalysis",
    "FullAnalysis",
    "SummaryAnalysis",
    "TagsAnalysis",
    "TopicsAnalysis",
    "build_analysis_prompt",
    "extract_analysis",
]
