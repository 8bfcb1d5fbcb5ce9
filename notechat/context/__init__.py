"""Context budgeting, history compaction and note-content sizing."""

from notechat.context.budget import ContextBudget, compute_budget
from notechat.context.compaction import compact_history, per_message_budget, truncate_to_tokens
from notechat.context.optimizer import (
    OptimizationOptions,
    fit_search_results,
    optimize_content,
    optimize_note,
    optimize_notes,
)
from notechat.context.preamble import build_system_prompt
from notechat.context.token_counter import SimpleTokenCounter, TokenCounter, get_token_counter

__all__ = [
    "ContextBudget",
    "OptimizationOptions",
    "SimpleTokenCounter",
    "TokenCounter",
    "build_system_prompt",
    "compact_history",
    "compute_budget",
    "fit_search_results",
    "get_token_counter",
    "optimize_content",
    "optimize_note",
    "optimize_notes",
    "per_message_budget",
    "truncate_to_tokens",
]
