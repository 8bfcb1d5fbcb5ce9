"""Partitioning of a model's context window across input categories."""

from dataclasses import dataclass

DEFAULT_HISTORY_RATIO = 0.3
DEFAULT_SEARCH_RATIO = 0.2


@dataclass(frozen=True)
class ContextBudget:
    """Token allocation for one exchange.

    Invariant: ``current_note + conversation_history + search_results +
    reserved_for_output <= total_budget``. When the output reservation
    consumes the whole window every category is zero and ``exhausted`` is
    set.
    """

    total_budget: int
    reserved_for_output: int
    current_note: int
    conversation_history: int
    search_results: int
    exhausted: bool = False

    @property
    def available(self) -> int:
        """Input tokens shared by the three categories."""
        return self.current_note + self.conversation_history + self.search_results


def compute_budget(
    model_max_tokens: int,
    reserved_for_output: int,
    history_ratio: float = DEFAULT_HISTORY_RATIO,
    search_ratio: float = DEFAULT_SEARCH_RATIO,
) -> ContextBudget:
    """Split ``model_max_tokens - reserved_for_output`` across the categories.

    History and search results get ``floor(available * ratio)``; the
    current note takes the remainder, absorbing rounding so the categories
    sum to the available amount exactly.

    Args:
        model_max_tokens: The model's context window.
        reserved_for_output: Tokens kept free for the response.
        history_ratio: Share for conversation history.
        search_ratio: Share for search results.

    Returns:
        ContextBudget, with ``exhausted=True`` and zero categories when
        nothing is left for input.

    Raises:
        ValueError: If ratios are negative or leave nothing for the note.
    """
    if history_ratio < 0 or search_ratio < 0 or history_ratio + search_ratio >= 1:
        raise ValueError(
            f"Invalid budget ratios: history={history_ratio}, search={search_ratio}"
        )

    total = max(model_max_tokens, 0)
    reserved = max(reserved_for_output, 0)
    available = total - reserved

    if available <= 0:
        return ContextBudget(
            total_budget=total,
            reserved_for_output=reserved,
            current_note=0,
            conversation_history=0,
            search_results=0,
            exhausted=True,
        )

    history = int(available * history_ratio)
    search = int(available * search_ratio)
    return ContextBudget(
        total_budget=total,
        reserved_for_output=reserved,
        current_note=available - history - search,
        conversation_history=history,
        search_results=search,
    )
