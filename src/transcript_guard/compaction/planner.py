"""Compaction sizing decisions driven by token estimates."""

from dataclasses import dataclass, field
from typing import List, Sequence

from transcript_guard.compaction.failures import (
    collect_tool_failures,
    format_tool_failures_section,
)
from transcript_guard.transcript.messages import Message
from transcript_guard.utils.logger import get_logger
from transcript_guard.utils.token_utils import TokenEstimator

logger = get_logger(__name__)

# Share of history folded into one summarization chunk
BASE_CHUNK_RATIO = 0.4
MIN_CHUNK_RATIO = 0.15
# Headroom over the coarse token estimate
SAFETY_MARGIN = 1.2
# Average message size (share of window) above which chunks start shrinking
LARGE_MESSAGE_RATIO = 0.1
# Largest share of the window one message may take to be summarized in a batch
OVERSIZE_WINDOW_SHARE = 0.5


@dataclass(frozen=True)
class CompactionPlan:
    """Everything a compactor needs to decide how to fold history."""

    chunk_ratio: float
    history_tokens: int
    budget_tokens: int
    oversized_indices: List[int] = field(default_factory=list)
    tool_failures_section: str = ""

    @property
    def needs_compaction(self) -> bool:
        return self.history_tokens > self.budget_tokens


def compute_adaptive_chunk_ratio(
    messages: Sequence[Message], context_window: int
) -> float:
    """
    Chunk ratio for summarization passes, shrinking as messages grow.

    Small messages are batched at BASE_CHUNK_RATIO. Once the average message
    exceeds 10% of the window the ratio decreases with the average size, never
    below MIN_CHUNK_RATIO, so one summarization call cannot overflow.
    """
    if not messages:
        return BASE_CHUNK_RATIO
    if context_window <= 0:
        return MIN_CHUNK_RATIO

    total = TokenEstimator.estimate_messages_tokens(messages)
    avg_ratio = (total / len(messages)) / context_window
    if avg_ratio <= LARGE_MESSAGE_RATIO:
        return BASE_CHUNK_RATIO

    reduction = avg_ratio * SAFETY_MARGIN * 2
    if reduction >= BASE_CHUNK_RATIO - MIN_CHUNK_RATIO:
        return MIN_CHUNK_RATIO
    return max(MIN_CHUNK_RATIO, BASE_CHUNK_RATIO - reduction)


def is_oversized_for_summary(message: Message, context_window: int) -> bool:
    """True when a message is too large to be summarized together with others."""
    tokens = TokenEstimator.estimate_message_tokens(message) * SAFETY_MARGIN
    return tokens > context_window * OVERSIZE_WINDOW_SHARE


def plan_compaction(
    messages: Sequence[Message],
    context_window: int,
    max_history_share: float = 0.5,
) -> CompactionPlan:
    """
    Assemble the sizing decisions for one compaction.

    Args:
        messages: Transcript, already repaired
        context_window: Resolved context window in tokens
        max_history_share: Share of the window history may occupy

    Returns:
        CompactionPlan with chunk ratio, oversized message indices and the
        tool-failures digest to append to the summary
    """
    history_tokens = TokenEstimator.estimate_messages_tokens(messages)
    budget_tokens = max(1, int(context_window * max_history_share))
    oversized = [
        index
        for index, message in enumerate(messages)
        if is_oversized_for_summary(message, context_window)
    ]

    plan = CompactionPlan(
        chunk_ratio=compute_adaptive_chunk_ratio(messages, context_window),
        history_tokens=history_tokens,
        budget_tokens=budget_tokens,
        oversized_indices=oversized,
        tool_failures_section=format_tool_failures_section(
            collect_tool_failures(messages)
        ),
    )

    logger.debug(
        "Planned compaction",
        history_tokens=history_tokens,
        budget_tokens=budget_tokens,
        chunk_ratio=round(plan.chunk_ratio, 4),
        oversized=len(oversized),
    )
    return plan
