"""Split and prune transcript history by estimated token share."""

import math
from dataclasses import dataclass, field
from typing import List, Sequence

from transcript_guard.transcript.messages import Message
from transcript_guard.transcript.repair import repair_tool_result_pairing
from transcript_guard.utils.logger import get_logger
from transcript_guard.utils.token_utils import TokenEstimator

logger = get_logger(__name__)

DEFAULT_PARTS = 2


@dataclass(frozen=True)
class HistoryPruneResult:
    messages: Sequence[Message]
    dropped_messages_list: List[Message] = field(default_factory=list)
    dropped_chunks: int = 0
    dropped_messages: int = 0
    dropped_tokens: int = 0
    kept_tokens: int = 0
    budget_tokens: int = 0


def _normalize_parts(parts: int, message_count: int) -> int:
    if parts <= 1:
        return 1
    return min(parts, max(1, message_count))


def split_messages_by_token_share(
    messages: Sequence[Message], parts: int = DEFAULT_PARTS
) -> List[List[Message]]:
    """Split into at most ``parts`` contiguous chunks of roughly equal tokens."""
    if not messages:
        return []
    parts = _normalize_parts(parts, len(messages))
    if parts <= 1:
        return [list(messages)]

    total = TokenEstimator.estimate_messages_tokens(messages)
    target = total / parts
    chunks: List[List[Message]] = []
    current: List[Message] = []
    current_tokens = 0

    for message in messages:
        tokens = TokenEstimator.estimate_message_tokens(message)
        if (
            len(chunks) < parts - 1
            and current
            and current_tokens + tokens > target
        ):
            chunks.append(current)
            current = []
            current_tokens = 0
        current.append(message)
        current_tokens += tokens

    if current:
        chunks.append(current)
    return chunks


def chunk_messages_by_max_tokens(
    messages: Sequence[Message], max_tokens: int
) -> List[List[Message]]:
    """
    Split into contiguous chunks whose estimates stay within ``max_tokens``.

    A single message larger than the budget is emitted as its own chunk.
    """
    if not messages:
        return []

    chunks: List[List[Message]] = []
    current: List[Message] = []
    current_tokens = 0

    for message in messages:
        tokens = TokenEstimator.estimate_message_tokens(message)
        if current and current_tokens + tokens > max_tokens:
            chunks.append(current)
            current = []
            current_tokens = 0

        current.append(message)
        current_tokens += tokens

        if tokens > max_tokens:
            chunks.append(current)
            current = []
            current_tokens = 0

    if current:
        chunks.append(current)
    return chunks


def prune_history_for_context_share(
    messages: Sequence[Message],
    max_context_tokens: int,
    max_history_share: float = 0.5,
    parts: int = DEFAULT_PARTS,
) -> HistoryPruneResult:
    """
    Drop the oldest history until it fits ``max_history_share`` of the window.

    Each round splits the kept history into ``parts`` token-share chunks and
    drops the first one, then repairs tool pairing of the remainder so no
    result outlives the call it answered. Results orphaned by the cut are
    reported with the dropped chunk in the message list and token totals.
    """
    budget = max(1, math.floor(max_context_tokens * max_history_share))
    kept: Sequence[Message] = messages
    dropped_list: List[Message] = []
    dropped_chunks = 0
    dropped_messages = 0
    dropped_tokens = 0

    parts = _normalize_parts(parts, len(messages))
    while kept and TokenEstimator.estimate_messages_tokens(kept) > budget:
        chunks = split_messages_by_token_share(kept, parts)
        if len(chunks) <= 1:
            break
        dropped, rest = chunks[0], [m for chunk in chunks[1:] for m in chunk]
        report = repair_tool_result_pairing(rest)
        if report.changed:
            kept_ids = {id(m) for m in report.messages}
            dropped = dropped + [m for m in rest if id(m) not in kept_ids]

        dropped_chunks += 1
        dropped_messages += len(dropped)
        dropped_tokens += TokenEstimator.estimate_messages_tokens(dropped)
        dropped_list.extend(dropped)
        kept = report.messages

    kept_tokens = TokenEstimator.estimate_messages_tokens(kept)
    if dropped_chunks:
        logger.info(
            "Pruned history to fit context share",
            dropped_chunks=dropped_chunks,
            dropped_messages=dropped_messages,
            dropped_tokens=dropped_tokens,
            kept_tokens=kept_tokens,
            budget_tokens=budget,
        )

    return HistoryPruneResult(
        messages=kept,
        dropped_messages_list=dropped_list,
        dropped_chunks=dropped_chunks,
        dropped_messages=dropped_messages,
        dropped_tokens=dropped_tokens,
        kept_tokens=kept_tokens,
        budget_tokens=budget,
    )
