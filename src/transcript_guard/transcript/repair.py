"""Tool-call / tool-result pairing repair.

Providers reject a tool result that does not answer an earlier tool call of
the same transcript. Results become orphaned when history is truncated or
pruned, and duplicated when a runtime retries delivery; both are dropped here.
"""

from dataclasses import dataclass
from typing import List, Sequence, Set

from transcript_guard.transcript.messages import (
    AssistantMessage,
    Message,
    ToolResultMessage,
)
from transcript_guard.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ToolPairingReport:
    """Outcome of a pairing repair pass."""

    messages: Sequence[Message]
    dropped_orphan_count: int = 0
    dropped_duplicate_count: int = 0

    @property
    def changed(self) -> bool:
        return self.dropped_orphan_count > 0 or self.dropped_duplicate_count > 0


def repair_tool_result_pairing(messages: Sequence[Message]) -> ToolPairingReport:
    """
    Drop tool results that do not answer a pending tool call.

    Scans once, front to back. Every tool call seen in an assistant turn
    becomes pending; a tool result is kept only while its call id is pending
    and consumes it. A result for an already-consumed id is a duplicate, a
    result for an id that was never pending is an orphan.

    Args:
        messages: Transcript in conversation order

    Returns:
        ToolPairingReport. When nothing was dropped ``report.messages`` is the
        very same sequence object that was passed in.
    """
    pending: Set[str] = set()
    consumed: Set[str] = set()
    kept: List[Message] = []
    orphans = 0
    duplicates = 0

    for message in messages:
        if isinstance(message, AssistantMessage):
            for call in message.tool_calls:
                pending.add(call.id)
                # A re-issued id opens a fresh pairing slot
                consumed.discard(call.id)
            kept.append(message)
            continue

        if isinstance(message, ToolResultMessage):
            call_id = message.tool_call_id
            if call_id in pending:
                pending.discard(call_id)
                consumed.add(call_id)
                kept.append(message)
            elif call_id in consumed:
                duplicates += 1
            else:
                orphans += 1
            continue

        kept.append(message)

    if orphans == 0 and duplicates == 0:
        return ToolPairingReport(messages=messages)

    logger.info(
        "Repaired tool result pairing",
        dropped_orphans=orphans,
        dropped_duplicates=duplicates,
        kept_messages=len(kept),
    )
    return ToolPairingReport(
        messages=kept,
        dropped_orphan_count=orphans,
        dropped_duplicate_count=duplicates,
    )
