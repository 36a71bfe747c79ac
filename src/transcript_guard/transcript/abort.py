"""Rewrite assistant turns that were cut off mid-stream.

When a stream is aborted or fails, the runtime keeps the partial assistant
turn and inserts synthetic error results for its tool calls so the transcript
stays well formed. Replaying those to a provider is rejected (the calls never
ran), so each failed turn is collapsed into one explanatory text turn and the
synthetic results are removed.
"""

from dataclasses import replace
from typing import Dict, List, Sequence

from transcript_guard.transcript.messages import (
    FAILED_STOP_REASONS,
    AssistantMessage,
    Message,
    StopReason,
    TextBlock,
    ToolResultMessage,
)
from transcript_guard.utils.logger import get_logger

logger = get_logger(__name__)


def _format_tool_names(names: List[str]) -> str:
    return ", ".join(f"`{name or 'unknown'}`" for name in names)


def describe_failed_turn(stop_reason: StopReason, tool_names: List[str]) -> str:
    """Build the replacement text for an aborted or errored assistant turn."""
    if stop_reason == StopReason.ERROR:
        cause = "ended with a streaming error"
    else:
        cause = "was interrupted"

    if not tool_names:
        return (
            f"[Previous assistant turn {cause} before it completed. "
            "No tool calls were finalized.]"
        )

    noun = "tool calls" if len(tool_names) > 1 else "tool call"
    pronoun = "These calls were" if len(tool_names) > 1 else "This call was"
    return (
        f"[Previous assistant turn {cause} while issuing the {noun} "
        f"{_format_tool_names(tool_names)}. {pronoun} never executed; "
        "issue again if still needed.]"
    )


def strip_aborted_assistant_messages(messages: Sequence[Message]) -> Sequence[Message]:
    """
    Collapse aborted/errored assistant turns and drop their placeholder results.

    Args:
        messages: Transcript in conversation order

    Returns:
        New list with each failed assistant turn replaced by a single text
        turn and every tool result answering one of its calls removed. The
        input object itself is returned when no turn qualifies.
    """
    replacements: Dict[int, AssistantMessage] = {}
    stripped_ids = set()

    for index, message in enumerate(messages):
        if not isinstance(message, AssistantMessage):
            continue
        if message.stop_reason not in FAILED_STOP_REASONS:
            continue

        calls = message.tool_calls
        stripped_ids.update(call.id for call in calls)
        text = describe_failed_turn(message.stop_reason, [c.name for c in calls])
        replacements[index] = replace(
            message,
            content=(TextBlock(text),),
            stop_reason=StopReason.STOP,
            error_message=None,
        )

    if not replacements:
        return messages

    result: List[Message] = []
    dropped_results = 0
    for index, message in enumerate(messages):
        if index in replacements:
            result.append(replacements[index])
        elif (
            isinstance(message, ToolResultMessage)
            and message.tool_call_id in stripped_ids
        ):
            dropped_results += 1
        else:
            result.append(message)

    logger.info(
        "Stripped failed assistant turns",
        rewritten_turns=len(replacements),
        dropped_tool_results=dropped_results,
    )
    return result
