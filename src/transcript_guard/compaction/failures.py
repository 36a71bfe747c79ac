"""Tool-failure digest preserved across compaction.

Summaries drop detail; failed tool calls are the detail a resumed agent most
needs (what was tried, what broke), so they are listed verbatim-ish in a
dedicated section appended to the summary.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from transcript_guard.transcript.messages import Message, ToolResultMessage

MAX_TOOL_FAILURES = 8
MAX_TOOL_FAILURE_CHARS = 240

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ToolFailureRecord:
    tool_call_id: str
    tool_name: str
    summary: str
    meta: Optional[str] = None


def _normalize_failure_text(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _truncate_failure_text(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[: max(0, max_chars - 3)]}..."


def format_tool_failure_meta(details: Any) -> Optional[str]:
    """Render ``status=... exitCode=...`` from structured details.

    Anything that is not a mapping, or fields of the wrong type, are ignored.
    """
    if not isinstance(details, Mapping):
        return None

    parts = []
    status = details.get("status")
    if isinstance(status, str) and status.strip():
        parts.append(f"status={status.strip()}")

    exit_code = details.get("exitCode")
    if (
        isinstance(exit_code, (int, float))
        and not isinstance(exit_code, bool)
        and math.isfinite(exit_code)
    ):
        parts.append(f"exitCode={int(exit_code)}")

    return " ".join(parts) if parts else None


def collect_tool_failures(messages: Sequence[Message]) -> List[ToolFailureRecord]:
    """
    Collect failed tool results, first occurrence per tool call id.

    The full deduplicated list is returned; ``format_tool_failures_section``
    applies the display cap so the overflow count stays exact.
    """
    failures: List[ToolFailureRecord] = []
    seen = set()

    for message in messages:
        if not isinstance(message, ToolResultMessage) or message.is_error is not True:
            continue
        call_id = message.tool_call_id.strip() if message.tool_call_id else ""
        if not call_id or call_id in seen:
            continue
        seen.add(call_id)

        tool_name = message.tool_name.strip() if message.tool_name else ""
        meta = format_tool_failure_meta(message.details)
        normalized = _normalize_failure_text(message.text)
        if not normalized:
            normalized = "failed" if meta else "failed (no output)"

        failures.append(
            ToolFailureRecord(
                tool_call_id=call_id,
                tool_name=tool_name or "tool",
                summary=_truncate_failure_text(normalized, MAX_TOOL_FAILURE_CHARS),
                meta=meta,
            )
        )

    return failures


def format_tool_failures_section(
    failures: Sequence[ToolFailureRecord], max_failures: int = MAX_TOOL_FAILURES
) -> str:
    """Render the ``## Tool Failures`` section, or "" when there are none."""
    if not failures:
        return ""

    limit = max(1, max_failures)
    lines = []
    for failure in failures[:limit]:
        meta = f" ({failure.meta})" if failure.meta else ""
        lines.append(f"- {failure.tool_name}{meta}: {failure.summary}")

    if len(failures) > limit:
        lines.append(f"- ...and {len(failures) - limit} more")

    return "\n\n## Tool Failures\n" + "\n".join(lines)
