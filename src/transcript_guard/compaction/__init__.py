"""Compaction safeguards: sizing decisions, failure digest, history pruning."""

from .failures import (
    MAX_TOOL_FAILURE_CHARS,
    MAX_TOOL_FAILURES,
    ToolFailureRecord,
    collect_tool_failures,
    format_tool_failures_section,
)
from .planner import (
    BASE_CHUNK_RATIO,
    MIN_CHUNK_RATIO,
    SAFETY_MARGIN,
    CompactionPlan,
    compute_adaptive_chunk_ratio,
    is_oversized_for_summary,
    plan_compaction,
)
from .pruning import (
    HistoryPruneResult,
    chunk_messages_by_max_tokens,
    prune_history_for_context_share,
    split_messages_by_token_share,
)
from .runtime import (
    CompactionRuntimeConfig,
    CompactionRuntimeRegistry,
    get_compaction_runtime,
    get_default_registry,
    reset_default_registry,
    set_compaction_runtime,
)

__all__ = [
    "BASE_CHUNK_RATIO",
    "MIN_CHUNK_RATIO",
    "SAFETY_MARGIN",
    "CompactionPlan",
    "compute_adaptive_chunk_ratio",
    "is_oversized_for_summary",
    "plan_compaction",
    # Tool failures digest
    "MAX_TOOL_FAILURES",
    "MAX_TOOL_FAILURE_CHARS",
    "ToolFailureRecord",
    "collect_tool_failures",
    "format_tool_failures_section",
    # History pruning
    "HistoryPruneResult",
    "split_messages_by_token_share",
    "chunk_messages_by_max_tokens",
    "prune_history_for_context_share",
    # Runtime overrides
    "CompactionRuntimeConfig",
    "CompactionRuntimeRegistry",
    "get_default_registry",
    "reset_default_registry",
    "set_compaction_runtime",
    "get_compaction_runtime",
]
