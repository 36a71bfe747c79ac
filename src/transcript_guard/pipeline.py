"""Prepare a transcript and tool list for one model call.

Order of passes:

1. repair tool-result pairing
2. collapse aborted / errored assistant turns
3. resolve the context window and evaluate the guard
4. plan compaction when history exceeds its share of the window
5. sanitize tool schemas for the target provider
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from transcript_guard.compaction.planner import CompactionPlan, plan_compaction
from transcript_guard.compaction.runtime import (
    CompactionRuntimeConfig,
    CompactionRuntimeRegistry,
    get_compaction_runtime,
)
from transcript_guard.config.agent_config import (
    AgentRuntimeConfig,
    normalize_positive_int,
)
from transcript_guard.config.settings import CoreSettings, load_settings
from transcript_guard.context.defaults import DEFAULT_MODEL, DEFAULT_PROVIDER
from transcript_guard.context.window import (
    ContextWindowGuardResult,
    ContextWindowInfo,
    evaluate_context_window_guard,
    resolve_context_window_info,
)
from transcript_guard.errors import ContextWindowTooSmallError
from transcript_guard.providers.schema import sanitize_tools_for_provider
from transcript_guard.transcript.abort import strip_aborted_assistant_messages
from transcript_guard.transcript.messages import Message
from transcript_guard.transcript.repair import (
    ToolPairingReport,
    repair_tool_result_pairing,
)
from transcript_guard.utils.logger import get_logger
from transcript_guard.utils.token_utils import TokenEstimator

logger = get_logger(__name__)


@dataclass(frozen=True)
class PreparedCall:
    """Transcript and tools ready to send, plus the decisions taken."""

    messages: Sequence[Message]
    tools: List[Dict[str, Any]]
    repair: ToolPairingReport
    aborted_turns_stripped: bool
    window: ContextWindowInfo
    guard: ContextWindowGuardResult
    history_tokens: int = 0
    plan: Optional[CompactionPlan] = None
    runtime: Optional[CompactionRuntimeConfig] = field(default=None, compare=False)

    @property
    def changed(self) -> bool:
        """True when the repair passes rewrote the transcript."""
        return self.repair.changed or self.aborted_turns_stripped

    def summary(self) -> Dict[str, Any]:
        return {
            "messages": len(self.messages),
            "tools": len(self.tools),
            "droppedOrphanCount": self.repair.dropped_orphan_count,
            "droppedDuplicateCount": self.repair.dropped_duplicate_count,
            "abortedTurnsStripped": self.aborted_turns_stripped,
            "historyTokens": self.history_tokens,
            "contextWindow": self.guard.to_dict(),
            "compaction": (
                {
                    "chunkRatio": self.plan.chunk_ratio,
                    "budgetTokens": self.plan.budget_tokens,
                    "oversizedIndices": list(self.plan.oversized_indices),
                    "toolFailuresSection": self.plan.tool_failures_section,
                }
                if self.plan is not None
                else None
            ),
        }


class TranscriptGuard:
    """
    Runs the integrity and compaction-safeguard passes before a model call.

    Args:
        settings: Thresholds and defaults; loaded from the environment if omitted
        agent_config: Agent configuration; built from settings if omitted
        registry: Compaction runtime registry; the process default if omitted
    """

    def __init__(
        self,
        settings: Optional[CoreSettings] = None,
        agent_config: Union[None, AgentRuntimeConfig, Dict[str, Any]] = None,
        registry: Optional[CompactionRuntimeRegistry] = None,
    ):
        self.settings = settings if settings is not None else load_settings()
        self._agent_config = agent_config
        self.registry = registry

    @property
    def agent_config(self) -> Union[AgentRuntimeConfig, Dict[str, Any]]:
        if self._agent_config is None:
            self._agent_config = self.settings.get_agent_config()
        return self._agent_config

    def _resolve_history_share(
        self, runtime: Optional[CompactionRuntimeConfig]
    ) -> float:
        share = runtime.max_history_share if runtime is not None else None
        if share is None:
            return self.settings.compaction_max_history_share
        if not 0 < share <= 1:
            logger.warning(
                "Ignoring out-of-range max_history_share override",
                max_history_share=share,
            )
            return self.settings.compaction_max_history_share
        return share

    def prepare(
        self,
        messages: Sequence[Message],
        tools: Sequence[Mapping[str, Any]] = (),
        provider: str = DEFAULT_PROVIDER,
        model_id: str = DEFAULT_MODEL,
        model_context_window: Optional[int] = None,
        session_manager: Any = None,
    ) -> PreparedCall:
        """
        Repair, size-check and sanitize one model call's inputs.

        Raises:
            ContextWindowTooSmallError: If the guard blocks and the settings
                enable ``block_on_small_context_window``
        """
        repair = repair_tool_result_pairing(messages)
        stripped = strip_aborted_assistant_messages(repair.messages)
        aborted_turns_stripped = stripped is not repair.messages

        window = resolve_context_window_info(
            self.agent_config,
            provider,
            model_id,
            model_context_window,
            self.settings.default_context_tokens,
        )
        guard = evaluate_context_window_guard(
            window, **self.settings.get_guard_thresholds()
        )

        if guard.should_block:
            logger.error(
                "Model context window too small",
                provider=provider,
                model=model_id,
                tokens=guard.tokens,
                source=guard.source.value,
                hard_min_tokens=self.settings.context_window_hard_min_tokens,
            )
            if self.settings.block_on_small_context_window:
                raise ContextWindowTooSmallError(
                    f"Model context window too small ({guard.tokens} tokens, "
                    f"source={guard.source.value}); minimum is "
                    f"{self.settings.context_window_hard_min_tokens}",
                    tokens=guard.tokens,
                    source=guard.source.value,
                    hard_min_tokens=self.settings.context_window_hard_min_tokens,
                )
        elif guard.should_warn:
            logger.warning(
                "Low model context window",
                provider=provider,
                model=model_id,
                tokens=guard.tokens,
                source=guard.source.value,
            )

        runtime = (
            get_compaction_runtime(session_manager, registry=self.registry)
            if session_manager is not None
            else None
        )
        history_share = self._resolve_history_share(runtime)
        compaction_window = window.tokens
        override = (
            normalize_positive_int(runtime.context_window_tokens)
            if runtime is not None
            else None
        )
        if override is not None:
            compaction_window = override

        history_tokens = TokenEstimator.estimate_messages_tokens(stripped)
        plan = None
        if history_tokens > int(compaction_window * history_share):
            plan = plan_compaction(stripped, compaction_window, history_share)
            logger.info(
                "History exceeds context share, compaction planned",
                history_tokens=history_tokens,
                budget_tokens=plan.budget_tokens,
                chunk_ratio=round(plan.chunk_ratio, 4),
                oversized=len(plan.oversized_indices),
            )

        return PreparedCall(
            messages=stripped,
            tools=sanitize_tools_for_provider(tools, provider),
            repair=repair,
            aborted_turns_stripped=aborted_turns_stripped,
            window=window,
            guard=guard,
            history_tokens=history_tokens,
            plan=plan,
            runtime=runtime,
        )


def prepare_model_call(
    messages: Sequence[Message],
    tools: Sequence[Mapping[str, Any]] = (),
    provider: str = DEFAULT_PROVIDER,
    model_id: str = DEFAULT_MODEL,
    model_context_window: Optional[int] = None,
    session_manager: Any = None,
    settings: Optional[CoreSettings] = None,
    agent_config: Union[None, AgentRuntimeConfig, Dict[str, Any]] = None,
    registry: Optional[CompactionRuntimeRegistry] = None,
) -> PreparedCall:
    """One-shot wrapper around ``TranscriptGuard.prepare``."""
    guard = TranscriptGuard(
        settings=settings, agent_config=agent_config, registry=registry
    )
    return guard.prepare(
        messages,
        tools=tools,
        provider=provider,
        model_id=model_id,
        model_context_window=model_context_window,
        session_manager=session_manager,
    )
