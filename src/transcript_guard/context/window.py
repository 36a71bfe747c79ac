"""Context window resolution and guard thresholds."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from transcript_guard.config.agent_config import (
    AgentRuntimeConfig,
    coerce_agent_config,
    normalize_positive_int,
)
from transcript_guard.context.defaults import (
    DEFAULT_CONTEXT_TOKENS,
    WELL_KNOWN_CONTEXT_WINDOWS,
)
from transcript_guard.utils.logger import get_logger

logger = get_logger(__name__)

CONTEXT_WINDOW_HARD_MIN_TOKENS = 16_000
CONTEXT_WINDOW_WARN_BELOW_TOKENS = 32_000


class ContextWindowSource(str, Enum):
    """Where a resolved context window size came from."""

    AGENT_CONTEXT_TOKENS = "agentContextTokens"  # agents.defaults.contextTokens cap
    MODELS_CONFIG = "modelsConfig"  # models.providers.<p>.models[].contextWindow
    MODEL = "model"  # live model metadata from the caller
    WELL_KNOWN = "wellKnown"  # WELL_KNOWN_CONTEXT_WINDOWS
    DEFAULT = "default"  # caller fallback


@dataclass(frozen=True)
class ContextWindowInfo:
    tokens: int
    source: ContextWindowSource


@dataclass(frozen=True)
class ContextWindowGuardResult:
    """Advisory verdict over a resolved window; should_block implies should_warn."""

    tokens: int
    source: ContextWindowSource
    should_warn: bool
    should_block: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokens": self.tokens,
            "source": self.source.value,
            "shouldWarn": self.should_warn,
            "shouldBlock": self.should_block,
        }


def resolve_context_window_info(
    cfg: Union[None, AgentRuntimeConfig, Dict[str, Any]],
    provider: str,
    model_id: str,
    model_context_window: Optional[int] = None,
    default_tokens: int = DEFAULT_CONTEXT_TOKENS,
) -> ContextWindowInfo:
    """
    Resolve the effective context window for a provider/model pair.

    Base window precedence: provider catalog entry, caller-supplied model
    metadata, well-known model table, ``default_tokens``. The per-agent cap
    (``agents.defaults.contextTokens``) then wins only if it is strictly
    smaller than the base window. Missing or malformed values fall through.

    Args:
        cfg: Agent configuration (model, raw mapping or None)
        provider: Provider id, e.g. "anthropic" or "openrouter"
        model_id: Model id within the provider
        model_context_window: Context window reported by the model registry
        default_tokens: Fallback when no other source knows the model

    Returns:
        ContextWindowInfo with the token budget and its source
    """
    config = coerce_agent_config(cfg)

    from_catalog = (
        normalize_positive_int(config.get_catalog_context_window(provider, model_id))
        if config is not None
        else None
    )
    from_model = normalize_positive_int(model_context_window)
    from_table = normalize_positive_int(WELL_KNOWN_CONTEXT_WINDOWS.get(model_id))

    if from_catalog is not None:
        base = ContextWindowInfo(from_catalog, ContextWindowSource.MODELS_CONFIG)
    elif from_model is not None:
        base = ContextWindowInfo(from_model, ContextWindowSource.MODEL)
    elif from_table is not None:
        base = ContextWindowInfo(from_table, ContextWindowSource.WELL_KNOWN)
    else:
        fallback = normalize_positive_int(default_tokens) or DEFAULT_CONTEXT_TOKENS
        base = ContextWindowInfo(fallback, ContextWindowSource.DEFAULT)

    cap = config.agents.defaults.context_tokens if config is not None else None
    if cap is not None and cap < base.tokens:
        logger.debug(
            "Capping context window with agent contextTokens",
            provider=provider,
            model=model_id,
            base_tokens=base.tokens,
            base_source=base.source.value,
            cap_tokens=cap,
        )
        return ContextWindowInfo(cap, ContextWindowSource.AGENT_CONTEXT_TOKENS)

    return base


def _normalize_threshold(value: Optional[float], default: int) -> int:
    if value is None:
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return max(1, math.floor(value))


def evaluate_context_window_guard(
    info: ContextWindowInfo,
    warn_below_tokens: Optional[int] = None,
    hard_min_tokens: Optional[int] = None,
) -> ContextWindowGuardResult:
    """
    Apply warn/block thresholds to a resolved context window.

    Args:
        info: Resolved window
        warn_below_tokens: Warn when the window is below this (default 32,000)
        hard_min_tokens: Block when the window is below this (default 16,000)

    Returns:
        ContextWindowGuardResult; blocking always implies warning
    """
    warn_below = _normalize_threshold(
        warn_below_tokens, CONTEXT_WINDOW_WARN_BELOW_TOKENS
    )
    hard_min = _normalize_threshold(hard_min_tokens, CONTEXT_WINDOW_HARD_MIN_TOKENS)
    tokens = max(0, math.floor(info.tokens))

    should_block = tokens < hard_min
    should_warn = should_block or tokens < warn_below

    return ContextWindowGuardResult(
        tokens=tokens,
        source=info.source,
        should_warn=should_warn,
        should_block=should_block,
    )
