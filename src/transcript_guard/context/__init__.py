"""Context window resolution and guard."""

from .defaults import (
    DEFAULT_CONTEXT_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_PROVIDER,
    WELL_KNOWN_CONTEXT_WINDOWS,
    WELL_KNOWN_MAX_TOKENS,
    resolve_max_output_tokens,
)
from .window import (
    CONTEXT_WINDOW_HARD_MIN_TOKENS,
    CONTEXT_WINDOW_WARN_BELOW_TOKENS,
    ContextWindowGuardResult,
    ContextWindowInfo,
    ContextWindowSource,
    evaluate_context_window_guard,
    resolve_context_window_info,
)

__all__ = [
    "ContextWindowInfo",
    "ContextWindowSource",
    "ContextWindowGuardResult",
    "resolve_context_window_info",
    "evaluate_context_window_guard",
    "CONTEXT_WINDOW_HARD_MIN_TOKENS",
    "CONTEXT_WINDOW_WARN_BELOW_TOKENS",
    # Defaults
    "DEFAULT_PROVIDER",
    "DEFAULT_MODEL",
    "DEFAULT_CONTEXT_TOKENS",
    "WELL_KNOWN_CONTEXT_WINDOWS",
    "WELL_KNOWN_MAX_TOKENS",
    "resolve_max_output_tokens",
]
