"""Model defaults used when upstream metadata is unavailable."""

from typing import Dict, Optional

from transcript_guard.config.agent_config import normalize_positive_int

DEFAULT_PROVIDER = "anthropic"
DEFAULT_MODEL = "claude-opus-4-6"

# Conservative fallback when nothing else knows the model
DEFAULT_CONTEXT_TOKENS = 200_000

# Intermediate fallback for sessions whose model registry cannot resolve
# metadata (e.g. OAuth sessions) and that have no provider catalog entry.
WELL_KNOWN_CONTEXT_WINDOWS: Dict[str, int] = {
    "claude-opus-4-6": 1_000_000,
    "claude-sonnet-4-5-20250929": 200_000,
    "claude-haiku-4-5-20251001": 200_000,
    "claude-sonnet-4-20250514": 200_000,
}

WELL_KNOWN_MAX_TOKENS: Dict[str, int] = {
    "claude-opus-4-6": 32_000,
    "claude-sonnet-4-5-20250929": 16_000,
    "claude-haiku-4-5-20251001": 16_000,
    "claude-sonnet-4-20250514": 16_000,
}


def resolve_max_output_tokens(
    model_id: str,
    model_max_tokens: Optional[int] = None,
    default: Optional[int] = None,
) -> Optional[int]:
    """Output-token budget: live metadata, then well-known table, then default."""
    explicit = normalize_positive_int(model_max_tokens)
    if explicit is not None:
        return explicit
    well_known = WELL_KNOWN_MAX_TOKENS.get(model_id)
    if well_known is not None:
        return well_known
    return normalize_positive_int(default)
