"""Provider-specific JSON Schema sanitizing for tool definitions.

Function-calling APIs accept different subsets of JSON Schema. Google's
Gemini endpoints, for example, reject ``additionalProperties`` and most
``format`` values outright. Restrictions live in a capability table keyed by
provider family, so supporting a new provider is a table entry.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence

from transcript_guard.utils.logger import get_logger

logger = get_logger(__name__)

# Keys under which tool definitions carry their parameter schema
SCHEMA_KEYS = ("parameters", "inputSchema", "input_schema")

# Keys whose value maps arbitrary names to sub-schemas
_SCHEMA_MAP_KEYS = frozenset({"properties", "$defs", "definitions", "patternProperties"})


@dataclass(frozen=True)
class SchemaCapabilities:
    """JSON Schema features a provider family rejects."""

    forbidden_keywords: FrozenSet[str] = frozenset()
    # None keeps every format value; otherwise only these survive
    allowed_formats: Optional[FrozenSet[str]] = None


GOOGLE_SCHEMA_CAPABILITIES = SchemaCapabilities(
    forbidden_keywords=frozenset(
        {
            "additionalProperties",
            "default",
            "examples",
            "$schema",
            "definitions",
            "$defs",
            "$ref",
            "$id",
            "title",
            "pattern",
            "minimum",
            "maximum",
            "minLength",
            "maxLength",
            "minItems",
            "maxItems",
            "uniqueItems",
            "exclusiveMinimum",
            "exclusiveMaximum",
            "multipleOf",
            "const",
            "patternProperties",
            "dependencies",
            "if",
            "then",
            "else",
            "not",
            "contains",
        }
    ),
    allowed_formats=frozenset({"enum", "date-time"}),
)

SCHEMA_CAPABILITIES_BY_FAMILY: Dict[str, SchemaCapabilities] = {
    "google": GOOGLE_SCHEMA_CAPABILITIES,
}

PROVIDER_FAMILIES: Dict[str, str] = {
    "google": "google",
    "gemini": "google",
    "google-gemini-cli": "google",
    "google-antigravity": "google",
    "google-vertex": "google",
    "google-generative-ai": "google",
}


def get_provider_family(provider: str) -> Optional[str]:
    return PROVIDER_FAMILIES.get((provider or "").strip().lower())


def get_schema_capabilities(provider: str) -> Optional[SchemaCapabilities]:
    """Restrictions for ``provider``, or None if it accepts full JSON Schema."""
    family = get_provider_family(provider)
    if family is None:
        return None
    return SCHEMA_CAPABILITIES_BY_FAMILY.get(family)


def _clean_schema(schema: Any, caps: SchemaCapabilities) -> Any:
    """Return a cleaned copy of ``schema``; the input is never modified."""
    if isinstance(schema, list):
        return [_clean_schema(item, caps) for item in schema]
    if not isinstance(schema, Mapping):
        return copy.deepcopy(schema)

    cleaned: Dict[str, Any] = {}
    for key, value in schema.items():
        if key in caps.forbidden_keywords:
            logger.debug("Removing unsupported schema keyword", keyword=key)
            continue

        if key == "format" and caps.allowed_formats is not None:
            if not isinstance(value, str) or value not in caps.allowed_formats:
                logger.debug("Removing unsupported schema format", format=value)
                continue

        if key in _SCHEMA_MAP_KEYS and isinstance(value, Mapping):
            # Property names are data, not keywords
            cleaned[key] = {
                name: _clean_schema(sub_schema, caps)
                for name, sub_schema in value.items()
            }
        elif isinstance(value, (Mapping, list)):
            cleaned[key] = _clean_schema(value, caps)
        else:
            cleaned[key] = value

    return cleaned


def clean_schema_for_provider(schema: Any, provider: str) -> Any:
    """Strip keywords ``provider`` rejects from a JSON schema (returns a copy)."""
    caps = get_schema_capabilities(provider)
    if caps is None:
        return copy.deepcopy(schema)
    return _clean_schema(schema, caps)


def sanitize_tools_for_provider(
    tools: Sequence[Mapping[str, Any]], provider: str
) -> List[Dict[str, Any]]:
    """
    Prepare tool definitions for ``provider``.

    Each tool is shallow-copied with its parameter schema (``parameters``,
    ``inputSchema`` or ``input_schema``) replaced by a cleaned copy. Tools for
    providers without restrictions get unmodified schema copies. The input
    definitions are never mutated.

    Args:
        tools: Tool definitions
        provider: Provider id the tools will be sent to

    Returns:
        New list of new tool definitions
    """
    caps = get_schema_capabilities(provider)
    sanitized: List[Dict[str, Any]] = []

    for tool in tools:
        if not isinstance(tool, Mapping):
            logger.warning("Skipping tool definition that is not a mapping")
            continue

        new_tool = dict(tool)
        for schema_key in SCHEMA_KEYS:
            if schema_key in new_tool:
                schema = new_tool[schema_key]
                new_tool[schema_key] = (
                    _clean_schema(schema, caps)
                    if caps is not None
                    else copy.deepcopy(schema)
                )
        sanitized.append(new_tool)

    if caps is not None:
        logger.debug(
            "Sanitized tool schemas",
            provider=provider,
            family=get_provider_family(provider),
            tools=len(sanitized),
        )
    return sanitized
