"""Provider-specific normalization of tool definitions."""

from .schema import (
    PROVIDER_FAMILIES,
    SCHEMA_CAPABILITIES_BY_FAMILY,
    SchemaCapabilities,
    clean_schema_for_provider,
    get_provider_family,
    get_schema_capabilities,
    sanitize_tools_for_provider,
)

__all__ = [
    "SchemaCapabilities",
    "PROVIDER_FAMILIES",
    "SCHEMA_CAPABILITIES_BY_FAMILY",
    "get_provider_family",
    "get_schema_capabilities",
    "clean_schema_for_provider",
    "sanitize_tools_for_provider",
]
