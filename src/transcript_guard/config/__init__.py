"""Settings and agent configuration models."""

from .agent_config import (
    AgentRuntimeConfig,
    ModelDefinition,
    ModelsConfig,
    ProviderConfig,
    coerce_agent_config,
    load_agent_config,
)
from .settings import CoreSettings, Settings, load_settings

__all__ = [
    "CoreSettings",
    "Settings",
    "load_settings",
    "AgentRuntimeConfig",
    "ModelsConfig",
    "ProviderConfig",
    "ModelDefinition",
    "coerce_agent_config",
    "load_agent_config",
]
