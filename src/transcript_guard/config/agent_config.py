"""Agent runtime configuration file model.

Mirrors the subset of the agent's JSON/YAML configuration that context-window
resolution reads::

    agents:
      defaults:
        contextTokens: 100000
    models:
      providers:
        openrouter:
          models:
            - id: tiny
              contextWindow: 12000
              maxTokens: 256
"""

import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from transcript_guard.errors import ConfigurationError

logger = logging.getLogger(__name__)


def normalize_positive_int(value: Any) -> Optional[int]:
    """Return ``value`` floored to an int when it is a finite number > 0, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    result = math.floor(value)
    return result if result > 0 else None


class ModelDefinition(BaseModel):
    """One model entry of a provider catalog."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: Optional[str] = None
    context_window: Optional[int] = Field(None, alias="contextWindow")
    max_tokens: Optional[int] = Field(None, alias="maxTokens")

    @field_validator("context_window", "max_tokens", mode="before")
    @classmethod
    def parse_positive_int(cls, v: Any) -> Optional[int]:
        """Treat malformed or non-positive sizes as unset."""
        return normalize_positive_int(v)


class ProviderConfig(BaseModel):
    """Provider catalog: connection details are ignored, models are kept."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base_url: Optional[str] = Field(None, alias="baseUrl")
    models: List[ModelDefinition] = Field(default_factory=list)

    @field_validator("models", mode="before")
    @classmethod
    def parse_models(cls, v: Any) -> List[Any]:
        if not isinstance(v, list):
            return []
        return [
            m
            for m in v
            if isinstance(m, ModelDefinition)
            or (isinstance(m, dict) and isinstance(m.get("id"), str))
        ]

    def find_model(self, model_id: str) -> Optional[ModelDefinition]:
        for model in self.models:
            if model.id == model_id:
                return model
        return None


class ModelsConfig(BaseModel):
    """``models`` section: provider catalogs keyed by provider id."""

    model_config = ConfigDict(extra="ignore")

    providers: Dict[str, ProviderConfig] = Field(default_factory=dict)

    def get_provider(self, provider: str) -> Optional[ProviderConfig]:
        """Look up a provider by exact key, then case-insensitively."""
        if provider in self.providers:
            return self.providers[provider]
        wanted = provider.strip().lower()
        for key, entry in self.providers.items():
            if key.strip().lower() == wanted:
                return entry
        return None


class AgentDefaults(BaseModel):
    """``agents.defaults`` section."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    context_tokens: Optional[int] = Field(None, alias="contextTokens")

    @field_validator("context_tokens", mode="before")
    @classmethod
    def parse_context_tokens(cls, v: Any) -> Optional[int]:
        return normalize_positive_int(v)


class AgentsConfig(BaseModel):
    """``agents`` section."""

    model_config = ConfigDict(extra="ignore")

    defaults: AgentDefaults = Field(default_factory=AgentDefaults)


class AgentRuntimeConfig(BaseModel):
    """Root of the agent configuration consumed by context-window resolution."""

    model_config = ConfigDict(extra="ignore")

    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)

    def get_catalog_context_window(self, provider: str, model_id: str) -> Optional[int]:
        """Context window declared for ``provider``/``model_id``, if any."""
        entry = self.models.get_provider(provider)
        if entry is None:
            return None
        model = entry.find_model(model_id)
        return model.context_window if model else None

    def get_catalog_max_tokens(self, provider: str, model_id: str) -> Optional[int]:
        entry = self.models.get_provider(provider)
        if entry is None:
            return None
        model = entry.find_model(model_id)
        return model.max_tokens if model else None


def coerce_agent_config(
    cfg: Union[None, AgentRuntimeConfig, Dict[str, Any]],
) -> Optional[AgentRuntimeConfig]:
    """Accept a parsed model, a raw mapping or None.

    A mapping that fails validation is logged and treated as absent so that
    resolution falls through to the next source instead of failing the call.
    """
    if cfg is None or isinstance(cfg, AgentRuntimeConfig):
        return cfg
    if isinstance(cfg, dict):
        try:
            return AgentRuntimeConfig.model_validate(cfg)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid agent configuration: {e}")
            return None
    logger.warning(f"Ignoring agent configuration of type {type(cfg).__name__}")
    return None


def load_agent_config(path: Union[str, Path]) -> AgentRuntimeConfig:
    """
    Load agent configuration from a YAML or JSON file.

    Args:
        path: File path; JSON is parsed as YAML

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Agent config file not found: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {config_path}: {e}") from e

    if data is None:
        logger.warning(f"Agent config file {config_path} is empty")
        return AgentRuntimeConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a mapping in {config_path}, got {type(data).__name__}"
        )

    try:
        config = AgentRuntimeConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid agent config {config_path}: {e}") from e

    logger.info(
        f"Loaded agent config from {config_path}: "
        f"{len(config.models.providers)} provider catalog(s)"
    )
    return config
