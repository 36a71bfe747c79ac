"""Configuration management for transcript-guard."""

import json
import logging
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from transcript_guard.config.agent_config import (
    AgentRuntimeConfig,
    ModelsConfig,
    load_agent_config,
)

# Standard logging here avoids an import cycle with the structlog setup;
# setup_logging() reconfigures the root logger in CLI commands.
logger = logging.getLogger(__name__)


class CoreSettings(BaseSettings):
    """Environment-driven settings for the transcript pipeline."""

    model_config = SettingsConfigDict(extra="ignore")

    # Logging configuration
    log_level: str = Field(
        "INFO",
        validation_alias="LOG_LEVEL",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(False, validation_alias="JSON_LOGS")

    # Context window resolution
    default_context_tokens: int = Field(
        200_000,
        validation_alias="DEFAULT_CONTEXT_TOKENS",
        ge=1,
        description="Fallback context window when no other source knows the model",
    )
    agent_context_tokens: Optional[int] = Field(
        None,
        validation_alias="AGENT_CONTEXT_TOKENS",
        ge=1,
        description="Per-agent cap; only applied when smaller than the resolved window",
    )
    agent_config_file: Optional[str] = Field(
        None,
        validation_alias="AGENT_CONFIG_FILE",
        description="Path to a YAML/JSON agent configuration file",
    )
    models_config: str = Field(
        "",
        validation_alias="MODELS_CONFIG",
        description="Inline YAML/JSON provider catalog (the 'models' section)",
    )

    # Context window guard thresholds
    context_window_warn_below_tokens: int = Field(
        32_000, validation_alias="CONTEXT_WINDOW_WARN_BELOW_TOKENS", ge=1
    )
    context_window_hard_min_tokens: int = Field(
        16_000, validation_alias="CONTEXT_WINDOW_HARD_MIN_TOKENS", ge=1
    )
    block_on_small_context_window: bool = Field(
        False,
        validation_alias="BLOCK_ON_SMALL_CONTEXT_WINDOW",
        description="Raise instead of only logging when the guard blocks",
    )

    # Compaction
    compaction_max_history_share: float = Field(
        0.5,
        validation_alias="COMPACTION_MAX_HISTORY_SHARE",
        ge=0.1,
        le=0.9,
        description="Share of the context window history may occupy (0.1-0.9)",
    )

    @field_validator("json_logs", "block_on_small_context_window", mode="before")
    @classmethod
    def parse_bool_from_env(cls, v: Any) -> bool:
        """Handle empty strings and various boolean representations from env vars."""
        if v is None or v == "":
            return False
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower().strip() in ("true", "1", "yes")
        return bool(v)

    @field_validator("agent_context_tokens", mode="before")
    @classmethod
    def parse_optional_int(cls, v: Any) -> Any:
        """Treat empty env values as unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def get_models_config(self) -> Optional[ModelsConfig]:
        """Parse the inline MODELS_CONFIG catalog (YAML first, JSON fallback)."""
        if not self.models_config or not self.models_config.strip():
            return None

        try:
            data = yaml.safe_load(self.models_config)
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error in MODELS_CONFIG: {e}")
            try:
                data = json.loads(self.models_config)
            except (json.JSONDecodeError, TypeError) as e:
                logger.error(f"JSON parsing also failed for MODELS_CONFIG: {e}")
                return None

        if not isinstance(data, dict):
            logger.error(f"Expected mapping in MODELS_CONFIG, got {type(data)}")
            return None

        # Accept either the full {"providers": ...} section or the bare mapping
        if "providers" not in data:
            data = {"providers": data}

        try:
            return ModelsConfig.model_validate(data)
        except ValidationError as e:
            logger.error(f"Invalid MODELS_CONFIG: {e}")
            return None

    def get_agent_config(self) -> AgentRuntimeConfig:
        """
        Build the effective agent configuration.

        Sources are layered: the AGENT_CONFIG_FILE contents, then providers from
        MODELS_CONFIG (overriding same-named providers), then AGENT_CONTEXT_TOKENS
        as the per-agent cap.
        """
        config = (
            load_agent_config(self.agent_config_file)
            if self.agent_config_file
            else AgentRuntimeConfig()
        )

        inline_models = self.get_models_config()
        if inline_models is not None:
            providers = dict(config.models.providers)
            providers.update(inline_models.providers)
            config = config.model_copy(
                update={"models": ModelsConfig(providers=providers)}
            )

        if self.agent_context_tokens is not None:
            defaults = config.agents.defaults.model_copy(
                update={"context_tokens": self.agent_context_tokens}
            )
            agents = config.agents.model_copy(update={"defaults": defaults})
            config = config.model_copy(update={"agents": agents})

        return config

    def get_guard_thresholds(self) -> Dict[str, int]:
        return {
            "warn_below_tokens": self.context_window_warn_below_tokens,
            "hard_min_tokens": self.context_window_hard_min_tokens,
        }


# Short alias for CoreSettings
Settings = CoreSettings


def load_settings() -> Settings:
    """Load settings from environment variables."""
    return CoreSettings()
