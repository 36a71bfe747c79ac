"""Settings flags shared by the CLI commands and the env variables they set."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class ArgMapping:
    """One CLI flag that overrides one CoreSettings environment variable."""

    cli_arg: str
    env_var: str
    arg_type: type = str
    choices: Optional[List[str]] = None
    help_text: str = ""
    short_arg: Optional[str] = None

    @property
    def dest(self) -> str:
        """argparse attribute name, e.g. ``--log-level`` -> ``log_level``."""
        return self.cli_arg.lstrip("-").replace("-", "_")


SETTINGS_ARG_MAPPINGS: List[ArgMapping] = [
    ArgMapping(
        cli_arg="--log-level",
        env_var="LOG_LEVEL",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help_text="Logging level",
    ),
    ArgMapping(
        cli_arg="--agent-config",
        env_var="AGENT_CONFIG_FILE",
        help_text="Agent configuration file (YAML or JSON)",
        short_arg="-c",
    ),
    ArgMapping(
        cli_arg="--agent-context-tokens",
        env_var="AGENT_CONTEXT_TOKENS",
        arg_type=int,
        help_text="Cap the resolved context window at this many tokens",
    ),
    ArgMapping(
        cli_arg="--default-context-tokens",
        env_var="DEFAULT_CONTEXT_TOKENS",
        arg_type=int,
        help_text="Context window used when nothing else knows the model",
    ),
    ArgMapping(
        cli_arg="--max-history-share",
        env_var="COMPACTION_MAX_HISTORY_SHARE",
        arg_type=float,
        help_text="Share of the context window history may occupy (0.1-0.9)",
    ),
]
