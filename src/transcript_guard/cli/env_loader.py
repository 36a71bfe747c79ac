"""Move .env files and CLI flags into os.environ for CoreSettings to read.

Precedence, lowest first: --env-file, process environment, CLI flags.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping

from dotenv import dotenv_values, load_dotenv

from transcript_guard.cli.arg_mapping import SETTINGS_ARG_MAPPINGS

# boolean flags and the variable each one switches on
_SWITCHES = {
    "verbose": ("LOG_LEVEL", "DEBUG"),
    "json_logs": ("JSON_LOGS", "true"),
    "block": ("BLOCK_ON_SMALL_CONTEXT_WINDOW", "true"),
}


def load_env_file(env_file: str, override: bool = False) -> Dict[str, str]:
    """
    Read ``env_file`` into os.environ and return the pairs it defines.

    Variables already present in the environment win unless ``override``.

    Raises:
        FileNotFoundError: If ``env_file`` does not exist
    """
    path = Path(env_file)
    if not path.exists():
        raise FileNotFoundError(f"Environment file not found: {env_file}")

    load_dotenv(path, override=override)
    return {
        key: value
        for key, value in dotenv_values(path).items()
        if value is not None
    }


def apply_cli_args_to_env(args: Mapping[str, Any]) -> Dict[str, str]:
    """Export the flags that were given; return what was written."""
    applied: Dict[str, str] = {}

    for mapping in SETTINGS_ARG_MAPPINGS:
        value = args.get(mapping.dest)
        if value is not None:
            applied[mapping.env_var] = str(value)

    for flag, (env_var, value) in _SWITCHES.items():
        if args.get(flag):
            applied[env_var] = value

    os.environ.update(applied)
    return applied
