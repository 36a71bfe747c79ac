#!/usr/bin/env python3
"""Main CLI entry point for transcript-guard."""

import argparse
import sys
from typing import Any, Dict, List, Optional

from transcript_guard.cli.arg_mapping import SETTINGS_ARG_MAPPINGS
from transcript_guard.cli.commands import (
    cmd_inspect,
    cmd_repair,
    cmd_version,
    cmd_window,
    get_version,
)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="transcript-guard",
        description="Transcript integrity and compaction safeguards for agent model calls",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  transcript-guard window --provider anthropic --model claude-opus-4-6
  transcript-guard inspect session.json --provider google --model gemini-2.5-pro
  transcript-guard repair session.json --output session.repaired.json
  transcript-guard version
""",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_version()}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
        metavar="COMMAND",
    )

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the transcript-guard version",
    )

    window_parser = subparsers.add_parser(
        "window",
        help="Resolve a model's context window",
        description="Resolve the context window for a model and evaluate the guard",
    )
    _add_model_arguments(window_parser)
    _add_settings_arguments(window_parser)

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Run the pre-call pipeline over a transcript",
        description="Repair, size-check and plan compaction for a JSON transcript",
    )
    inspect_parser.add_argument("file", metavar="FILE", help="JSON transcript file")
    _add_model_arguments(inspect_parser)
    _add_settings_arguments(inspect_parser)
    inspect_parser.add_argument(
        "--block",
        action="store_true",
        help="Fail instead of warning when the context window is too small",
    )

    repair_parser = subparsers.add_parser(
        "repair",
        help="Repair tool pairing and aborted turns in a transcript",
        description="Write the transcript with tool pairing and aborted turns repaired",
    )
    repair_parser.add_argument("file", metavar="FILE", help="JSON transcript file")
    repair_parser.add_argument(
        "--output",
        "-o",
        metavar="FILE",
        help="Write the repaired transcript here instead of stdout",
    )
    _add_settings_arguments(repair_parser)

    return parser


def _add_model_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--provider", "-p", required=True, help="Provider id (e.g. anthropic, google)"
    )
    parser.add_argument("--model", "-m", required=True, help="Model id")
    parser.add_argument(
        "--model-context-window",
        type=int,
        default=None,
        metavar="TOKENS",
        help="Context window reported by live model metadata",
    )


def _add_settings_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the env-file, settings override and logging flags."""
    parser.add_argument(
        "--env-file",
        "-e",
        metavar="FILE",
        help="Load environment from a .env file (lowest priority, CLI args override)",
    )

    for mapping in SETTINGS_ARG_MAPPINGS:
        kwargs: Dict[str, Any] = {
            "help": mapping.help_text or f"Set {mapping.env_var}",
            "dest": mapping.dest,
            "default": None,  # let env/settings handle defaults
        }
        if mapping.choices:
            kwargs["choices"] = mapping.choices
            kwargs["metavar"] = mapping.dest.upper()
        if mapping.arg_type is not str:
            kwargs["type"] = mapping.arg_type

        args = [mapping.cli_arg]
        if mapping.short_arg:
            args.insert(0, mapping.short_arg)
        parser.add_argument(*args, **kwargs)

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output (sets LOG_LEVEL=DEBUG)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines on stderr",
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "version":
        return cmd_version(args)
    elif args.command == "window":
        return cmd_window(args)
    elif args.command == "inspect":
        return cmd_inspect(args)
    elif args.command == "repair":
        return cmd_repair(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
