"""CLI command implementations."""

import json
import sys
from argparse import Namespace
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from transcript_guard.cli.env_loader import apply_cli_args_to_env, load_env_file
from transcript_guard.config.settings import Settings, load_settings
from transcript_guard.context.defaults import resolve_max_output_tokens
from transcript_guard.context.window import (
    evaluate_context_window_guard,
    resolve_context_window_info,
)
from transcript_guard.errors import (
    ConfigurationError,
    ContextWindowTooSmallError,
    TranscriptFormatError,
)
from transcript_guard.pipeline import TranscriptGuard
from transcript_guard.transcript.abort import strip_aborted_assistant_messages
from transcript_guard.transcript.messages import (
    Message,
    parse_transcript,
    transcript_to_dicts,
)
from transcript_guard.transcript.repair import repair_tool_result_pairing
from transcript_guard.utils.logger import get_logger, setup_logging

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_GUARD_BLOCKED = 2


def get_version() -> str:
    """Get the package version."""
    try:
        return version("transcript-guard")
    except PackageNotFoundError:
        return "unknown"


def cmd_version(args: Namespace) -> int:
    """Handle the 'version' command."""
    print(f"transcript-guard version {get_version()}")
    return EXIT_OK


def _prepare_environment(args: Namespace) -> Optional[Settings]:
    """Load env file and CLI overrides, then settings and logging.

    Returns None (after reporting on stderr) when configuration is invalid.
    """
    env_file = getattr(args, "env_file", None)
    if env_file:
        try:
            load_env_file(env_file)
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return None

    apply_cli_args_to_env(vars(args))

    try:
        settings = load_settings()
    except ValidationError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return None

    setup_logging(level=settings.log_level, json_logs=settings.json_logs)
    return settings


def _read_transcript_file(path: str) -> Tuple[Any, List[Message], List[Dict[str, Any]]]:
    """
    Read a transcript file.

    The file holds either a JSON array of messages or an object with a
    ``messages`` array and an optional ``tools`` array.

    Returns:
        Tuple of (raw document, parsed messages, tool definitions)

    Raises:
        TranscriptFormatError: If the file cannot be read or decoded
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except OSError as e:
        raise TranscriptFormatError(f"Cannot read transcript {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise TranscriptFormatError(f"Transcript {path} is not valid JSON: {e}") from e

    if isinstance(document, list):
        raw_messages, tools = document, []
    elif isinstance(document, dict) and isinstance(document.get("messages"), list):
        raw_messages = document["messages"]
        tools = document.get("tools") or []
        if not isinstance(tools, list):
            raise TranscriptFormatError("'tools' must be a JSON array")
    else:
        raise TranscriptFormatError(
            "Transcript must be a JSON array or an object with a 'messages' array"
        )

    return document, parse_transcript(raw_messages), tools


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_window(args: Namespace) -> int:
    """Handle the 'window' command: resolve and guard a model's context window."""
    settings = _prepare_environment(args)
    if settings is None:
        return EXIT_INPUT_ERROR

    try:
        agent_config = settings.get_agent_config()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    info = resolve_context_window_info(
        agent_config,
        args.provider,
        args.model,
        args.model_context_window,
        settings.default_context_tokens,
    )
    guard = evaluate_context_window_guard(info, **settings.get_guard_thresholds())

    report = {"provider": args.provider, "model": args.model}
    report.update(guard.to_dict())
    report["maxOutputTokens"] = resolve_max_output_tokens(args.model)
    _print_json(report)

    return EXIT_GUARD_BLOCKED if guard.should_block else EXIT_OK


def cmd_inspect(args: Namespace) -> int:
    """Handle the 'inspect' command: run the full pipeline over a transcript."""
    settings = _prepare_environment(args)
    if settings is None:
        return EXIT_INPUT_ERROR
    logger = get_logger(__name__)

    try:
        _, messages, tools = _read_transcript_file(args.file)
        guard = TranscriptGuard(settings=settings)
        prepared = guard.prepare(
            messages,
            tools=tools,
            provider=args.provider,
            model_id=args.model,
            model_context_window=args.model_context_window,
        )
    except (TranscriptFormatError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except ContextWindowTooSmallError as e:
        logger.error("Model call blocked", error=str(e))
        _print_json(
            {
                "provider": args.provider,
                "model": args.model,
                "blocked": True,
                "tokens": e.tokens,
                "source": e.source,
                "hardMinTokens": e.hard_min_tokens,
            }
        )
        return EXIT_GUARD_BLOCKED

    report = {"provider": args.provider, "model": args.model}
    report.update(prepared.summary())
    _print_json(report)

    return EXIT_GUARD_BLOCKED if prepared.guard.should_block else EXIT_OK


def cmd_repair(args: Namespace) -> int:
    """Handle the 'repair' command: write the repaired transcript."""
    settings = _prepare_environment(args)
    if settings is None:
        return EXIT_INPUT_ERROR
    logger = get_logger(__name__)

    try:
        document, messages, _ = _read_transcript_file(args.file)
    except TranscriptFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    report = repair_tool_result_pairing(messages)
    repaired = strip_aborted_assistant_messages(report.messages)
    serialized = transcript_to_dicts(repaired)

    if isinstance(document, dict):
        output: Any = dict(document)
        output["messages"] = serialized
    else:
        output = serialized

    text = json.dumps(output, indent=2, ensure_ascii=False) + "\n"
    if args.output:
        try:
            Path(args.output).write_text(text, encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot write {args.output}: {e}", file=sys.stderr)
            return EXIT_INPUT_ERROR
        logger.info(
            "Wrote repaired transcript",
            output=args.output,
            messages=len(repaired),
            dropped_orphans=report.dropped_orphan_count,
            dropped_duplicates=report.dropped_duplicate_count,
            aborted_turns_stripped=repaired is not report.messages,
        )
    else:
        sys.stdout.write(text)

    return EXIT_OK
