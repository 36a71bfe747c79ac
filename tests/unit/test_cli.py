"""Unit tests for CLI module."""

import json
import os
from unittest.mock import patch

import pytest

from transcript_guard.cli.arg_mapping import SETTINGS_ARG_MAPPINGS, ArgMapping
from transcript_guard.cli.commands import cmd_version, get_version
from transcript_guard.cli.env_loader import (
    apply_cli_args_to_env,
    load_env_file,
)
from transcript_guard.cli.main import create_parser, main

TRANSCRIPT = [
    {"role": "user", "content": "fix the build"},
    {"role": "toolResult", "toolCallId": "ghost", "toolName": "exec", "content": "stale"},
    {
        "role": "assistant",
        "content": [{"type": "toolCall", "id": "c1", "name": "exec", "arguments": "{}"}],
        "stopReason": "toolUse",
    },
    {
        "role": "toolResult",
        "toolCallId": "c1",
        "toolName": "exec",
        "content": [{"type": "text", "text": "ENOENT: missing file"}],
        "isError": True,
        "details": {"status": "failed", "exitCode": 1},
    },
]


@pytest.fixture(autouse=True)
def restore_environ():
    """CLI commands write settings overrides into os.environ."""
    with patch.dict(os.environ):
        yield


@pytest.fixture
def transcript_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps(TRANSCRIPT))
    return path


class TestArgMapping:
    """Tests for arg_mapping module."""

    def test_settings_arg_mappings_not_empty(self):
        assert len(SETTINGS_ARG_MAPPINGS) > 0

    def test_dest_derived_from_flag(self):
        mapping = ArgMapping(cli_arg="--agent-context-tokens", env_var="AGENT_CONTEXT_TOKENS")
        assert mapping.dest == "agent_context_tokens"

    def test_every_mapping_is_a_parser_option(self):
        args = vars(create_parser().parse_args(["window", "-p", "local", "-m", "m"]))
        for mapping in SETTINGS_ARG_MAPPINGS:
            assert mapping.dest in args
            assert args[mapping.dest] is None

    def test_mapped_flag_reaches_environment(self):
        args = create_parser().parse_args(
            ["window", "-p", "local", "-m", "m", "--max-history-share", "0.3"]
        )
        applied = apply_cli_args_to_env(vars(args))
        assert applied == {"COMPACTION_MAX_HISTORY_SHARE": "0.3"}


class TestEnvLoader:
    """Tests for env_loader module."""

    def test_load_env_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            load_env_file("/nonexistent/.env.test")

    def test_load_env_file_success(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DEFAULT_CONTEXT_TOKENS=64000\nLOG_LEVEL=ERROR\n")

        loaded = load_env_file(str(env_file))

        assert loaded["DEFAULT_CONTEXT_TOKENS"] == "64000"
        assert os.environ.get("DEFAULT_CONTEXT_TOKENS") == "64000"
        # existing values are preserved without override
        assert os.environ.get("LOG_LEVEL") == "DEBUG"

    def test_apply_cli_args_to_env(self):
        applied = apply_cli_args_to_env(
            {"agent_context_tokens": 20000, "max_history_share": 0.3, "agent_config": None}
        )

        assert applied == {
            "AGENT_CONTEXT_TOKENS": "20000",
            "COMPACTION_MAX_HISTORY_SHARE": "0.3",
        }
        assert os.environ["AGENT_CONTEXT_TOKENS"] == "20000"

    def test_apply_cli_args_flags(self):
        applied = apply_cli_args_to_env({"verbose": True, "json_logs": True, "block": True})
        assert applied["LOG_LEVEL"] == "DEBUG"
        assert applied["JSON_LOGS"] == "true"
        assert applied["BLOCK_ON_SMALL_CONTEXT_WINDOW"] == "true"


class TestParser:
    """Tests for argument parser."""

    def test_create_parser(self):
        assert create_parser().prog == "transcript-guard"

    def test_window_requires_provider_and_model(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["window", "--provider", "anthropic"])

    def test_inspect_arguments(self):
        args = create_parser().parse_args(
            ["inspect", "s.json", "-p", "google", "-m", "gemini", "--block", "-e", ".env"]
        )
        assert args.file == "s.json"
        assert args.provider == "google"
        assert args.block is True
        assert args.env_file == ".env"

    def test_settings_override_types(self):
        args = create_parser().parse_args(
            ["repair", "s.json", "--agent-context-tokens", "9000", "--max-history-share", "0.2"]
        )
        assert args.agent_context_tokens == 9000
        assert args.max_history_share == 0.2


class TestCommands:
    """Tests for command handlers."""

    def test_get_version(self):
        assert isinstance(get_version(), str)

    def test_cmd_version(self, capsys):
        assert cmd_version(None) == 0
        assert "transcript-guard version" in capsys.readouterr().out

    def test_main_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_window_well_known_model(self, capsys):
        result = main(["window", "--provider", "anthropic", "--model", "claude-opus-4-6"])

        assert result == 0
        report = json.loads(capsys.readouterr().out)
        assert report["tokens"] == 1000000
        assert report["source"] == "wellKnown"
        assert report["maxOutputTokens"] == 32000

    def test_window_small_model_blocks(self, capsys):
        result = main(
            ["window", "-p", "openrouter", "-m", "small", "--model-context-window", "8000"]
        )

        assert result == 2
        report = json.loads(capsys.readouterr().out)
        assert report["source"] == "model"
        assert report["shouldWarn"] is True
        assert report["shouldBlock"] is True

    def test_window_cap_from_cli(self, capsys):
        result = main(
            ["window", "-p", "anthropic", "-m", "claude-opus-4-6", "--agent-context-tokens", "20000"]
        )

        assert result == 0
        report = json.loads(capsys.readouterr().out)
        assert report["source"] == "agentContextTokens"
        assert report["shouldWarn"] is True

    def test_window_cap_from_env_file(self, tmp_path, capsys):
        env_file = tmp_path / ".env"
        env_file.write_text("AGENT_CONTEXT_TOKENS=64000\n")

        main(["window", "-p", "anthropic", "-m", "claude-opus-4-6", "-e", str(env_file)])

        assert json.loads(capsys.readouterr().out)["tokens"] == 64000

    def test_missing_env_file(self, capsys):
        result = main(["window", "-p", "a", "-m", "b", "-e", "/nonexistent/.env"])
        assert result == 1
        assert "Environment file not found" in capsys.readouterr().err

    def test_missing_agent_config_file(self, capsys):
        result = main(["window", "-p", "a", "-m", "b", "-c", "/nonexistent/agent.yaml"])
        assert result == 1
        assert "not found" in capsys.readouterr().err

    def test_inspect_reports_repairs(self, transcript_file, capsys):
        result = main(
            ["inspect", str(transcript_file), "-p", "anthropic", "-m", "claude-opus-4-6"]
        )

        assert result == 0
        report = json.loads(capsys.readouterr().out)
        assert report["droppedOrphanCount"] == 1
        assert report["messages"] == 3
        assert report["contextWindow"]["source"] == "wellKnown"
        assert report["compaction"] is None

    def test_inspect_with_tools_object(self, tmp_path, capsys):
        path = tmp_path / "call.json"
        path.write_text(
            json.dumps(
                {
                    "messages": TRANSCRIPT[:1],
                    "tools": [{"name": "read", "parameters": {"type": "object"}}],
                }
            )
        )

        result = main(["inspect", str(path), "-p", "google", "-m", "gemini-2.5-pro"])

        assert result == 0
        assert json.loads(capsys.readouterr().out)["tools"] == 1

    def test_inspect_block_flag(self, transcript_file, capsys):
        result = main(
            [
                "inspect",
                str(transcript_file),
                "-p",
                "openrouter",
                "-m",
                "small",
                "--model-context-window",
                "8000",
                "--block",
            ]
        )

        assert result == 2
        report = json.loads(capsys.readouterr().out)
        assert report["blocked"] is True
        assert report["tokens"] == 8000

    def test_inspect_invalid_json(self, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        assert main(["inspect", str(path), "-p", "a", "-m", "b"]) == 1
        assert "not valid JSON" in capsys.readouterr().err

    def test_inspect_unknown_role(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"role": "system", "content": "x"}]))

        assert main(["inspect", str(path), "-p", "a", "-m", "b"]) == 1
        assert "message 0" in capsys.readouterr().err

    def test_repair_to_stdout(self, transcript_file, capsys):
        assert main(["repair", str(transcript_file)]) == 0

        repaired = json.loads(capsys.readouterr().out)
        assert [m["role"] for m in repaired] == ["user", "assistant", "toolResult"]
        assert repaired[2]["toolCallId"] == "c1"

    def test_repair_to_file_keeps_document_shape(self, tmp_path):
        source = tmp_path / "session.json"
        source.write_text(
            json.dumps({"sessionId": "abc", "messages": TRANSCRIPT[:3]})
        )
        output = tmp_path / "out.json"

        assert main(["repair", str(source), "--output", str(output)]) == 0

        document = json.loads(output.read_text())
        assert document["sessionId"] == "abc"
        assert len(document["messages"]) == 2

    def test_repair_missing_file(self, capsys):
        assert main(["repair", "/nonexistent/session.json"]) == 1
        assert "Cannot read transcript" in capsys.readouterr().err
