"""Pytest configuration and shared fixtures."""

import logging
import sys
from pathlib import Path

import pytest
import structlog

# Add src directory to Python path for tests
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from transcript_guard.compaction.runtime import reset_default_registry  # noqa: E402
from transcript_guard.transcript.messages import (  # noqa: E402
    AssistantMessage,
    StopReason,
    TextBlock,
    ToolCallBlock,
    ToolResultMessage,
    UserMessage,
)

# Settings-related variables cleared before each test
SETTINGS_ENV_VARS = (
    "DEFAULT_CONTEXT_TOKENS",
    "AGENT_CONTEXT_TOKENS",
    "CONTEXT_WINDOW_WARN_BELOW_TOKENS",
    "CONTEXT_WINDOW_HARD_MIN_TOKENS",
    "COMPACTION_MAX_HISTORY_SHARE",
    "BLOCK_ON_SMALL_CONTEXT_WINDOW",
    "AGENT_CONFIG_FILE",
    "MODELS_CONFIG",
)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Setup test environment variables."""
    for key in SETTINGS_ENV_VARS:
        monkeypatch.delenv(key, raising=False)

    test_env = {
        "LOG_LEVEL": "DEBUG",
        "JSON_LOGS": "false",
    }
    for key, value in test_env.items():
        monkeypatch.setenv(key, value)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging(); its handlers hold streams captured for one test."""
    yield
    structlog.reset_defaults()
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if type(handler) is logging.StreamHandler:
            root_logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def fresh_default_registry():
    """Give each test its own process-wide compaction registry."""
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture
def make_assistant():
    """Build an assistant message issuing the given tool calls."""

    def _make(*calls, stop_reason=StopReason.TOOL_USE, text=None):
        content = []
        if text:
            content.append(TextBlock(text=text))
        for call_id, name in calls:
            content.append(ToolCallBlock(id=call_id, name=name, arguments={}))
        return AssistantMessage(content=tuple(content), stop_reason=stop_reason)

    return _make


@pytest.fixture
def make_result():
    """Build a tool result message."""

    def _make(call_id, name="exec", text="ok", is_error=False, details=None):
        return ToolResultMessage(
            tool_call_id=call_id,
            tool_name=name,
            content=(TextBlock(text=text),),
            is_error=is_error,
            details=details,
        )

    return _make


@pytest.fixture
def user_message():
    return UserMessage(content="hello")
