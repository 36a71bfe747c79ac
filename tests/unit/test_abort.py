"""Tests for collapsing aborted and errored assistant turns."""

from transcript_guard.transcript.abort import (
    describe_failed_turn,
    strip_aborted_assistant_messages,
)
from transcript_guard.transcript.messages import (
    AssistantMessage,
    StopReason,
    TextBlock,
    ToolResultMessage,
)


class TestDescribeFailedTurn:
    """Replacement text for failed turns."""

    def test_no_tool_calls(self):
        text = describe_failed_turn(StopReason.ABORTED, [])
        assert "interrupted" in text
        assert "No tool calls were finalized" in text

    def test_single_call(self):
        text = describe_failed_turn(StopReason.ABORTED, ["read"])
        assert "`read`" in text
        assert "tool call " in text
        assert "calls" not in text

    def test_multiple_calls(self):
        text = describe_failed_turn(StopReason.ABORTED, ["read", "write"])
        assert "`read`, `write`" in text
        assert "calls" in text

    def test_streaming_error(self):
        text = describe_failed_turn(StopReason.ERROR, ["exec"])
        assert "streaming error" in text
        assert "`exec`" in text

    def test_missing_name_rendered_as_unknown(self):
        assert "`unknown`" in describe_failed_turn(StopReason.ABORTED, [""])


class TestStripAbortedAssistantMessages:
    """Failed turns become a single text turn and lose their results."""

    def test_aborted_turn_with_two_calls(self, user_message, make_assistant, make_result):
        aborted = make_assistant(
            ("c1", "read"), ("c2", "write"), stop_reason=StopReason.ABORTED
        )
        messages = [
            user_message,
            aborted,
            make_result("c1", "read", text="aborted", is_error=True),
            make_result("c2", "write", text="aborted", is_error=True),
        ]

        result = strip_aborted_assistant_messages(messages)

        assert len(result) == 2
        assert result[0] is user_message
        rewritten = result[1]
        assert isinstance(rewritten, AssistantMessage)
        assert len(rewritten.content) == 1
        assert isinstance(rewritten.content[0], TextBlock)
        text = rewritten.content[0].text
        assert "`read`" in text and "`write`" in text
        assert "calls" in text
        assert rewritten.tool_calls == []
        assert rewritten.stop_reason == StopReason.STOP
        assert not any(isinstance(m, ToolResultMessage) for m in result)

    def test_errored_turn_without_calls(self, user_message):
        errored = AssistantMessage(
            content=(TextBlock("partial"),),
            stop_reason=StopReason.ERROR,
            error_message="connection reset",
            provider="anthropic",
        )

        result = strip_aborted_assistant_messages([user_message, errored])

        rewritten = result[1]
        assert "streaming error" in rewritten.content[0].text
        assert "No tool calls were finalized" in rewritten.content[0].text
        assert rewritten.error_message is None
        assert rewritten.provider == "anthropic"

    def test_unrelated_results_kept(self, make_assistant, make_result):
        ok_result = make_result("c1")
        messages = [
            make_assistant(("c1", "exec")),
            ok_result,
            make_assistant(("c2", "exec"), stop_reason=StopReason.ABORTED),
            make_result("c2", is_error=True),
        ]

        result = strip_aborted_assistant_messages(messages)

        assert ok_result in result
        assert len(result) == 3

    def test_no_failed_turns_returns_same_object(self, make_assistant, make_result):
        messages = [make_assistant(("c1", "exec")), make_result("c1")]
        assert strip_aborted_assistant_messages(messages) is messages

    def test_input_not_mutated(self, make_assistant):
        aborted = make_assistant(("c1", "read"), stop_reason=StopReason.ABORTED)
        messages = [aborted]

        strip_aborted_assistant_messages(messages)

        assert messages[0] is aborted
        assert aborted.stop_reason == StopReason.ABORTED
        assert len(aborted.tool_calls) == 1

    def test_stripping_is_idempotent(self, user_message, make_assistant, make_result):
        messages = [
            user_message,
            make_assistant(("c1", "read"), stop_reason=StopReason.ABORTED),
            make_result("c1", "read", is_error=True),
        ]

        once = strip_aborted_assistant_messages(messages)
        twice = strip_aborted_assistant_messages(once)

        assert once is not messages
        assert twice is once

    def test_no_failed_stop_reasons_remain(self, user_message, make_assistant, make_result):
        messages = [
            user_message,
            make_assistant(("c1", "read"), stop_reason=StopReason.ABORTED),
            make_result("c1", "read", is_error=True),
            make_assistant(("c2", "exec")),
            make_result("c2"),
            make_assistant(stop_reason=StopReason.ERROR, text="partial"),
            make_assistant(("c3", "write"), stop_reason=StopReason.ERROR),
            make_result("c3", "write", is_error=True),
        ]

        result = strip_aborted_assistant_messages(messages)

        assistants = [m for m in result if isinstance(m, AssistantMessage)]
        assert len(assistants) == 4
        assert not any(
            m.stop_reason in (StopReason.ABORTED, StopReason.ERROR) for m in assistants
        )
        result_ids = [m.tool_call_id for m in result if isinstance(m, ToolResultMessage)]
        assert result_ids == ["c2"]
