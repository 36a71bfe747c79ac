"""Tests for the transcript message model and wire codec."""

import pytest

from transcript_guard.errors import TranscriptFormatError
from transcript_guard.transcript.messages import (
    AssistantMessage,
    StopReason,
    TextBlock,
    ToolCallBlock,
    ToolResultMessage,
    UserMessage,
    message_to_dict,
    parse_message,
    parse_transcript,
    transcript_to_dicts,
)


class TestParseMessage:
    """Decoding individual wire-format messages."""

    def test_user_string_content(self):
        message = parse_message({"role": "user", "content": "hi", "timestamp": 5})
        assert message == UserMessage(content="hi", timestamp=5)

    def test_user_block_content_keeps_text_only(self):
        message = parse_message(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "look"},
                    {"type": "image", "data": "..."},
                ],
            }
        )
        assert message.content == (TextBlock("look"),)

    def test_assistant_tool_call_aliases(self):
        """toolCall, toolUse and functionCall blocks all decode as tool calls."""
        message = parse_message(
            {
                "role": "assistant",
                "content": [
                    {"type": "toolCall", "id": "a", "name": "read", "arguments": "{}"},
                    {"type": "toolUse", "id": "b", "name": "write", "input": {"x": 1}},
                    {"type": "functionCall", "id": "c", "name": "exec"},
                ],
                "stopReason": "toolUse",
            }
        )
        assert isinstance(message, AssistantMessage)
        assert [c.id for c in message.tool_calls] == ["a", "b", "c"]
        assert message.tool_calls[1].arguments == {"x": 1}
        assert message.stop_reason == StopReason.TOOL_USE

    def test_assistant_unknown_stop_reason_is_ordinary_turn(self):
        message = parse_message(
            {"role": "assistant", "content": [], "stopReason": "somethingNew"}
        )
        assert message.stop_reason is None

    def test_assistant_tool_call_without_id_rejected(self):
        with pytest.raises(TranscriptFormatError, match="missing an id"):
            parse_message(
                {"role": "assistant", "content": [{"type": "toolCall", "name": "x"}]}
            )

    def test_tool_result(self):
        message = parse_message(
            {
                "role": "toolResult",
                "toolCallId": "call-1",
                "toolName": "exec",
                "content": [{"type": "text", "text": "boom"}],
                "isError": True,
                "details": {"status": "failed", "exitCode": 1},
            }
        )
        assert isinstance(message, ToolResultMessage)
        assert message.is_error is True
        assert message.text == "boom"
        assert message.details == {"status": "failed", "exitCode": 1}

    def test_tool_result_non_boolean_is_error_is_false(self):
        message = parse_message(
            {"role": "toolResult", "toolCallId": "c", "isError": "yes"}
        )
        assert message.is_error is False

    def test_tool_result_missing_call_id_rejected(self):
        with pytest.raises(TranscriptFormatError, match="toolCallId"):
            parse_message({"role": "toolResult", "toolName": "exec"})

    def test_unknown_role_rejected(self):
        with pytest.raises(TranscriptFormatError, match="unknown message role"):
            parse_message({"role": "system", "content": "x"})

    def test_non_mapping_rejected(self):
        with pytest.raises(TranscriptFormatError):
            parse_message(["not", "a", "message"])


class TestParseTranscript:
    """Decoding whole transcripts."""

    def test_error_carries_message_index(self):
        with pytest.raises(TranscriptFormatError, match="message 1"):
            parse_transcript([{"role": "user", "content": "ok"}, {"role": "nope"}])

    def test_rejects_mapping(self):
        with pytest.raises(TranscriptFormatError):
            parse_transcript({"messages": []})

    def test_encode_decode_preserves_fields(self):
        raw = [
            {"role": "user", "content": "run it"},
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "running"},
                    {"type": "toolCall", "id": "c1", "name": "exec", "arguments": "{}"},
                ],
                "stopReason": "toolUse",
                "provider": "anthropic",
                "model": "claude-opus-4-6",
            },
            {
                "role": "toolResult",
                "toolCallId": "c1",
                "toolName": "exec",
                "content": [{"type": "text", "text": "done"}],
                "isError": False,
            },
        ]
        assert transcript_to_dicts(parse_transcript(raw)) == raw


class TestMessageToDict:
    """Encoding messages back to the wire format."""

    def test_assistant_omits_unset_fields(self):
        message = AssistantMessage(content=(TextBlock("hi"),))
        assert message_to_dict(message) == {
            "role": "assistant",
            "content": [{"type": "text", "text": "hi"}],
        }

    def test_tool_call_block_uses_canonical_type(self):
        message = AssistantMessage(
            content=(ToolCallBlock(id="x", name="read", arguments={"p": 1}),)
        )
        block = message_to_dict(message)["content"][0]
        assert block == {"type": "toolCall", "id": "x", "name": "read", "arguments": {"p": 1}}
