"""Transcript message model and structural repair passes."""

from .abort import strip_aborted_assistant_messages
from .messages import (
    AssistantMessage,
    Message,
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
from .repair import ToolPairingReport, repair_tool_result_pairing

__all__ = [
    "Message",
    "UserMessage",
    "AssistantMessage",
    "ToolResultMessage",
    "TextBlock",
    "ToolCallBlock",
    "StopReason",
    "parse_message",
    "parse_transcript",
    "message_to_dict",
    "transcript_to_dicts",
    # Repair passes
    "ToolPairingReport",
    "repair_tool_result_pairing",
    "strip_aborted_assistant_messages",
]
