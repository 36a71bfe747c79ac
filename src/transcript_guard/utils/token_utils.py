"""Token estimation for transcript messages.

Counts are a coarse, provider-agnostic approximation (about four characters
per token). They drive compaction ratios and thresholds, never billing.
"""

import json
import math
from typing import Any, Iterable

from transcript_guard.transcript.messages import (
    AssistantMessage,
    Message,
    TextBlock,
    ToolCallBlock,
    ToolResultMessage,
    UserMessage,
)

CHARS_PER_TOKEN = 4


class TokenEstimator:
    """Universal token estimation across providers."""

    @classmethod
    def estimate_tokens(cls, text: str) -> int:
        """Estimate tokens for a text blob: ceil(characters / 4)."""
        if not text:
            return 0
        return cls._chars_to_tokens(len(text))

    @classmethod
    def estimate_message_tokens(cls, message: Message) -> int:
        """Estimate tokens for a single message of any role."""
        return cls._chars_to_tokens(cls._message_chars(message))

    @classmethod
    def estimate_messages_tokens(cls, messages: Iterable[Message]) -> int:
        """Sum of per-message estimates."""
        return sum(cls.estimate_message_tokens(m) for m in messages)

    @classmethod
    def _chars_to_tokens(cls, chars: int) -> int:
        return math.ceil(chars / CHARS_PER_TOKEN)

    @classmethod
    def _message_chars(cls, message: Message) -> int:
        if isinstance(message, UserMessage):
            if isinstance(message.content, str):
                return len(message.content)
            return sum(len(block.text) for block in message.content)

        if isinstance(message, AssistantMessage):
            chars = 0
            for block in message.content:
                if isinstance(block, ToolCallBlock):
                    chars += len(block.name) + len(cls._serialize_arguments(block))
                elif isinstance(block, TextBlock):
                    chars += len(block.text)
            return chars

        if isinstance(message, ToolResultMessage):
            return sum(len(block.text) for block in message.content)

        return 0

    @staticmethod
    def _serialize_arguments(block: ToolCallBlock) -> str:
        arguments: Any = block.arguments
        if arguments is None:
            return ""
        if isinstance(arguments, str):
            return arguments
        try:
            return json.dumps(arguments, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return str(arguments)


def estimate_tokens(text: str) -> int:
    """Module-level shortcut for TokenEstimator.estimate_tokens."""
    return TokenEstimator.estimate_tokens(text)
