"""Transcript message types and their JSON wire format.

A transcript is an ordered list of messages. Three roles exist:

- ``user``: free text from the operator (plain string or text blocks)
- ``assistant``: model turns made of text blocks and tool-call blocks
- ``toolResult``: the outcome of executing one tool call

The wire format is the camelCase JSON the agent runtime persists and replays,
for example::

    {"role": "assistant",
     "content": [{"type": "toolCall", "id": "call-1", "name": "read",
                  "arguments": "{\\"path\\": \\"a.py\\"}"}],
     "stopReason": "toolUse"}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from transcript_guard.errors import TranscriptFormatError
from transcript_guard.utils.logger import get_logger

logger = get_logger(__name__)

# Block type names emitted by different provider adapters for a tool invocation
TOOL_CALL_BLOCK_TYPES = frozenset({"toolCall", "toolUse", "functionCall"})


class StopReason(str, Enum):
    """Why an assistant turn ended."""

    STOP = "stop"
    LENGTH = "length"
    TOOL_USE = "toolUse"
    ABORTED = "aborted"
    ERROR = "error"


FAILED_STOP_REASONS = frozenset({StopReason.ABORTED, StopReason.ERROR})


@dataclass(frozen=True)
class TextBlock:
    """Plain text content."""

    text: str
    type: ClassVar[str] = "text"


@dataclass(frozen=True)
class ToolCallBlock:
    """A request to run a named tool, embedded in an assistant turn."""

    id: str
    name: str
    arguments: Any = "{}"  # JSON string or decoded mapping
    type: ClassVar[str] = "toolCall"


ContentBlock = Union[TextBlock, ToolCallBlock]


@dataclass(frozen=True)
class UserMessage:
    """Operator input."""

    content: Union[str, Tuple[TextBlock, ...]]
    timestamp: Optional[int] = None
    role: ClassVar[str] = "user"


@dataclass(frozen=True)
class AssistantMessage:
    """Model turn; ``stop_reason`` is None for ordinary completed turns."""

    content: Tuple[ContentBlock, ...] = ()
    stop_reason: Optional[StopReason] = None
    error_message: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    timestamp: Optional[int] = None
    role: ClassVar[str] = "assistant"

    @property
    def tool_calls(self) -> List[ToolCallBlock]:
        return [block for block in self.content if isinstance(block, ToolCallBlock)]


@dataclass(frozen=True)
class ToolResultMessage:
    """Result of executing the tool call identified by ``tool_call_id``."""

    tool_call_id: str
    tool_name: str
    content: Tuple[TextBlock, ...] = ()
    is_error: bool = False
    details: Optional[Mapping[str, Any]] = None
    timestamp: Optional[int] = None
    role: ClassVar[str] = "toolResult"

    @property
    def text(self) -> str:
        return "\n".join(block.text for block in self.content)


Message = Union[UserMessage, AssistantMessage, ToolResultMessage]


def _parse_text_blocks(raw: Any, role: str) -> Tuple[TextBlock, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (TextBlock(raw),)
    if not isinstance(raw, list):
        raise TranscriptFormatError(
            f"{role} content must be a string or a list, got {type(raw).__name__}"
        )
    blocks = []
    for item in raw:
        if isinstance(item, Mapping) and item.get("type") == "text":
            blocks.append(TextBlock(str(item.get("text", ""))))
        else:
            logger.debug("Skipping non-text block in message", role=role)
    return tuple(blocks)


def _parse_assistant_blocks(raw: Any) -> Tuple[ContentBlock, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (TextBlock(raw),)
    if not isinstance(raw, list):
        raise TranscriptFormatError(
            f"assistant content must be a string or a list, got {type(raw).__name__}"
        )

    blocks: List[ContentBlock] = []
    for item in raw:
        if not isinstance(item, Mapping):
            logger.debug("Skipping non-object assistant block", block=repr(item))
            continue
        block_type = item.get("type")
        if block_type == "text":
            blocks.append(TextBlock(str(item.get("text", ""))))
        elif block_type in TOOL_CALL_BLOCK_TYPES:
            call_id = item.get("id")
            if not isinstance(call_id, str) or not call_id:
                raise TranscriptFormatError("tool call block is missing an id")
            arguments = item.get("arguments", item.get("input", "{}"))
            blocks.append(
                ToolCallBlock(
                    id=call_id, name=str(item.get("name") or ""), arguments=arguments
                )
            )
        else:
            logger.debug("Skipping unsupported assistant block", block_type=block_type)
    return tuple(blocks)


def _parse_stop_reason(raw: Any) -> Optional[StopReason]:
    if raw is None:
        return None
    try:
        return StopReason(raw)
    except ValueError:
        logger.debug("Unknown stop reason, treating as ordinary turn", stop_reason=raw)
        return None


def parse_message(data: Mapping[str, Any]) -> Message:
    """Decode one wire-format message.

    Raises:
        TranscriptFormatError: If the entry is not a mapping, has an unknown
            role or is a tool result without a ``toolCallId``.
    """
    if not isinstance(data, Mapping):
        raise TranscriptFormatError(
            f"message must be an object, got {type(data).__name__}"
        )

    role = data.get("role")
    timestamp = data.get("timestamp")

    if role == "user":
        content = data.get("content", "")
        if isinstance(content, str):
            return UserMessage(content=content, timestamp=timestamp)
        return UserMessage(
            content=_parse_text_blocks(content, "user"), timestamp=timestamp
        )

    if role == "assistant":
        return AssistantMessage(
            content=_parse_assistant_blocks(data.get("content")),
            stop_reason=_parse_stop_reason(data.get("stopReason")),
            error_message=data.get("errorMessage"),
            provider=data.get("provider"),
            model=data.get("model"),
            timestamp=timestamp,
        )

    if role == "toolResult":
        tool_call_id = data.get("toolCallId")
        if not isinstance(tool_call_id, str) or not tool_call_id:
            raise TranscriptFormatError("toolResult message is missing toolCallId")
        details = data.get("details")
        return ToolResultMessage(
            tool_call_id=tool_call_id,
            tool_name=str(data.get("toolName") or ""),
            content=_parse_text_blocks(data.get("content"), "toolResult"),
            is_error=data.get("isError") is True,
            details=details if isinstance(details, Mapping) else None,
            timestamp=timestamp,
        )

    raise TranscriptFormatError(f"unknown message role: {role!r}")


def parse_transcript(data: Iterable[Mapping[str, Any]]) -> List[Message]:
    """Decode a wire-format transcript, keeping order."""
    if isinstance(data, (str, bytes, Mapping)):
        raise TranscriptFormatError("transcript must be a list of messages")
    messages = []
    for index, item in enumerate(data):
        try:
            messages.append(parse_message(item))
        except TranscriptFormatError as e:
            raise TranscriptFormatError(f"message {index}: {e}") from e
    return messages


def _block_to_dict(block: ContentBlock) -> Dict[str, Any]:
    if isinstance(block, ToolCallBlock):
        return {
            "type": block.type,
            "id": block.id,
            "name": block.name,
            "arguments": block.arguments,
        }
    return {"type": block.type, "text": block.text}


def message_to_dict(message: Message) -> Dict[str, Any]:
    """Encode one message into the wire format."""
    data: Dict[str, Any] = {"role": message.role}

    if isinstance(message, UserMessage):
        if isinstance(message.content, str):
            data["content"] = message.content
        else:
            data["content"] = [_block_to_dict(b) for b in message.content]
    elif isinstance(message, AssistantMessage):
        data["content"] = [_block_to_dict(b) for b in message.content]
        if message.stop_reason is not None:
            data["stopReason"] = message.stop_reason.value
        if message.error_message is not None:
            data["errorMessage"] = message.error_message
        if message.provider is not None:
            data["provider"] = message.provider
        if message.model is not None:
            data["model"] = message.model
    else:
        data["toolCallId"] = message.tool_call_id
        data["toolName"] = message.tool_name
        data["content"] = [_block_to_dict(b) for b in message.content]
        data["isError"] = message.is_error
        if message.details is not None:
            data["details"] = dict(message.details)

    if message.timestamp is not None:
        data["timestamp"] = message.timestamp
    return data


def transcript_to_dicts(messages: Iterable[Message]) -> List[Dict[str, Any]]:
    """Encode a transcript into the wire format."""
    return [message_to_dict(m) for m in messages]
