"""Exception types raised by transcript-guard."""

from typing import Optional


class TranscriptGuardError(Exception):
    """Base exception for transcript-guard errors."""

    pass


class TranscriptFormatError(TranscriptGuardError):
    """A serialized transcript could not be decoded into messages."""

    pass


class ConfigurationError(TranscriptGuardError):
    """Agent configuration file is missing or unreadable."""

    pass


class ContextWindowTooSmallError(TranscriptGuardError):
    """Resolved context window is below the hard minimum for a model call.

    Attributes:
        tokens: Resolved context window size
        source: Where the window size came from (see ContextWindowSource)
        hard_min_tokens: Threshold the window failed to reach
    """

    def __init__(
        self,
        message: str,
        tokens: int,
        source: Optional[str] = None,
        hard_min_tokens: Optional[int] = None,
    ):
        super().__init__(message)
        self.tokens = tokens
        self.source = source
        self.hard_min_tokens = hard_min_tokens
