"""Utility modules for transcript-guard."""

from transcript_guard.utils.logger import (
    clear_log_buffer,
    get_captured_logs,
    get_logger,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_captured_logs",
    "clear_log_buffer",
]
