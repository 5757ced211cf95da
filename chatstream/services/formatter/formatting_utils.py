"""
Stateless helpers for message text, usable outside the streaming path.
"""

import re
from datetime import date
from typing import Any, Mapping

from ...core.sanitizer import MessageSanitizer
from .message_formatter import FENCE


NEWLINE_RUN_PATTERN = re.compile(r'\n+')
ERROR_PREFIX_PATTERN = re.compile(r'error:?\s*(.+)', re.IGNORECASE)

ERROR_KEYWORDS = ("error", "failed", "exception", "timeout")
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


class MessageFormattingUtils:
    """Predicates and transforms over message text. None of them raise on bad input."""

    @staticmethod
    def normalize_message(text: Any) -> str:
        """Trim outer whitespace and collapse every run of newlines to one."""
        if not text or not isinstance(text, str):
            return ''
        return NEWLINE_RUN_PATTERN.sub("\n", text.strip())

    @staticmethod
    def has_incomplete_markdown(text: Any) -> bool:
        """True if the text has an unterminated code fence."""
        if not text or not isinstance(text, str):
            return False
        return text.count(FENCE) % 2 != 0

    @staticmethod
    def validate_message(message: Any) -> bool:
        """
        Check the message shape: string text and sender, timestamp as a date
        value or an epoch number. Accepts mappings and plain objects.
        """
        if message is None:
            return False

        if isinstance(message, Mapping):
            text = message.get("text")
            sender = message.get("sender")
            timestamp = message.get("timestamp")
        else:
            # attribute access covers __slots__ classes too
            text = getattr(message, "text", None)
            sender = getattr(message, "sender", None)
            timestamp = getattr(message, "timestamp", None)

        # bool is an int subclass but not an epoch
        is_epoch = isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool)

        return (
            isinstance(text, str)
            and isinstance(sender, str)
            and (isinstance(timestamp, date) or is_epoch)
        )

    @staticmethod
    def sanitize_message(text: Any) -> str:
        return MessageSanitizer.sanitize_text(text)

    @staticmethod
    def is_error_response(text: Any) -> bool:
        if not text or not isinstance(text, str):
            return False
        lower_text = text.lower()
        return any(keyword in lower_text for keyword in ERROR_KEYWORDS)

    @staticmethod
    def extract_error_message(text: Any) -> str:
        """
        Pull a human-readable error out of a response.

        ``error: <rest>`` wins, then a first line that already reads as an
        error, then the whole trimmed text.
        """
        if not text or not isinstance(text, str):
            return UNKNOWN_ERROR_MESSAGE

        error_match = ERROR_PREFIX_PATTERN.search(text)
        if error_match:
            return error_match.group(1).strip()

        first_line = text.split("\n")[0]
        if MessageFormattingUtils.is_error_response(first_line):
            return first_line.strip()

        return text.strip()
