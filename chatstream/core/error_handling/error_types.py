"""
Error Types and Context Definitions

This module defines standardized error types and context information for
consistent error handling across chatstream.
"""

from enum import Enum
from typing import Dict, Any, Optional


class ErrorType(Enum):
    """Enumeration of standard error types in the streaming pipeline."""

    # Terminal stream outcomes
    STREAM_TIMEOUT = ("stream_timeout", True, "Request timed out. Please try again.")
    STREAM_CANCELLED = ("stream_cancelled", False, "Stream processing was cancelled.")

    # Transport
    NETWORK_CONNECTION_LOST = ("network_connection_lost", True, "Network connection lost. Please check your connection and try again.")
    NETWORK_RETRIES_EXHAUSTED = ("network_retries_exhausted", False, "Network connection failed after multiple attempts.")

    # Startup
    SOURCE_UNAVAILABLE = ("source_unavailable", False, "No reader available for streaming response")

    # Recovered locally, never delivered to on_error
    LINE_PROCESSING_ERROR = ("line_processing_error", False, "Error processing stream line: {error_details}")

    UNEXPECTED_STREAM_ERROR = ("unexpected_stream_error", False, "{error_details}")

    def __init__(self, code: str, retryable: bool, message_template: str):
        self.code = code
        self.retryable = retryable
        self.message_template = message_template

    def format_message(self, **kwargs) -> str:
        """Format the error message with provided parameters."""
        try:
            return self.message_template.format(**kwargs)
        except KeyError:
            # Fallback to template if formatting fails
            return self.message_template

    def create_error_detail(self, **kwargs) -> Dict[str, Any]:
        """Create standardized error detail dictionary."""
        return {
            "error": {
                "message": self.format_message(**kwargs),
                "code": self.code,
                "retryable": self.retryable
            }
        }


class ErrorContext:
    """Context information for error handling."""

    def __init__(
        self,
        stream_id: Optional[str] = None,
        message_id: Optional[str] = None,
        line_number: Optional[int] = None,
        **additional_context
    ):
        self.stream_id = stream_id
        self.message_id = message_id
        self.line_number = line_number
        self.additional_context = additional_context

    def to_log_extra(self) -> Dict[str, Any]:
        """Convert context to logging extra dictionary."""
        extra = {
            "log_type": "error"
        }

        if self.stream_id:
            extra["stream_id"] = self.stream_id
        if self.message_id:
            extra["message_id"] = self.message_id
        if self.line_number is not None:
            extra["line_number"] = self.line_number

        extra.update(self.additional_context)
        return extra
