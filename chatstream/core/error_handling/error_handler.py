"""
Main Error Handler

This module turns failures observed by the streaming pipeline into the
standardized exception types delivered to ``on_error``, with proper logging.
"""

import asyncio
from typing import Optional

import httpx

from .error_types import ErrorType, ErrorContext
from .error_logger import ErrorLogger
from ..exceptions import (
    StreamProcessingError,
    StreamTimeoutError,
    StreamNetworkError,
    StreamCancelledError,
    StreamSourceError,
    LineProcessingError,
)


_EXCEPTION_CLASSES = {
    ErrorType.STREAM_TIMEOUT: StreamTimeoutError,
    ErrorType.STREAM_CANCELLED: StreamCancelledError,
    ErrorType.NETWORK_CONNECTION_LOST: StreamNetworkError,
    ErrorType.NETWORK_RETRIES_EXHAUSTED: StreamNetworkError,
    ErrorType.SOURCE_UNAVAILABLE: StreamSourceError,
    ErrorType.LINE_PROCESSING_ERROR: LineProcessingError,
    ErrorType.UNEXPECTED_STREAM_ERROR: StreamProcessingError,
}

# Substrings that mark an otherwise untyped error as a connectivity problem
_NETWORK_HINTS = ("network", "connection")


class ErrorHandler:
    """Centralized error handling utility."""

    @staticmethod
    def create_stream_error(
        error_type: ErrorType,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
        log_error: bool = True,
        **format_kwargs
    ) -> StreamProcessingError:
        """
        Create a standardized stream exception with proper logging.

        Args:
            error_type: The type of error to create
            context: Error context information
            original_exception: Original exception that caused this error
            log_error: Whether to log the error
            **format_kwargs: Additional kwargs for message formatting

        Returns:
            StreamProcessingError subclass matching the error type
        """
        if context is None:
            context = ErrorContext()

        message = error_type.format_message(**format_kwargs)

        if log_error:
            ErrorLogger.log_error(
                error_type=error_type,
                context=context,
                original_exception=original_exception,
                additional_data={"error_detail": error_type.create_error_detail(**format_kwargs), **format_kwargs}
            )

        exception_class = _EXCEPTION_CLASSES[error_type]
        if exception_class is LineProcessingError:
            return LineProcessingError(
                message,
                line=format_kwargs.get("line", ""),
                line_number=context.line_number,
                original_exception=original_exception
            )
        return exception_class(message, error_code=error_type.code, original_exception=original_exception)

    @staticmethod
    def classify_transport_error(error: BaseException) -> ErrorType:
        """
        Map an exception raised by the source to an error type.

        Timeouts are checked before generic transport errors because
        httpx.TimeoutException is itself a TransportError.
        """
        if isinstance(error, StreamProcessingError):
            for error_type in ErrorType:
                if error_type.code == error.error_code:
                    return error_type
            return ErrorType.UNEXPECTED_STREAM_ERROR

        if isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
            return ErrorType.STREAM_TIMEOUT

        if isinstance(error, (httpx.TransportError, ConnectionError)):
            return ErrorType.NETWORK_CONNECTION_LOST

        message = str(error).lower()
        if any(hint in message for hint in _NETWORK_HINTS):
            return ErrorType.NETWORK_CONNECTION_LOST

        return ErrorType.UNEXPECTED_STREAM_ERROR

    @staticmethod
    def handle_transport_error(
        original_exception: BaseException,
        context: ErrorContext,
        retries_exhausted: bool = False
    ) -> StreamProcessingError:
        """Handle an error raised while reading from or opening the source."""
        if isinstance(original_exception, StreamProcessingError):
            return original_exception

        error_type = ErrorHandler.classify_transport_error(original_exception)
        if error_type == ErrorType.NETWORK_CONNECTION_LOST and retries_exhausted:
            error_type = ErrorType.NETWORK_RETRIES_EXHAUSTED

        return ErrorHandler.create_stream_error(
            error_type=error_type,
            context=context,
            original_exception=original_exception,
            error_details=str(original_exception)
        )

    @staticmethod
    def handle_timeout(context: ErrorContext, timeout_seconds: float) -> StreamTimeoutError:
        """Handle expiry of the read loop budget."""
        return ErrorHandler.create_stream_error(
            error_type=ErrorType.STREAM_TIMEOUT,
            context=context,
            timeout_seconds=timeout_seconds
        )

    @staticmethod
    def handle_cancelled(context: ErrorContext, reason: Optional[str] = None) -> StreamCancelledError:
        """Handle a caller-initiated cancellation. The token's reason is logged and kept on the error."""
        error = ErrorHandler.create_stream_error(
            error_type=ErrorType.STREAM_CANCELLED,
            context=context,
            reason=reason
        )
        error.reason = reason
        return error

    @staticmethod
    def handle_source_unavailable(source_type: str, context: ErrorContext) -> StreamSourceError:
        """Handle a source that cannot be read at all."""
        return ErrorHandler.create_stream_error(
            error_type=ErrorType.SOURCE_UNAVAILABLE,
            context=context,
            source_type=source_type
        )

    @staticmethod
    def handle_line_error(
        line: str,
        context: ErrorContext,
        original_exception: Optional[Exception] = None
    ) -> LineProcessingError:
        """Handle a recovered per-line failure. Logged as a warning only."""
        ErrorLogger.log_line_error(line, context, original_exception)
        return ErrorHandler.create_stream_error(
            error_type=ErrorType.LINE_PROCESSING_ERROR,
            context=context,
            original_exception=original_exception,
            log_error=False,
            error_details=str(original_exception),
            line=line
        )
