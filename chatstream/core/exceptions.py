from typing import Optional

from .logging import logger


class StreamProcessingError(Exception):
    """Base exception for errors surfaced by the streaming pipeline."""
    default_error_code = "stream_processing_error"

    def __init__(self, message: str, error_code: Optional[str] = None, original_exception: Exception = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.original_exception = original_exception

        # Log the exception when it's created
        logger.debug(f"{type(self).__name__} created: {message}", exception={
            "type": type(self).__name__,
            "error_code": self.error_code,
            "has_original_exception": original_exception is not None,
            "original_exception_type": type(original_exception).__name__ if original_exception else None
        })


class StreamTimeoutError(StreamProcessingError):
    """The read loop exceeded its time budget."""
    default_error_code = "stream_timeout"


class StreamNetworkError(StreamProcessingError):
    """The source failed at the transport level (connection reset, DNS, etc)."""
    default_error_code = "network_connection_lost"


class StreamCancelledError(StreamProcessingError):
    """The caller cancelled the stream through a CancellationToken."""
    default_error_code = "stream_cancelled"
    reason = None


class StreamSourceError(StreamProcessingError):
    """The source cannot be read at all. Raised before the read loop starts."""
    default_error_code = "source_unavailable"


class LineProcessingError(StreamProcessingError):
    """A single line could not be classified or handled. Never fatal."""
    default_error_code = "line_processing_error"

    def __init__(self, message: str, line: str = "", line_number: Optional[int] = None,
                 original_exception: Exception = None):
        self.line = line
        self.line_number = line_number
        super().__init__(message, original_exception=original_exception)
