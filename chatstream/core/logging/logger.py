"""
Simple universal Logger for debugging and diagnostics.

A thin façade over the standard library logger configured in
:mod:`chatstream.core.logging.config`. Keyword arguments are forwarded as
``extra`` so that structured context travels with every record.
"""

import logging
import time
import json
from typing import Any
from contextlib import contextmanager
from .config import setup_logging


class Logger:
    """
    Simple Logger for stream diagnostics.

    Per-chunk details are only rendered when LOG_LEVEL=DEBUG is enabled.
    """

    def __init__(self):
        """Initialize the Logger with default configuration."""
        self._logger = setup_logging()

    def is_debug_enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self._logger.isEnabledFor(logging.DEBUG)

    def info(self, message: str, **kwargs):
        """Log an info message."""
        if kwargs:
            self._logger.info(message, extra=kwargs)
        else:
            self._logger.info(message)

    def debug(self, message: str, **kwargs):
        """Log a debug message."""
        if kwargs:
            self._logger.debug(message, extra=kwargs)
        else:
            self._logger.debug(message)

    def warning(self, message: str, **kwargs):
        """Log a warning message."""
        if kwargs:
            self._logger.warning(message, extra=kwargs)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc_info: bool = True, **kwargs):
        """Log an error message."""
        if kwargs:
            self._logger.error(message, extra=kwargs, exc_info=exc_info)
        else:
            self._logger.error(message, exc_info=exc_info)

    def debug_data(self, title: str, data: Any, stream_id: str, **kwargs):
        """Log debug data with full details when LOG_LEVEL=DEBUG."""
        if not self.is_debug_enabled():
            return

        if isinstance(data, dict):
            data_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        else:
            data_str = str(data)

        message = f"DEBUG: {title}"
        if 'component' in kwargs:
            message += f" | component={kwargs['component']}"

        self.debug(f"{message}\n{data_str}", stream_id=stream_id, **kwargs)

    def performance(self, operation: str, start_time: float, stream_id: str, **kwargs):
        """Log performance metrics."""
        duration_ms = int((time.time() - start_time) * 1000)
        message = " | ".join([f"Performance: {operation}", f"duration={duration_ms}ms"])
        self.info(message, stream_id=stream_id, duration_ms=duration_ms, **kwargs)

    @contextmanager
    def stream_context(self, operation: str, stream_id: str, **kwargs):
        """
        Context manager for stream-scoped logging.

        Logs the start of the operation, any exception escaping it, and the
        total duration on exit.
        """
        start_time = time.time()

        self.info(f"Stream: {operation}", stream_id=stream_id, **kwargs)

        try:
            yield
        except Exception as e:
            self.error(
                f"{operation} failed: {str(e)}",
                stream_id=stream_id,
                **kwargs
            )
            raise
        finally:
            duration_ms = int((time.time() - start_time) * 1000)
            self.info(
                f"Completed: {operation} | duration={duration_ms}ms",
                stream_id=stream_id,
                **kwargs
            )
