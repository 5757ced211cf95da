"""
Error Logging Utility

This module provides centralized error logging functionality for consistent
error logging across chatstream.
"""

from typing import Dict, Any, Optional
from .error_types import ErrorType, ErrorContext
from ..logging import get_logger


class ErrorLogger:
    """Единый логгер ошибок, использующий общую систему."""

    # Preview length for offending lines in log records
    LINE_PREVIEW_LENGTH = 200

    @staticmethod
    def log_error(
        error_type: ErrorType,
        context: ErrorContext,
        original_exception: Optional[Exception] = None,
        additional_data: Optional[Dict[str, Any]] = None
    ):
        """Логировать терминальную ошибку стрима."""
        logger = get_logger()

        log_extra = context.to_log_extra()
        log_extra["error_type"] = error_type.code
        log_extra["error_code"] = error_type.code
        log_extra["retryable"] = error_type.retryable

        if additional_data:
            log_extra.update(additional_data)

        log_message = error_type.format_message(**(additional_data or {}))

        if original_exception:
            log_extra["original_exception"] = str(original_exception)
            log_extra["original_exception_type"] = type(original_exception).__name__
            logger.error(log_message, **log_extra)
        else:
            logger.error(log_message, exc_info=False, **log_extra)

    @staticmethod
    def log_line_error(
        line: str,
        context: ErrorContext,
        original_exception: Optional[Exception] = None
    ):
        """Log a recovered per-line failure. These never reach on_error."""
        logger = get_logger()

        preview = line
        if len(preview) > ErrorLogger.LINE_PREVIEW_LENGTH:
            preview = preview[:ErrorLogger.LINE_PREVIEW_LENGTH] + "..."

        log_extra = context.to_log_extra()
        log_extra.update({
            "error_type": ErrorType.LINE_PROCESSING_ERROR.code,
            "line_preview": preview,
        })
        if original_exception:
            log_extra["original_exception"] = str(original_exception)
            log_extra["original_exception_type"] = type(original_exception).__name__

        logger.warning(
            ErrorType.LINE_PROCESSING_ERROR.format_message(error_details=str(original_exception)),
            **log_extra
        )
