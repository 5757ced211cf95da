"""
Error Handling Module

This module provides centralized error handling utilities for chatstream.
It includes standardized error types, logging, and exception construction so
that every terminal failure reaches the caller in the same shape.

Components:
- ErrorType: Enumeration of standard error types
- ErrorContext: Context information for error handling
- ErrorHandler: Main error handling utility
- ErrorLogger: Centralized error logging utility
"""

from .error_types import ErrorType, ErrorContext
from .error_handler import ErrorHandler
from .error_logger import ErrorLogger

__all__ = [
    'ErrorType',
    'ErrorContext',
    'ErrorHandler',
    'ErrorLogger'
]
