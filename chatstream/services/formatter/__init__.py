"""
Экспорт компонентов форматирования сообщений
"""

from .message_formatter import (
    StreamChunk,
    FormattedMessage,
    FormatterState,
    MessageFormatter,
    format_text,
    process_chunk,
    finalize,
    finalize_text,
)
from .formatting_utils import MessageFormattingUtils

__all__ = [
    'StreamChunk',
    'FormattedMessage',
    'FormatterState',
    'MessageFormatter',
    'format_text',
    'process_chunk',
    'finalize',
    'finalize_text',
    'MessageFormattingUtils'
]
