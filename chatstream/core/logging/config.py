"""
Logging configuration and setup for chatstream.

Plain text formatting with Unicode escape decoding. Console output is always
enabled; file output is enabled only when LOG_DIR is set, so that importing the
library never creates directories on its own.
"""

import logging
import os
import json
import re


LOGGER_NAME = "chatstream"


class UnicodeFormatter(logging.Formatter):
    """
    Custom formatter that decodes Unicode escape sequences in log messages.
    """

    def __init__(self, fmt=None, datefmt=None):
        super().__init__(fmt, datefmt)
        self.unicode_pattern = re.compile(r'\\u([0-9a-fA-F]{4})')

    def _decode_unicode_escapes(self, text):
        """
        Decode Unicode escape sequences in the given text.

        Args:
            text (str): Text that may contain Unicode escape sequences

        Returns:
            str: Text with Unicode escape sequences decoded to actual characters
        """
        if not text:
            return text

        # Stream payloads are often logged as JSON dumps
        try:
            if text.startswith('{') and '\\u' in text:
                decoded = json.loads(text)
                if isinstance(decoded, dict):
                    return json.dumps(decoded, ensure_ascii=False)
        except (json.JSONDecodeError, ValueError):
            pass

        def replace_unicode(match):
            hex_code = match.group(1)
            try:
                return chr(int(hex_code, 16))
            except ValueError:
                return match.group(0)

        return self.unicode_pattern.sub(replace_unicode, text)

    def format(self, record):
        """
        Format the log record, decoding Unicode escape sequences in the message.
        """
        formatted = super().format(record)
        return self._decode_unicode_escapes(formatted)


def setup_logging():
    """
    Единая настройка логирования для всего пакета.

    Returns:
        logging.Logger: Configured logger instance
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Очищаем существующие обработчики
    logger.handlers.clear()

    formatter = UnicodeFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z"
    )

    log_dir = os.environ.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(os.path.join(log_dir, "app.log"))
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.INFO)
        logger.addHandler(file_handler)

        if level == logging.DEBUG:
            debug_handler = logging.FileHandler(os.path.join(log_dir, "debug.log"))
            debug_handler.setFormatter(formatter)
            debug_handler.setLevel(logging.DEBUG)
            logger.addHandler(debug_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if level == logging.DEBUG else logging.INFO)
    logger.addHandler(console_handler)

    return logger
