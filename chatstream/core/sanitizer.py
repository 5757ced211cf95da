"""
Модуль санитизации текста сообщений перед отображением

Фильтр defense-in-depth для текста из внешних источников. Удаляет четыре класса
опасных конструкций: элементы <script> и <iframe> вместе с содержимым,
префиксы `javascript:` и inline-обработчики событий (`on<word>=`).
Это НЕ полноценный HTML-санитайзер.
"""

import re
from typing import Any

from .logging import logger


class MessageSanitizer:
    """Класс для очистки текста сообщений от потенциально опасного содержимого"""

    SCRIPT_PATTERN = re.compile(r'<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>', re.IGNORECASE)
    IFRAME_PATTERN = re.compile(r'<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>', re.IGNORECASE)
    JAVASCRIPT_URI_PATTERN = re.compile(r'javascript:', re.IGNORECASE)
    EVENT_HANDLER_PATTERN = re.compile(r'on\w+\s*=', re.IGNORECASE)

    @classmethod
    def sanitize_text(cls, text: Any, enabled: bool = True) -> str:
        """
        Очищает текст сообщения если санитизация включена

        Args:
            text: Текст для очистки (не-строки дают пустую строку)
            enabled: Включена ли санитизация

        Returns:
            Очищенный текст
        """
        if not text or not isinstance(text, str):
            return ''

        if not enabled:
            return text

        sanitized = cls.SCRIPT_PATTERN.sub('', text)
        sanitized = cls.IFRAME_PATTERN.sub('', sanitized)
        sanitized = cls.JAVASCRIPT_URI_PATTERN.sub('', sanitized)
        sanitized = cls.EVENT_HANDLER_PATTERN.sub('', sanitized)

        if sanitized != text:
            logger.debug("Message text sanitized", sanitization={
                "original_length": len(text),
                "sanitized_length": len(sanitized),
                "removed_chars": len(text) - len(sanitized)
            })

        return sanitized
