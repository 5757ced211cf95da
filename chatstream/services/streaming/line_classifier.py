import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ...core.config_manager import StreamConfig


class LineKind(Enum):
    CONTENT = "content"
    CRISIS = "crisis"
    SENTINEL = "sentinel"
    BLANK = "blank"
    # event marker without inline payload, the payload follows on the next data line
    EVENT_MARKER = "event_marker"


@dataclass(frozen=True)
class ClassifiedLine:
    """
    Классифицированная строка стрима

    Attributes:
        kind: Тип строки
        text: Полезная нагрузка (для CONTENT и CRISIS)
        raw: Исходная строка
    """
    kind: LineKind
    text: str = ""
    raw: str = ""

    @property
    def is_content(self) -> bool:
        return self.kind == LineKind.CONTENT

    @property
    def is_crisis(self) -> bool:
        return self.kind == LineKind.CRISIS

    @property
    def is_discarded(self) -> bool:
        """Строки, которые никогда не попадают в сообщение"""
        return self.kind in (LineKind.SENTINEL, LineKind.BLANK)


@dataclass(frozen=True)
class LineError:
    """Ошибка классификации одной строки. Не фатальна для стрима"""
    raw: object
    error: Exception

    @property
    def message(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


ClassificationResult = Union[ClassifiedLine, LineError]

NUMERIC_PATTERN = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$')


class LineClassifier:
    """
    Единый источник истины для классификации строк протокола

    Протокол:
        `<event_marker> <content_marker><payload>` - кризисное сообщение в одной строке
        `<event_marker>` - кризисное сообщение, payload в следующей data-строке
        `<content_marker><payload>` - контент, короткие числа - sentinel (session id)
        все остальное - шум
    """

    def __init__(self, config: Optional[StreamConfig] = None):
        self.config = config or StreamConfig()
        self._crisis_pattern = re.compile(
            rf'^{re.escape(self.config.event_marker)}\s+{re.escape(self.config.content_marker)}(.*)$'
        )

    def classify(self, line: str) -> ClassificationResult:
        """
        Классифицирует одну полную строку

        Args:
            line: Строка без символа конца строки

        Returns:
            ClassifiedLine или LineError, исключения наружу не выходят
        """
        try:
            return self._classify(line)
        except Exception as e:
            return LineError(raw=line, error=e)

    def _classify(self, line: str) -> ClassifiedLine:
        if not isinstance(line, str):
            raise TypeError(f"Stream line must be str, got {type(line).__name__}")

        if line.startswith(self.config.event_marker):
            crisis_match = self._crisis_pattern.match(line)
            if crisis_match:
                return ClassifiedLine(kind=LineKind.CRISIS, text=crisis_match.group(1), raw=line)
            return ClassifiedLine(kind=LineKind.EVENT_MARKER, raw=line)

        if line.startswith(self.config.content_marker):
            content = line[len(self.config.content_marker):]
            if self.is_sentinel(content):
                return ClassifiedLine(kind=LineKind.SENTINEL, text=content, raw=line)
            return ClassifiedLine(kind=LineKind.CONTENT, text=content, raw=line)

        return ClassifiedLine(kind=LineKind.BLANK, raw=line)

    def is_sentinel(self, content: str) -> bool:
        """Пустой payload или короткое число (session id, эхом пришедший в стриме)"""
        stripped = content.strip()
        if not stripped:
            return True
        return len(stripped) < self.config.sentinel_max_length and bool(NUMERIC_PATTERN.match(stripped))
