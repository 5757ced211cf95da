"""
Декодирование чанков стрима и сборка полных строк
"""
import codecs
from typing import List, Optional, Union


class ChunkDecoder:
    """
    Превращает фрагменты стрима (bytes или str) в полные строки

    Незавершенная многобайтовая UTF-8 последовательность в конце фрагмента
    остается в инкрементальном декодере до следующего фрагмента. Последний
    (возможно неполный) сегмент после разбиения по '\\n' хранится в буфере
    и приклеивается к следующему фрагменту.
    """

    def __init__(self, encoding: str = 'utf-8'):
        """
        Args:
            encoding: Кодировка байтовых фрагментов
        """
        self.encoding = encoding
        # replace: невалидные байты -> U+FFFD, неполные последовательности ждут следующего чанка
        self.decoder = codecs.getincrementaldecoder(encoding)(errors='replace')
        self.buffer = ""
        self.bytes_received = 0

    def feed(self, fragment: Union[bytes, bytearray, str]) -> List[str]:
        """
        Добавляет фрагмент и возвращает завершенные строки

        Args:
            fragment: Новый фрагмент данных

        Returns:
            Список полных строк без символов конца строки
        """
        if isinstance(fragment, str):
            # bytes still pending from an earlier fragment come first
            decoded = self.decoder.decode(b"", final=True) + fragment
        elif isinstance(fragment, (bytes, bytearray, memoryview)):
            self.bytes_received += len(fragment)
            decoded = self.decoder.decode(bytes(fragment), final=False)
        else:
            raise TypeError(f"Stream fragment must be bytes or str, got {type(fragment).__name__}")

        # Фрагмент был частью многобайтового символа
        if not decoded:
            return []

        self.buffer += decoded

        lines = self.buffer.split('\n')
        self.buffer = lines[-1]  # Сохраняем неполную строку

        return [self._strip_cr(line) for line in lines[:-1]]

    def flush(self) -> Optional[str]:
        """
        Завершает декодирование и возвращает остаток буфера

        Returns:
            Последняя неполная строка или None, если буфер пуст
        """
        self.buffer += self.decoder.decode(b"", final=True)
        remaining = self.buffer
        self.buffer = ""

        if not remaining:
            return None
        return self._strip_cr(remaining)

    def clear(self):
        """Очищает буфер и сбрасывает декодер"""
        self.buffer = ""
        self.bytes_received = 0
        self.decoder = codecs.getincrementaldecoder(self.encoding)(errors='replace')

    @staticmethod
    def _strip_cr(line: str) -> str:
        # CRLF framing
        return line[:-1] if line.endswith('\r') else line
