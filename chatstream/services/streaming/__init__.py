"""
Экспорт компонентов обработки стрима
"""

from .chunk_decoder import ChunkDecoder
from .line_classifier import LineClassifier, LineKind, ClassifiedLine, LineError
from .cancellation import CancellationToken
from .retry import retry_on_network_error, RetriesExhaustedError
from .stream_processor import StreamingMessageProcessor, StreamSource, StreamStatistics

__all__ = [
    'ChunkDecoder',
    'LineClassifier',
    'LineKind',
    'ClassifiedLine',
    'LineError',
    'CancellationToken',
    'retry_on_network_error',
    'RetriesExhaustedError',
    'StreamingMessageProcessor',
    'StreamSource',
    'StreamStatistics'
]
