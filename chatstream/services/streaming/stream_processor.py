"""
Streaming Message Processor

Drives a chunked chat response to completion: decodes fragments, classifies
protocol lines, feeds content to the MessageFormatter and reports progress
through three caller-supplied callbacks.

Every stream ends with exactly one terminal outcome:
- ``on_complete(final_text)`` after a normal end of stream;
- ``on_error(error)`` after a timeout, cancellation or transport failure;
- ``on_update(payload, True)`` when a crisis event interrupts the stream.
"""

import asyncio
import inspect
import time
import uuid
from dataclasses import dataclass, asdict
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from .cancellation import CancellationToken
from .chunk_decoder import ChunkDecoder
from .line_classifier import LineClassifier, LineError, LineKind, ClassifiedLine
from .retry import retry_on_network_error, RetriesExhaustedError
from ..formatter.message_formatter import MessageFormatter, StreamChunk
from ...core.config_manager import StreamConfig
from ...core.error_handling import ErrorHandler, ErrorContext
from ...core.exceptions import StreamProcessingError
from ...core.logging import logger
from ...core.sanitizer import MessageSanitizer


UpdateCallback = Callable[[str, bool], Any]
ErrorCallback = Callable[[StreamProcessingError], Any]
CompleteCallback = Callable[[str], Any]


@dataclass
class StreamStatistics:
    """Counters for one processed stream"""
    chunks_received: int = 0
    bytes_received: int = 0
    lines_processed: int = 0
    content_lines: int = 0
    sentinels_skipped: int = 0
    line_errors: int = 0
    updates_emitted: int = 0
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def duration_seconds(self) -> float:
        if self.start_time is None:
            return 0.0
        return (self.end_time or time.time()) - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["duration_seconds"] = self.duration_seconds
        return data


class _StreamCancelled(Exception):
    pass


class _CrisisInterrupt(Exception):
    pass


class StreamSource:
    """
    Uniform reader over the supported source types.

    Supported: httpx.Response, objects exposing ``body_iterator``, async
    iterables and sync iterables of bytes/str fragments. A bare bytes/str
    value is treated as a single fragment.
    """

    def __init__(self, iterator: Any, is_async: bool, closer: Optional[Callable[[], Any]]):
        self._iterator = iterator
        self._is_async = is_async
        self._closer = closer
        self.released = False

    @classmethod
    def open(cls, source: Any, context: ErrorContext) -> "StreamSource":
        """Wrap a source or raise StreamSourceError if it cannot be read at all."""
        if source is None:
            raise ErrorHandler.handle_source_unavailable("NoneType", context)

        if isinstance(source, httpx.Response):
            return cls(source.aiter_bytes().__aiter__(), True, source.aclose)

        if isinstance(source, (bytes, bytearray, str)):
            return cls(iter([source]), False, None)

        body_iterator = getattr(source, "body_iterator", None)
        if body_iterator is not None:
            iterator = body_iterator.__aiter__()
            return cls(iterator, True, getattr(body_iterator, "aclose", None))

        if hasattr(source, "__aiter__"):
            iterator = source.__aiter__()
            closer = getattr(source, "aclose", None) or getattr(iterator, "aclose", None)
            return cls(iterator, True, closer)

        if hasattr(source, "__iter__"):
            iterator = iter(source)
            closer = getattr(source, "close", None) or getattr(iterator, "close", None)
            return cls(iterator, False, closer)

        raise ErrorHandler.handle_source_unavailable(type(source).__name__, context)

    async def read(self) -> Optional[Any]:
        """Next fragment, or None when the source is exhausted."""
        if self._is_async:
            try:
                return await self._iterator.__anext__()
            except StopAsyncIteration:
                return None
        # sync sources never suspend on their own, timeout and cancel need a chance to fire
        await asyncio.sleep(0)
        try:
            return next(self._iterator)
        except StopIteration:
            return None

    async def release(self):
        """Release the underlying source. Only the first call has an effect."""
        if self.released:
            return
        self.released = True
        if self._closer is None:
            return
        try:
            result = self._closer()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Error releasing stream source: {e}", component="stream_processor")


class StreamingMessageProcessor:
    """
    Координация обработки стриминга сообщения

    One processor instance handles one logical message at a time. Call
    :meth:`reset` before reusing it for the next message.
    """

    def __init__(self,
                 on_update: UpdateCallback,
                 on_error: ErrorCallback,
                 on_complete: CompleteCallback,
                 config: Optional[StreamConfig] = None,
                 formatter: Optional[MessageFormatter] = None):
        self.on_update = on_update
        self.on_error = on_error
        self.on_complete = on_complete
        self.config = config or StreamConfig()
        self.formatter = formatter or MessageFormatter()
        self.classifier = LineClassifier(self.config)
        self.statistics = StreamStatistics()
        self._crisis_lines: Optional[List[str]] = None

    async def process_request(self,
                              open_stream: Callable[[], Awaitable[Any]],
                              cancel_token: Optional[CancellationToken] = None,
                              stream_id: Optional[str] = None):
        """
        Open a stream with retries on network failures, then process it.

        ``open_stream`` is an async factory returning any source accepted by
        :meth:`process_stream`, e.g. ``client.send(request, stream=True)``.
        Only opening is retried; once content has been delivered a failure
        goes straight to ``on_error``. Each attempt is bounded by
        ``timeout_seconds`` and by the cancel token, backoff included.
        """
        stream_id = stream_id or uuid.uuid4().hex
        context = ErrorContext(stream_id=stream_id)

        async def open_once():
            if cancel_token is not None and cancel_token.is_cancelled:
                raise _StreamCancelled()
            return await asyncio.wait_for(
                self._until_cancelled(open_stream(), cancel_token, keep_result=True),
                timeout=self.config.timeout_seconds
            )

        opener = retry_on_network_error(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay,
            max_delay=self.config.retry_max_delay,
            cancel_token=cancel_token
        )(open_once)

        with logger.stream_context("process_request", stream_id=stream_id):
            try:
                source = await opener()
            except _StreamCancelled:
                await self._invoke(self.on_error, ErrorHandler.handle_cancelled(context, cancel_token.reason))
                return
            except asyncio.TimeoutError:
                await self._invoke(self.on_error, ErrorHandler.handle_timeout(context, self.config.timeout_seconds))
                return
            except RetriesExhaustedError as e:
                await self._invoke(self.on_error, ErrorHandler.handle_transport_error(
                    e.last_exception, context, retries_exhausted=True
                ))
                return
            except Exception as e:
                await self._invoke(self.on_error, ErrorHandler.handle_transport_error(e, context))
                return

            await self.process_stream(source, cancel_token=cancel_token, stream_id=stream_id)

    async def process_stream(self,
                             source: Any,
                             cancel_token: Optional[CancellationToken] = None,
                             stream_id: Optional[str] = None):
        """
        Основной метод обработки стрима

        Args:
            source: Источник фрагментов (httpx.Response, async/sync iterable)
            cancel_token: Токен явной отмены
            stream_id: ID стрима для логирования

        Raises:
            StreamSourceError: Источник невозможно прочитать (до начала цикла)
        """
        stream_id = stream_id or uuid.uuid4().hex
        context = ErrorContext(stream_id=stream_id)

        reader = StreamSource.open(source, context)

        if self.formatter.is_complete:
            logger.warning("Formatter was already finalized, resetting before new stream",
                           stream_id=stream_id)
            self.formatter.reset()

        self.statistics = StreamStatistics(start_time=time.time())
        self._crisis_lines = None
        decoder = ChunkDecoder()

        logger.info("Starting stream processing", stream_id=stream_id,
                    timeout_seconds=self.config.timeout_seconds,
                    sanitize_content=self.config.sanitize_content)

        error: Optional[StreamProcessingError] = None
        crisis = False
        try:
            await asyncio.wait_for(
                self._read_loop(reader, decoder, cancel_token, context),
                timeout=self.config.timeout_seconds
            )
        except _CrisisInterrupt:
            crisis = True
        except _StreamCancelled:
            error = ErrorHandler.handle_cancelled(context, cancel_token.reason)
        except asyncio.TimeoutError:
            error = ErrorHandler.handle_timeout(context, self.config.timeout_seconds)
        except Exception as e:
            error = ErrorHandler.handle_transport_error(e, context)
        finally:
            await reader.release()
            self.statistics.bytes_received = decoder.bytes_received
            self.statistics.end_time = time.time()

        logger.performance("process_stream", self.statistics.start_time, stream_id=stream_id,
                           chunks_received=self.statistics.chunks_received)

        if crisis:
            logger.info("Stream interrupted by crisis event", stream_id=stream_id,
                        statistics=self.statistics.to_dict())
            return

        if error is not None:
            await self._invoke(self.on_error, error)
            return

        final_text = self.formatter.finalize()

        logger.info("Stream completed", stream_id=stream_id,
                    content_length=len(final_text),
                    statistics=self.statistics.to_dict())

        await self._invoke(self.on_complete, final_text)

    async def _read_loop(self, reader: StreamSource, decoder: ChunkDecoder,
                         cancel_token: Optional[CancellationToken], context: ErrorContext):
        while True:
            if cancel_token is not None and cancel_token.is_cancelled:
                raise _StreamCancelled()

            fragment = await self._until_cancelled(reader.read(), cancel_token)
            if fragment is None:
                break

            self.statistics.chunks_received += 1
            try:
                lines = decoder.feed(fragment)
            except TypeError as e:
                self._record_line_error(fragment, ErrorContext(stream_id=context.stream_id), e)
                continue

            logger.debug_data(f"Chunk {self.statistics.chunks_received} received",
                              {"chunk_size": len(fragment), "complete_lines": lines},
                              stream_id=context.stream_id, component="stream_processor")

            for line in lines:
                await self._process_line(line, context)

        # Обработка оставшихся данных
        remaining = decoder.flush()
        if remaining:
            await self._process_line(remaining, context)

        # stream ended inside a crisis event
        if self._crisis_lines:
            await self._emit_crisis("\n".join(self._crisis_lines), context)

    async def _until_cancelled(self, awaitable: Awaitable[Any], cancel_token: Optional[CancellationToken],
                               keep_result: bool = False):
        """
        Await ``awaitable`` unless the token fires first.

        With ``keep_result`` a result that is already available when the
        signal arrives is returned anyway, so an opened source can still be
        released by its owner.
        """
        if cancel_token is None:
            return await awaitable

        read_task = asyncio.ensure_future(awaitable)
        cancel_task = asyncio.ensure_future(cancel_token.wait())
        try:
            await asyncio.wait({read_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not read_task.done():
                read_task.cancel()
                try:
                    await read_task
                except (asyncio.CancelledError, Exception):
                    pass

        if keep_result and not read_task.cancelled() and read_task.exception() is None:
            return read_task.result()
        # a fragment that arrived together with the cancel signal is dropped
        if cancel_token.is_cancelled:
            raise _StreamCancelled()
        return read_task.result()

    async def _process_line(self, line: str, context: ErrorContext):
        """One bad line is logged and skipped, never fatal."""
        self.statistics.lines_processed += 1
        line_context = ErrorContext(stream_id=context.stream_id, line_number=self.statistics.lines_processed)

        result = self.classifier.classify(line)
        if isinstance(result, LineError):
            self._record_line_error(line, line_context, result.error)
            return

        try:
            await self._apply_line(result, line_context)
        except _CrisisInterrupt:
            raise
        except Exception as e:
            self._record_line_error(line, line_context, e)

    async def _apply_line(self, line: ClassifiedLine, context: ErrorContext):
        if line.kind == LineKind.CRISIS:
            await self._emit_crisis(line.text, context)
            return

        if line.kind == LineKind.EVENT_MARKER:
            if self._crisis_lines is None:
                self._crisis_lines = []
            return

        if self._crisis_lines is not None:
            await self._collect_crisis_line(line, context)
            return

        if line.kind in (LineKind.BLANK, LineKind.SENTINEL):
            if line.kind == LineKind.SENTINEL:
                self.statistics.sentinels_skipped += 1
            return

        content = line.text
        if self.config.sanitize_content:
            content = MessageSanitizer.sanitize_text(content)

        self.statistics.content_lines += 1
        result = self.formatter.process_chunk(StreamChunk(data=content + "\n", is_complete=False))
        if result.needs_update:
            self.statistics.updates_emitted += 1
            await self._invoke(self.on_update, result.text, result.is_complete)

    async def _collect_crisis_line(self, line: ClassifiedLine, context: ErrorContext):
        """
        Collect the data lines of an armed crisis event.

        Every data line belongs to the event, empty and numeric ones included.
        The empty line that ends the SSE event delivers the payload. An empty
        line before any data disarms the crisis.
        """
        if line.kind in (LineKind.CONTENT, LineKind.SENTINEL):
            self._crisis_lines.append(line.text)
            return

        if line.raw:
            # id:, retry:, comments
            return

        lines = self._crisis_lines
        self._crisis_lines = None
        if lines:
            await self._emit_crisis("\n".join(lines), context)

    async def _emit_crisis(self, payload: str, context: ErrorContext):
        """Crisis is terminal even if the update callback fails."""
        logger.warning("Crisis event received", component="stream_processor",
                       stream_id=context.stream_id, payload_length=len(payload))
        self._crisis_lines = None
        self.statistics.updates_emitted += 1
        try:
            await self._invoke(self.on_update, payload, True)
        except Exception as e:
            self._record_line_error(payload, context, e)
        raise _CrisisInterrupt()

    def _record_line_error(self, line: Any, context: ErrorContext, error: Exception):
        self.statistics.line_errors += 1
        ErrorHandler.handle_line_error(str(line), context, error)

    @staticmethod
    async def _invoke(callback: Callable[..., Any], *args):
        result = callback(*args)
        if inspect.isawaitable(result):
            await result

    def reset(self):
        """Reset for a new message stream"""
        self.formatter.reset()
        self.statistics = StreamStatistics()
        self._crisis_lines = None

    def get_debug_state(self) -> Dict[str, Any]:
        return {
            **self.formatter.get_state(),
            "statistics": self.statistics.to_dict(),
        }
