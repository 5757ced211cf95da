import asyncio
from functools import wraps
from typing import Callable, Optional

from ...core.error_handling import ErrorHandler, ErrorType
from ...core.logging import logger
from .cancellation import CancellationToken


class RetriesExhaustedError(Exception):
    """Every attempt failed with a network-class error."""

    def __init__(self, attempts: int, last_exception: BaseException):
        super().__init__(f"Network connection failed after {attempts} attempts: {last_exception}")
        self.attempts = attempts
        self.last_exception = last_exception


def retry_on_network_error(max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 30.0,
                           cancel_token: Optional[CancellationToken] = None):
    """
    Декоратор для повторных попыток при сетевых ошибках

    Only network-class failures are retried, with exponential backoff. Any
    other error is re-raised after the first attempt. Once all retries are
    used up RetriesExhaustedError is raised with the last failure attached.

    Args:
        max_retries: Максимальное количество повторных попыток
        base_delay: Базовая задержка между попытками (секунды)
        max_delay: Максимальная задержка (секунды)
        cancel_token: Прерывает ожидание между попытками
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if ErrorHandler.classify_transport_error(e) != ErrorType.NETWORK_CONNECTION_LOST:
                        raise

                    if attempt >= max_retries:
                        raise RetriesExhaustedError(attempt + 1, e) from e

                    # Экспоненциальное увеличение задержки
                    delay = min(base_delay * (2 ** attempt), max_delay)
                    logger.warning(f"Network error, retrying in {delay}s (attempt {attempt + 1}/{max_retries})",
                                   delay_seconds=delay,
                                   attempt=attempt + 1,
                                   max_retries=max_retries,
                                   component="stream_retry")
                    await _backoff(delay, cancel_token)
        return wrapper
    return decorator


async def _backoff(delay: float, cancel_token: Optional[CancellationToken]):
    """Sleep before the next attempt. Returns early once the token is cancelled."""
    if cancel_token is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel_token.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass
