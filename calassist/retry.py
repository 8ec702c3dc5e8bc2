"""Retry utilities with exponential backoff.

Used by the hosted model backends to ride out transient connection errors.
Retry counts come from configuration at call time, so the core helper is a
plain function; ``retry_with_backoff`` wraps it as a decorator.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt`` (1-based)."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def call_with_retry(
    func: Callable[[], T],
    *,
    max_retries: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    retry_on: tuple[type[Exception], ...] = (ConnectionError,),
    on_retry: Callable[[int, Exception], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func``, retrying on ``retry_on`` up to ``max_retries`` extra times.

    Args:
        func: Zero-argument callable to run.
        max_retries: Retries after the first attempt (0 disables retrying).
        base_delay: Delay before the first retry in seconds.
        max_delay: Upper bound on any single delay.
        retry_on: Exception types treated as transient.
        on_retry: Optional callback called on each retry with (attempt, exception).
        sleep: Sleep function, replaceable in tests.

    Returns:
        Whatever ``func`` returns.

    Raises:
        The last transient exception once retries are exhausted, or any
        non-transient exception immediately.
    """
    name = getattr(func, "__name__", repr(func))
    attempt = 0
    while True:
        try:
            return func()
        except retry_on as e:
            attempt += 1
            if attempt > max_retries:
                logger.error("All %d retries exhausted for %s: %s", max_retries, name, e)
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "Retry %d/%d for %s after %.1fs: %s", attempt, max_retries, name, delay, e
            )
            if on_retry:
                on_retry(attempt, e)
            sleep(delay)


def retry_with_backoff(
    max_retries: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    retry_on: tuple[type[Exception], ...] = (ConnectionError,),
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator form of :func:`call_with_retry`.

    Example:
        @retry_with_backoff(max_retries=3, retry_on=(requests.ConnectionError,))
        def fetch_data():
            return session.get("https://api.example.com/data")
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            def attempt() -> T:
                return func(*args, **kwargs)

            attempt.__name__ = func.__name__
            return call_with_retry(
                attempt,
                max_retries=max_retries,
                base_delay=base_delay,
                max_delay=max_delay,
                retry_on=retry_on,
            )

        return wrapper

    return decorator
