from __future__ import annotations

from contextlib import contextmanager
import contextvars
from dataclasses import dataclass
import functools
import inspect
import logging
import time
from typing import Any, Callable, Generator, Optional

DEFAULT_LOGGER_NAME = "uvicorn.error"
logger = logging.getLogger(DEFAULT_LOGGER_NAME)

_CURRENT_TIMING: contextvars.ContextVar["PageTiming | None"] = contextvars.ContextVar(
    "page_timing", default=None
)


@dataclass
class PageTiming:
    page: str
    callback: str
    start: float
    api_seconds: float = 0.0
    api_calls: int = 0

    def add_api_call(self, seconds: float) -> None:
        self.api_seconds += seconds
        self.api_calls += 1


def record_api_time(seconds: float) -> None:
    timing = _CURRENT_TIMING.get()
    if timing is None:
        return
    timing.add_api_call(seconds)


@contextmanager
def page_load_timing(
    page: str, callback: str, log: Optional[logging.Logger] = None
) -> Generator[PageTiming, None, None]:
    start = time.perf_counter()
    timing = PageTiming(page=page, callback=callback, start=start)
    token = _CURRENT_TIMING.set(timing)
    try:
        yield timing
    finally:
        total = time.perf_counter() - start
        local = max(0.0, total - timing.api_seconds)
        (log or logger).info(
            "page_load.timing page=%s callback=%s total_ms=%.2f api_ms=%.2f api_calls=%d local_ms=%.2f",
            page,
            callback,
            total * 1000,
            timing.api_seconds * 1000,
            timing.api_calls,
            local * 1000,
        )
        _CURRENT_TIMING.reset(token)


def timed_page_load(
    page: str,
    func: Callable[..., Any],
    label: Optional[str] = None,
    log: Optional[logging.Logger] = None,
) -> Callable[..., Any]:
    """
    Wrap a Gradio callback so each invocation logs its duration and upstream API time.
    Coroutine callbacks stay coroutines so Gradio keeps awaiting them on the event loop.
    """
    callback = label or func.__name__
    resolved_logger = log or logging.getLogger(DEFAULT_LOGGER_NAME)

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def _wrapped_async(*args, **kwargs):
            with page_load_timing(page, callback, resolved_logger):
                return await func(*args, **kwargs)

        return _wrapped_async

    @functools.wraps(func)
    def _wrapped(*args, **kwargs):
        with page_load_timing(page, callback, resolved_logger):
            return func(*args, **kwargs)

    return _wrapped
