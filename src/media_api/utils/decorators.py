"""Timing decorators for storage and service calls."""
import functools
import inspect
import logging
import time
from typing import Any, Callable, Optional, TypeVar, cast

F = TypeVar('F', bound=Callable[..., Any])


def log_execution_time(operation: Optional[str] = None) -> Callable[[F], F]:
    """Log how long the decorated call took, in milliseconds.

    Works on both plain and `async` functions. Messages go to the logger of
    the module that defines the decorated function, so they can be filtered
    per layer.

    Args:
        operation: Name used in the log line (defaults to the function's qualname)
    """
    def decorator(func: F) -> F:
        label = operation or func.__qualname__
        func_logger = logging.getLogger(func.__module__)

        def _report(started: float, error: Optional[Exception] = None) -> None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            if error is None:
                func_logger.info(f"{label} completed in {elapsed_ms:.1f}ms")
            else:
                func_logger.warning(f"{label} failed after {elapsed_ms:.1f}ms: {error}")

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _report(started, e)
                    raise
                _report(started)
                return result
            return cast(F, async_wrapper)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _report(started, e)
                raise
            _report(started)
            return result
        return cast(F, wrapper)

    return decorator
