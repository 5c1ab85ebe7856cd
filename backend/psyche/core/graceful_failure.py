"""
Graceful failure handling for per-answer analysis.

Intelligence processing must never block the assessment flow. The belief
update, validity checks, contradiction and pattern detection and response
style classification each run inside graceful_failure(): an exception is
logged with the turn's context, the component is recorded as skipped for
that turn, and the selector moves on to the next component.

Caller contract violations (an invalid tier, an out-of-scale answer value)
are NOT handled here; those are raised before any analysis runs.

Usage:
    skipped: list[str] = []

    with graceful_failure("update beliefs", logger, failures=skipped):
        network.update_beliefs(response, history)

    with graceful_failure(
        "analyze patterns", logger, log_level=logging.ERROR, exc_info=True
    ) as outcome:
        patterns = detector.analyze(history, estimates, times)
    if outcome.failed:
        ...
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Generator, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class FailureOutcome:
    """What happened inside one graceful_failure block."""

    operation: str
    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def _failure_message(
    operation_name: str, error: Exception, context: Optional[dict[str, Any]]
) -> str:
    detail = f"{type(error).__name__}: {error}"
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        return f"Failed to {operation_name} ({context_str}): {detail}"
    return f"Failed to {operation_name}: {detail}"


@contextmanager
def graceful_failure(
    operation_name: str,
    logger: logging.Logger,
    *,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    context: Optional[dict[str, Any]] = None,
    failures: Optional[List[str]] = None,
) -> Generator[FailureOutcome, None, None]:
    """Run a non-critical block; log and record any exception instead of raising.

    Args:
        operation_name: Human-readable name of the operation for logging
            (e.g., "update beliefs", "detect contradictions").
        logger: The logger instance to use for logging errors.
        log_level: Logging level for error messages. Defaults to WARNING.
        exc_info: Whether to include exception traceback in log.
        context: Extra key/value pairs rendered into the log message
            (e.g., {"item_id": "PHQ9_1", "response_count": 12}).
        failures: If given, operation_name is appended to it on failure.

    Yields:
        FailureOutcome, filled in if the block raised.
    """
    outcome = FailureOutcome(operation=operation_name)
    try:
        yield outcome
    except Exception as e:
        outcome.error = e
        if failures is not None:
            failures.append(operation_name)
        logger.log(
            log_level,
            _failure_message(operation_name, e, context),
            exc_info=exc_info,
        )


def graceful_failure_decorator(
    operation_name: str,
    *,
    logger: Optional[logging.Logger] = None,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    default: Any = None,
) -> Callable[[Callable[..., T]], Callable[..., Optional[T]]]:
    """Wrap a whole function in graceful_failure; return default on failure.

    Without an explicit logger, the decorated function's module logger is
    used.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Optional[T]:
            with graceful_failure(
                operation_name,
                logger or logging.getLogger(func.__module__),
                log_level=log_level,
                exc_info=exc_info,
            ):
                return func(*args, **kwargs)
            return default

        return wrapper

    return decorator
