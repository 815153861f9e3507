"""Bounded retry with exponential backoff for FTP operations.

Both the connect step and the upload step run through run_with_retry().
Each call keeps its own retry counter; RetryPolicy holds configuration only.

Usage:
    policy = RetryPolicy(retry_limit=10)
    ftp = run_with_retry(
        lambda: client.connect(host, port),
        policy,
        is_retryable=lambda e: not isinstance(e, ConnectionRefusedError),
        description="FTP connect",
    )
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from ftp_output.ftp.exceptions import RetryGiveupError, RetryInterruptedError

logger = logging.getLogger("ftp_output.retry")

T = TypeVar("T")

# Longest exception message included in a retry warning
MAX_REASON_LENGTH = 200

# Every Nth retry also logs the full traceback
TRACEBACK_EVERY = 3


@dataclass(frozen=True)
class RetryPolicy:
    """Retry limits and backoff bounds in milliseconds."""
    retry_limit: int
    initial_wait_ms: int = 500
    max_wait_ms: int = 30 * 1000

    def __post_init__(self):
        """Validate policy values."""
        if self.retry_limit < 0:
            raise ValueError(f"Retry limit must be >= 0, got {self.retry_limit}")
        if self.initial_wait_ms < 0:
            raise ValueError(f"Initial wait must be >= 0, got {self.initial_wait_ms}")
        if self.max_wait_ms < self.initial_wait_ms:
            raise ValueError("Max wait must not be smaller than initial wait")

    def wait_ms(self, retry_count: int) -> int:
        """
        Backoff before the given retry.

        Args:
            retry_count: 1-based retry number

        Returns:
            Wait in milliseconds, doubling per retry and capped at max_wait_ms
        """
        if retry_count < 1:
            return 0
        # Cap the exponent so huge retry counts don't build huge ints
        exponent = min(retry_count - 1, 32)
        return min(self.initial_wait_ms * (2 ** exponent), self.max_wait_ms)


def _always_retryable(error: Exception) -> bool:
    return True


def _truncate(text: str, limit: int = MAX_REASON_LENGTH) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def run_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    is_retryable: Callable[[Exception], bool] = _always_retryable,
    cancel_event: Optional[threading.Event] = None,
    description: str = "FTP operation",
) -> T:
    """
    Run an operation, retrying retryable failures with backoff.

    Args:
        operation: Zero-argument callable to run
        policy: Retry limits and wait bounds
        is_retryable: Classifier; False aborts and re-raises the original error
        cancel_event: Optional event that interrupts attempts and waits
        description: Operation name used in log messages

    Returns:
        Result of the first successful attempt

    Raises:
        RetryGiveupError: If every attempt failed with a retryable error
        RetryInterruptedError: If cancel_event was set
        Exception: The original error when classified as not retryable
    """
    retry_count = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise RetryInterruptedError(description)

        try:
            result = operation()
        except RetryInterruptedError:
            raise
        except Exception as e:
            if cancel_event is not None and cancel_event.is_set():
                raise RetryInterruptedError(description, e)

            if not is_retryable(e):
                logger.debug(f"{description} failed with non-retryable error: {e!r}")
                raise

            if retry_count >= policy.retry_limit:
                logger.error(
                    f"{description} failed after {retry_count + 1} attempts: "
                    f"{_truncate(str(e))}"
                )
                raise RetryGiveupError(e, retry_count + 1) from e

            retry_count += 1
            wait_ms = policy.wait_ms(retry_count)
            message = (
                f"{description} failed. Retrying {retry_count}/{policy.retry_limit} "
                f"after {wait_ms / 1000:.1f} seconds. Message: "
                f"{type(e).__name__}: {_truncate(str(e))}"
            )
            if retry_count % TRACEBACK_EVERY == 0:
                logger.warning(message, exc_info=e)
            else:
                logger.warning(message)

            _sleep(wait_ms / 1000.0, cancel_event, description, e)
            continue

        if retry_count > 0:
            logger.info(f"{description} succeeded after {retry_count} retries")
        return result


def _sleep(
    seconds: float,
    cancel_event: Optional[threading.Event],
    description: str,
    last_error: Exception,
) -> None:
    """Wait between attempts, waking early if cancelled."""
    if cancel_event is None:
        time.sleep(seconds)
        return
    if cancel_event.wait(timeout=seconds):
        raise RetryInterruptedError(description, last_error)
