"""Unit tests for run_with_retry and RetryPolicy.

Tests attempt counts, backoff bounds, classification and cancellation.
"""

import logging
import threading
import pytest
from unittest.mock import Mock, patch

from ftp_output.ftp.exceptions import RetryGiveupError, RetryInterruptedError
from ftp_output.utils.retry import RetryPolicy, run_with_retry


# No waiting between attempts
FAST_POLICY = RetryPolicy(retry_limit=3, initial_wait_ms=0, max_wait_ms=0)


def failing_then(times: int, result="ok", error=OSError("boom")):
    """Build an operation failing `times` times before returning result."""
    return Mock(side_effect=[error] * times + [result])


class TestRetryPolicy:
    """Tests for RetryPolicy dataclass."""

    def test_default_values(self):
        """Test default wait bounds."""
        policy = RetryPolicy(retry_limit=10)
        assert policy.initial_wait_ms == 500
        assert policy.max_wait_ms == 30000

    def test_wait_doubles_until_cap(self):
        """Test waits double and are capped at max_wait_ms."""
        policy = RetryPolicy(retry_limit=10, initial_wait_ms=500, max_wait_ms=30000)
        waits = [policy.wait_ms(k) for k in range(1, 11)]
        assert waits[:4] == [500, 1000, 2000, 4000]
        assert waits[-1] == 30000
        assert waits == sorted(waits)
        assert max(waits) <= policy.max_wait_ms

    def test_wait_with_huge_retry_count(self):
        """Test large retry numbers stay at the cap."""
        policy = RetryPolicy(retry_limit=1000)
        assert policy.wait_ms(1000) == policy.max_wait_ms

    def test_invalid_values_raise_error(self):
        """Test that invalid policies raise ValueError."""
        with pytest.raises(ValueError):
            RetryPolicy(retry_limit=-1)
        with pytest.raises(ValueError):
            RetryPolicy(retry_limit=1, initial_wait_ms=100, max_wait_ms=10)


class TestRunWithRetry:
    """Tests for run_with_retry."""

    def test_success_first_attempt(self):
        """Test result returned without retries."""
        operation = Mock(return_value=42)
        assert run_with_retry(operation, FAST_POLICY) == 42
        assert operation.call_count == 1

    @pytest.mark.parametrize("failures", [1, 2, 3])
    def test_succeeds_after_k_failures(self, failures):
        """Test k failures below the limit give k+1 calls."""
        operation = failing_then(failures)
        assert run_with_retry(operation, FAST_POLICY) == "ok"
        assert operation.call_count == failures + 1

    def test_gives_up_after_limit(self):
        """Test always-failing operation runs retry_limit + 1 times."""
        error = OSError("network down")
        operation = Mock(side_effect=error)

        with pytest.raises(RetryGiveupError) as exc_info:
            run_with_retry(operation, FAST_POLICY)

        assert operation.call_count == FAST_POLICY.retry_limit + 1
        assert exc_info.value.cause is error
        assert exc_info.value.attempts == 4

    def test_zero_retry_limit(self):
        """Test retry_limit 0 means a single attempt."""
        operation = Mock(side_effect=OSError("x"))
        with pytest.raises(RetryGiveupError):
            run_with_retry(operation, RetryPolicy(retry_limit=0, initial_wait_ms=0, max_wait_ms=0))
        assert operation.call_count == 1

    def test_fatal_error_raised_immediately(self):
        """Test non-retryable error surfaces the original after 1 attempt."""
        operation = Mock(side_effect=ConnectionRefusedError("refused"))

        with pytest.raises(ConnectionRefusedError):
            run_with_retry(
                operation,
                FAST_POLICY,
                is_retryable=lambda e: not isinstance(e, ConnectionRefusedError),
            )

        assert operation.call_count == 1

    def test_fatal_error_after_retryable_ones(self):
        """Test a fatal error stops the remaining budget."""
        operation = Mock(side_effect=[OSError("a"), ValueError("fatal"), "never"])

        with pytest.raises(ValueError, match="fatal"):
            run_with_retry(
                operation,
                RetryPolicy(retry_limit=10, initial_wait_ms=0, max_wait_ms=0),
                is_retryable=lambda e: isinstance(e, OSError),
            )

        assert operation.call_count == 2

    @patch("ftp_output.utils.retry.time.sleep")
    def test_sleeps_with_backoff(self, mock_sleep):
        """Test waits between attempts follow the policy."""
        policy = RetryPolicy(retry_limit=3, initial_wait_ms=100, max_wait_ms=250)
        operation = failing_then(3)

        run_with_retry(operation, policy)

        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.1, 0.2, 0.25]

    def test_cancelled_before_start(self):
        """Test a set cancel event prevents any attempt."""
        event = threading.Event()
        event.set()
        operation = Mock()

        with pytest.raises(RetryInterruptedError):
            run_with_retry(operation, FAST_POLICY, cancel_event=event)

        operation.assert_not_called()

    def test_cancelled_during_attempt(self):
        """Test cancellation during an attempt is not turned into a giveup."""
        event = threading.Event()

        def operation():
            event.set()
            raise OSError("interrupted transfer")

        with pytest.raises(RetryInterruptedError):
            run_with_retry(operation, FAST_POLICY, cancel_event=event)

    def test_cancelled_during_wait(self):
        """Test cancellation wakes the backoff wait promptly."""
        event = threading.Event()
        policy = RetryPolicy(retry_limit=3, initial_wait_ms=60000, max_wait_ms=60000)
        operation = Mock(side_effect=OSError("x"))

        timer = threading.Timer(0.05, event.set)
        timer.start()
        try:
            with pytest.raises(RetryInterruptedError):
                run_with_retry(operation, policy, cancel_event=event)
        finally:
            timer.cancel()

        assert operation.call_count == 1

    def test_keyboard_interrupt_propagates(self):
        """Test KeyboardInterrupt is never retried."""
        operation = Mock(side_effect=KeyboardInterrupt)

        with pytest.raises(KeyboardInterrupt):
            run_with_retry(operation, FAST_POLICY)

        assert operation.call_count == 1

    def test_retry_warnings(self, caplog):
        """Test one warning per retry and a traceback every third retry."""
        operation = failing_then(3, error=OSError("x" * 500))

        with caplog.at_level(logging.WARNING, logger="ftp_output.retry"):
            run_with_retry(operation, FAST_POLICY, description="FTP put request")

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 3
        assert "Retrying 1/3" in warnings[0].getMessage()
        assert "FTP put request" in warnings[0].getMessage()
        assert "x" * 201 not in warnings[0].getMessage()
        assert warnings[0].exc_info is None
        assert warnings[2].exc_info is not None
