"""
Unit tests for cancellation tokens and progress reporting.
"""

import pytest

from records_interchange.core.errors import OperationCancelled
from records_interchange.orchestration import CancellationToken
from records_interchange.orchestration.cancellation import is_cancelled, report


class MonotonicStub:
    def __init__(self):
        self.value = 100.0

    def __call__(self):
        return self.value


@pytest.mark.unit
class TestCancellationToken:
    """Tests for CancellationToken"""

    def test_explicit_cancel(self):
        """Test cancel() sets the flag and keeps the first reason"""
        token = CancellationToken()
        assert token.cancelled is False
        assert token.reason is None

        token.cancel("user pressed stop")
        token.cancel("second reason")

        assert token.cancelled is True
        assert token.reason == "user pressed stop"

    def test_timeout(self):
        """Test the token fires once its deadline passes"""
        clock = MonotonicStub()
        token = CancellationToken(timeout=30, clock=clock)

        clock.value = 129.9
        assert token.cancelled is False

        clock.value = 130.0
        assert token.cancelled is True
        assert token.reason == "Operation timed out"

    def test_raise_if_cancelled(self):
        """Test checkpoints raise OperationCancelled with the reason"""
        token = CancellationToken()
        token.raise_if_cancelled()

        token.cancel("shutdown")
        with pytest.raises(OperationCancelled, match="shutdown"):
            token.raise_if_cancelled()

    def test_missing_token(self):
        """Test a missing token never reports cancelled"""
        assert is_cancelled(None) is False


@pytest.mark.unit
class TestReport:
    """Tests for progress reporting"""

    def test_report_calls_callback(self):
        """Test progress callbacks receive percent and message"""
        calls = []
        report(lambda percent, message: calls.append((percent, message)), 50, "half")
        assert calls == [(50, "half")]

    def test_report_without_callback(self):
        """Test reporting without a callback is a no-op"""
        report(None, 50, "half")
