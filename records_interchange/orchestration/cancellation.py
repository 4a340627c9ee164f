"""
Cooperative cancellation and progress reporting for long-running operations.
"""

import time
from typing import Callable

from records_interchange.core.errors import OperationCancelled

# progress(percent, message); invoked synchronously, must be fast
ProgressCallback = Callable[[int, str], None]


class CancellationToken:
    """
    Explicit cancel flag plus an optional deadline.

    Pipelines check the token between batches, sheets and backup record
    types; a batch already in flight always completes.
    """

    def __init__(self, timeout: float | None = None, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            timeout: Seconds from now after which the token reports cancelled
            clock: Monotonic clock
        """
        self._clock = clock
        self._deadline = clock() + timeout if timeout is not None else None
        self._reason: str | None = None

    def cancel(self, reason: str = "Operation cancelled") -> None:
        if self._reason is None:
            self._reason = reason

    @property
    def cancelled(self) -> bool:
        if self._reason is not None:
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._reason = "Operation timed out"
            return True
        return False

    @property
    def reason(self) -> str | None:
        return self._reason if self.cancelled else None

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            OperationCancelled: If the token is cancelled or past its deadline
        """
        if self.cancelled:
            raise OperationCancelled(self._reason or "Operation cancelled")


def is_cancelled(token: CancellationToken | None) -> bool:
    return token is not None and token.cancelled


def report(progress: ProgressCallback | None, percent: int, message: str) -> None:
    if progress is not None:
        progress(percent, message)
