"""
Long-running operations: backup and restore, with cooperative cancellation.
"""

from .cancellation import CancellationToken, ProgressCallback

__all__ = ["CancellationToken", "ProgressCallback"]
