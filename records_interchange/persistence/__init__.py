"""
Persistence: the store protocol, its implementations, and the batch persister.
"""

from .batch_persister import BatchPersister, natural_key
from .context_loader import load_validation_context
from .store import InMemoryRecordStore, RecordStore, as_utc

__all__ = [
    "BatchPersister",
    "natural_key",
    "load_validation_context",
    "RecordStore",
    "InMemoryRecordStore",
    "as_utc",
]
