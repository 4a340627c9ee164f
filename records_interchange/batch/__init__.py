"""
Import pipeline: the shared validation stage and validate-then-persist orchestration.
"""

from .pipeline import ImportPipeline, ValidationOutcome, canonical_fields, merge_results, validate_rows

__all__ = ["ImportPipeline", "ValidationOutcome", "canonical_fields", "merge_results", "validate_rows"]
