"""
Prometheus metrics collection for records-interchange

This module provides metrics instrumentation for monitoring import,
export, backup and restore runs.
"""
import os
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    start_http_server,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# IMPORT METRICS
# =======================

# Rows processed counter
rows_processed_total = Counter(
    name="interchange_rows_processed_total",
    documentation="Total number of rows processed by import runs",
    labelnames=["record_type", "status"],  # status: created, updated, skipped, failed, unprocessed
    registry=REGISTRY,
)

# Validation failures counter
validation_failures_total = Counter(
    name="interchange_validation_failures_total",
    documentation="Total number of row-level validation failures",
    labelnames=["record_type", "stage", "field_name"],  # stage: ingest, schema, referential
    registry=REGISTRY,
)

# Batches persisted counter
batches_processed_total = Counter(
    name="interchange_batches_processed_total",
    documentation="Total number of persistence batches processed",
    labelnames=["record_type", "status"],  # status: success, failed
    registry=REGISTRY,
)

# Batch duration
batch_duration_seconds = Histogram(
    name="interchange_batch_duration_seconds",
    documentation="Time spent persisting one batch in seconds",
    labelnames=["record_type"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

# =======================
# OPERATION METRICS
# =======================

# Operation duration histogram
operation_duration_seconds = Histogram(
    name="interchange_operation_duration_seconds",
    documentation="Time spent in a whole pipeline operation in seconds",
    labelnames=["operation"],  # operation: upload, import, export, backup, restore, preview
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)

# Operations counter
operations_total = Counter(
    name="interchange_operations_total",
    documentation="Total number of pipeline operations",
    labelnames=["operation", "status"],  # status: success, failed, cancelled
    registry=REGISTRY,
)

# Export size
export_size_bytes = Histogram(
    name="interchange_export_size_bytes",
    documentation="Size of produced export/backup payloads",
    labelnames=["operation", "format"],
    buckets=[1024, 10240, 102400, 1048576, 10485760, 52428800],
    registry=REGISTRY,
)

# Records exported
records_exported_total = Counter(
    name="interchange_records_exported_total",
    documentation="Total number of records written to export/backup payloads",
    labelnames=["record_type"],
    registry=REGISTRY,
)

# Sheets skipped during restore
restore_sheets_skipped_total = Counter(
    name="interchange_restore_sheets_skipped_total",
    documentation="Total number of bundle sheets skipped during restore",
    labelnames=["reason"],  # reason: metadata, unknown, not_selected
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(operation_duration_seconds, operation="backup"):
            ...
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        self.timer = self.histogram.labels(**self.labels).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if value > 0:
        counter.labels(**labels).inc(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    """
    Observe a value in a histogram metric

    Args:
        histogram: Prometheus Histogram metric
        value: Value to observe
        **labels: Label values for the metric
    """
    histogram.labels(**labels).observe(value)


# =======================
# PIPELINE HELPERS
# =======================

def record_import_summary(
    record_type: str,
    created: int,
    updated: int,
    skipped: int,
    failed: int,
    unprocessed: int,
) -> None:
    """
    Record row outcomes of one import run.

    Args:
        record_type: Record type value
        created: Rows written as new records
        updated: Rows that updated an existing record
        skipped: Rows matching an existing record that were left untouched
        failed: Rows with at least one error
        unprocessed: Rows never reached (halt or cancellation)
    """
    for status, count in (
        ("created", created),
        ("updated", updated),
        ("skipped", skipped),
        ("failed", failed),
        ("unprocessed", unprocessed),
    ):
        increment_counter(rows_processed_total, count, record_type=record_type, status=status)


def record_validation_failure(record_type: str, stage: str, field_name: str) -> None:
    """
    Record a validation failure.

    Args:
        record_type: Record type value
        stage: Pipeline stage that rejected the value (ingest, schema, referential)
        field_name: Name of field that failed validation
    """
    increment_counter(
        validation_failures_total, 1, record_type=record_type, stage=stage, field_name=field_name
    )


def record_batch(record_type: str, status: str, duration_seconds: float) -> None:
    """Record one persisted batch and its duration."""
    increment_counter(batches_processed_total, 1, record_type=record_type, status=status)
    observe_histogram(batch_duration_seconds, duration_seconds, record_type=record_type)


def record_operation(operation: str, status: str) -> None:
    """Count a finished operation by status."""
    increment_counter(operations_total, 1, operation=operation, status=status)


def record_export(operation: str, file_format: str, size_bytes: int, record_counts: dict[str, int]) -> None:
    """
    Record a produced export or backup payload.

    Args:
        operation: "export", "backup" or "template"
        file_format: "excel" or "csv"
        size_bytes: Payload size
        record_counts: Records written per record type
    """
    observe_histogram(export_size_bytes, size_bytes, operation=operation, format=file_format)
    for record_type, count in record_counts.items():
        increment_counter(records_exported_total, count, record_type=record_type)
