"""
Structured JSON logging for records-interchange

Every module logs through a child of the ``records_interchange`` logger, which
owns the single stdout handler. Records emitted inside ``log_operation`` carry
the operation name and run id, so rows logged by the persister or the
validators can be traced back to the import, backup or restore that produced
them.
"""
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "records_interchange"

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(message)s"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(run_id)s] %(message)s"

# (operation name, run id) of the innermost active log_operation
_current_operation: ContextVar[tuple[str, str] | None] = ContextVar("current_operation", default=None)


class OperationContextFilter(logging.Filter):
    """Stamp records with the active operation and run id."""

    def filter(self, record: logging.LogRecord) -> bool:
        current = _current_operation.get()
        if current is not None:
            if not hasattr(record, "operation"):
                record.operation = current[0]
            record.run_id = current[1]
        elif not hasattr(record, "run_id"):
            record.run_id = "-"
        return True


class InterchangeJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with timestamp, level and logger name on every record.

    Fields passed through ``extra`` (record_type, rows, upload_filename, ...)
    are merged in by python-json-logger.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", self.formatTime(record, self.datefmt))
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        if log_record.get("run_id") == "-":
            del log_record["run_id"]
        if record.levelno >= logging.WARNING:
            log_record["location"] = f"{record.module}:{record.funcName}:{record.lineno}"


def configure_logging(level: str | None = None, format_type: str | None = None) -> logging.Logger:
    """
    Configure the package root logger.

    Args:
        level: Log level name (defaults to env var LOG_LEVEL, then INFO)
        format_type: "json" or "text" (defaults to env var LOG_FORMAT, then json)

    Returns:
        The package root logger
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    format_type = (format_type or os.getenv("LOG_FORMAT", "json")).lower()

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(log_level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(OperationContextFilter())
    if format_type == "json":
        handler.setFormatter(
            InterchangeJsonFormatter(fmt=JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S", json_ensure_ascii=False)
        )
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root.addHandler(handler)
    root.propagate = False
    return root


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a package logger, configuring the root handler on first use.

    Args:
        name: Dotted module name, normally ``__name__``
    """
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        configure_logging()
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def current_run_id() -> str | None:
    """Run id of the active log_operation, if any."""
    current = _current_operation.get()
    return current[1] if current is not None else None


class log_operation:
    """
    Context manager that logs the start, end and duration of an operation.

    Nested operations get their own run id; the outer one is restored on exit.

    Usage:
        with log_operation("Restoring backup", logger=logger, sheets=6):
            ...
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.run_id = uuid.uuid4().hex[:12]
        self.start_time: float | None = None
        self._token = None

    @property
    def elapsed(self) -> float:
        return 0.0 if self.start_time is None else time.perf_counter() - self.start_time

    def __enter__(self):
        self._token = _current_operation.set((self.operation_name, self.run_id))
        self.start_time = time.perf_counter()
        self.logger.info(f"Starting: {self.operation_name}", extra=self.extra_fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        fields = {"duration_seconds": round(self.elapsed, 3), **self.extra_fields}
        try:
            if exc_type is None:
                self.logger.info(f"Completed: {self.operation_name}", extra={"status": "success", **fields})
            else:
                self.logger.error(
                    f"Failed: {self.operation_name}",
                    extra={"status": "error", "error_type": exc_type.__name__, **fields},
                    exc_info=(exc_type, exc_val, exc_tb),
                )
        finally:
            _current_operation.reset(self._token)
        return False
