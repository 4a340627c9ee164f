"""
SchemaValidator: per-record-type field rules.

Each record type's rule set is loaded from its YAML schema file and applied
by a RuleEngine. A row yields either a clean candidate (coerced values,
defaults applied) or one ImportRowError per bad field.
"""

from datetime import date
from pathlib import Path
from typing import Any, Callable

from records_interchange.core.models import ValidationResult
from records_interchange.core.vocabulary import RecordType
from records_interchange.observability.logger import get_logger
from records_interchange.observability.metrics import record_validation_failure

from .rule_config import RuleConfigLoader
from .rule_engine import RuleEngine

logger = get_logger(__name__)


class SchemaValidator:
    """
    Validates rows of any record type against its schema.

    Engines are built lazily, once per record type, from
    RuleConfigLoader.for_record_type(). Pass engines explicitly to validate
    against programmatic rule sets.
    """

    def __init__(
        self,
        engines: dict[RecordType, RuleEngine] | None = None,
        schema_dir: str | Path | None = None,
        today: Callable[[], date] | None = None,
    ):
        """
        Initialize schema validator.

        Args:
            engines: Pre-built engines by record type (skip YAML loading for those)
            schema_dir: Directory holding <record_type>.yaml schema files
            today: Reference date provider for not_future rules
        """
        self._engines: dict[RecordType, RuleEngine] = dict(engines or {})
        self.schema_dir = schema_dir
        self.today = today

    def engine_for(self, record_type: RecordType) -> RuleEngine:
        """Return (building on first use) the rule engine of a record type."""
        engine = self._engines.get(record_type)
        if engine is None:
            loader = RuleConfigLoader.for_record_type(record_type, self.schema_dir)
            engine = RuleEngine(loader.load_rules(), loader.load_defaults(), today=self.today)
            self._engines[record_type] = engine
            summary = engine.get_rule_summary()
            logger.debug(
                f"Loaded {summary['total_rules']} rules for {record_type.value}",
                extra={"record_type": record_type.value, **summary},
            )
        return engine

    def validate_row(self, record_type: RecordType, row: int, payload: dict[str, Any]) -> ValidationResult:
        """
        Validate one normalized row.

        Args:
            record_type: Record type of the row
            row: 1-based data row number
            payload: Row keyed by canonical field names

        Returns:
            ValidationResult (values hold the candidate when passed)
        """
        result = self.engine_for(record_type).validate_record(payload, row)
        for error in result.errors:
            record_validation_failure(record_type.value, "schema", error.field or "")
        return result
