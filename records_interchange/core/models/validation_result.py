"""
ValidationResult model representing the outcome of validating one row (ephemeral).
"""

from typing import Any, List

from pydantic import BaseModel, Field, field_validator

from .import_result import ImportRowError


class ValidationResult(BaseModel):
    """
    Outcome of validating a row (ephemeral, used during processing).

    Attributes:
        row: 1-based data row number
        passed: Overall validation status
        values: Row values after defaults and coercion (canonical codes, dates, Decimals)
        passed_rules: Rules that succeeded
        failed_rules: Rules that failed
        warnings: Non-blocking rule failures (severity "warning")
        errors: One ImportRowError per failed rule
    """

    row: int = Field(..., ge=1)
    passed: bool
    values: dict[str, Any] = Field(default_factory=dict)
    passed_rules: List[str] = Field(default_factory=list)
    failed_rules: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    errors: List[ImportRowError] = Field(default_factory=list)

    @field_validator('failed_rules')
    @classmethod
    def check_passed_consistency(cls, v, info):
        """Validate that passed=True implies failed_rules is empty."""
        if info.data.get('passed') and len(v) > 0:
            raise ValueError("passed=True but failed_rules is not empty")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "row": 2,
                "passed": False,
                "values": {"name": "Kim", "email": "bad-email", "status": "ACTIVE"},
                "passed_rules": ["name_required", "name_length"],
                "failed_rules": ["email_format"],
                "warnings": [],
                "errors": [{"row": 2, "field": "email", "message": "Invalid email format", "value": "bad-email"}],
            }
        }
