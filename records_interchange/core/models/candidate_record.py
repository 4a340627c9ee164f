"""
CandidateRecord model: one row on its way from validation to persistence (ephemeral).
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from records_interchange.core.vocabulary import RecordType


class CandidateRecord(BaseModel):
    """
    A validated row waiting to be persisted.

    Note: the source row number travels with the candidate so that errors
    raised during persistence cite the row of the uploaded file, whatever
    rows were dropped by validation and whatever the batch size.

    Attributes:
        row: 1-based data row number in the source file
        record_type: Record type of the values
        values: Canonical field -> typed value
        status: "validated" once schema and referential checks passed
    """

    row: int = Field(..., ge=1)
    record_type: RecordType
    values: dict[str, Any]
    status: Literal["pending", "validated"] = "pending"

    class Config:
        json_schema_extra = {
            "example": {
                "row": 4,
                "record_type": "contribution",
                "values": {"memberId": "m-12", "amount": "50000", "offeringType": "TITHE"},
                "status": "validated",
            }
        }
