"""
Runtime settings for the interchange pipeline.

Values come from INTERCHANGE_* environment variables (a .env file is loaded
by load_settings when present) and fall back to the defaults below.
"""

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "INTERCHANGE_"


class InterchangeSettings(BaseModel):
    """
    Attributes:
        max_file_size: Upload ceiling in bytes
        max_rows: Data row ceiling per file or sheet
        batch_size: Candidates per persistence batch
        max_concurrency: Concurrent store calls per batch (None: batch size)
        schema_dir: Directory of per-record-type YAML schema files (None: packaged schemas)
    """

    max_file_size: int = Field(10 * 1024 * 1024, ge=1)
    max_rows: int = Field(10_000, ge=1)
    batch_size: int = Field(100, ge=1)
    max_concurrency: int | None = Field(None, ge=1)
    schema_dir: Path | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "max_file_size": 10485760,
                "max_rows": 10000,
                "batch_size": 100,
                "max_concurrency": 20,
            }
        }

    @classmethod
    def from_env(cls) -> "InterchangeSettings":
        """Build settings from INTERCHANGE_* environment variables."""
        values = {}
        for field_name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
            if raw not in (None, ""):
                values[field_name] = raw
        return cls(**values)


def load_settings(env_file: str | Path | None = None) -> InterchangeSettings:
    """
    Load a .env file (if any) into the environment and build settings from it.

    Args:
        env_file: Explicit .env path; defaults to the nearest .env found from the working directory

    Returns:
        InterchangeSettings instance
    """
    if env_file is not None:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    return InterchangeSettings.from_env()
