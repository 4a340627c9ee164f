"""
Validation rule engines and configuration management.
"""

from .referential_validator import ReferentialValidator
from .rule_config import DEFAULT_SCHEMA_DIR, RuleConfigBuilder, RuleConfigLoader
from .rule_engine import RuleEngine
from .schema_validator import SchemaValidator

__all__ = [
    "RuleEngine",
    "RuleConfigLoader",
    "RuleConfigBuilder",
    "DEFAULT_SCHEMA_DIR",
    "SchemaValidator",
    "ReferentialValidator",
]
