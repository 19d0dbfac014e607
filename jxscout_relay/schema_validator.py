"""
JSON Schema validation for relay settings and chunk submissions.

Schemas live next to this module in schemas/:
- settings.schema.json for the persisted settings file
- chunk.schema.json for chunk submission payloads
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

logger = logging.getLogger(__name__)

SCHEMAS_DIR = Path(__file__).parent / "schemas"


@dataclass
class ValidationResult:
    """Result of schema validation."""

    valid: bool
    errors: list[str]

    @classmethod
    def success(cls) -> ValidationResult:
        return cls(valid=True, errors=[])

    @classmethod
    def failure(cls, errors: list[str]) -> ValidationResult:
        return cls(valid=False, errors=errors)


class SchemaValidator:
    """Validates JSON data against the bundled schemas."""

    # Validator cache, keyed by schema name
    _validators: dict[str, Draft202012Validator] = {}

    @classmethod
    def _get_validator(cls, schema_name: str) -> Draft202012Validator:
        if schema_name in cls._validators:
            return cls._validators[schema_name]

        schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
        with open(schema_path, encoding="utf-8") as f:
            schema = json.load(f)

        validator = Draft202012Validator(schema)
        cls._validators[schema_name] = validator
        return validator

    @classmethod
    def validate(cls, data: Any, schema_name: str, context: str = "") -> ValidationResult:
        """
        Validate data against a bundled schema.

        Args:
            data: The decoded JSON value
            schema_name: Schema file stem, e.g. "settings"
            context: Optional prefix for error messages (e.g. a file name)

        Returns:
            ValidationResult with the collected error messages
        """
        validator = cls._get_validator(schema_name)

        errors: list[str] = []
        for error in validator.iter_errors(data):
            path = ".".join(str(p) for p in error.path) or "(root)"
            prefix = f"{context}: " if context else ""
            errors.append(f"{prefix}{path}: {error.message}")

        if errors:
            for error in errors:
                logger.debug(f"Schema validation error: {error}")
            return ValidationResult.failure(errors)

        return ValidationResult.success()


def validate_settings(data: Any, context: str = "") -> ValidationResult:
    """Validate a settings document."""
    return SchemaValidator.validate(data, "settings", context)


def validate_chunk(data: Any) -> ValidationResult:
    """Validate a chunk submission payload."""
    return SchemaValidator.validate(data, "chunk", "chunk")
