"""
Compile and apply JSON Schema contracts.

Rule types carry a policy schema and an optional parameter schema; REST data
sources carry an input schema. All of them go through here so that failures
are reported the same way: every violated constraint, not just the first.
"""

from typing import Any, Dict, Mapping, Optional

from jsonschema.exceptions import SchemaError as JsonSchemaError
from jsonschema.validators import validator_for

from warden.errors import SchemaError, SchemaValidationError


class CompiledSchema:
    """A checked schema plus the validator instance built from it."""

    def __init__(self, raw: Mapping[str, Any]):
        cls = validator_for(raw)
        cls.check_schema(raw)
        self.raw: Dict[str, Any] = dict(raw)
        self._validator = cls(self.raw)

    def iter_problems(self, document: Any) -> list[str]:
        problems = []
        for error in sorted(self._validator.iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path]):
            path = ".".join(str(p) for p in error.absolute_path) or "(root)"
            problems.append(f"{path}: {error.message}")
        return problems


def compile_schema(schema: Optional[Mapping[str, Any]], allow_none: bool = False) -> Optional[CompiledSchema]:
    """
    Compile a schema document.

    Args:
        schema: JSON Schema as a mapping
        allow_none: Whether a missing schema means "no constraint"

    Returns:
        CompiledSchema, or None when schema is None and allow_none is set

    Raises:
        SchemaError: If the schema is missing (and not allowed to be) or malformed
    """
    if schema is None:
        if allow_none:
            return None
        raise SchemaError("schema cannot be nil")

    if not isinstance(schema, Mapping):
        raise SchemaError(f"schema must be an object, got {type(schema).__name__}")

    try:
        return CompiledSchema(schema)
    except JsonSchemaError as e:
        raise SchemaError(f"cannot create json schema: {e.message}") from e
    except (TypeError, ValueError) as e:
        raise SchemaError(f"cannot create json schema: {e}") from e


def validate_against_schema(schema: Optional[CompiledSchema], document: Any) -> None:
    """
    Validate a document, raising one error that lists every violation.

    Raises:
        SchemaError: If no compiled schema is given
        SchemaValidationError: If the document violates the schema
    """
    if schema is None:
        raise SchemaError("cannot validate against a nil schema")

    problems = schema.iter_problems(document)
    if problems:
        raise SchemaValidationError(problems)
