"""Schema validation for rule definitions, rule parameters and data source inputs."""

from warden.schemas.validator import CompiledSchema, compile_schema, validate_against_schema
from warden.schemas.update import validate_schema_update

__all__ = [
    "CompiledSchema",
    "compile_schema",
    "validate_against_schema",
    "validate_schema_update",
]
