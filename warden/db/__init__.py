"""Persistence boundary for rule types."""

from warden.db.models import Base, RuleTypeRow
from warden.db.convert import (
    rule_definition_from_row,
    rule_definition_to_json,
    rule_type_from_row,
    rule_type_to_row,
)

__all__ = [
    "Base",
    "RuleTypeRow",
    "rule_definition_from_row",
    "rule_definition_to_json",
    "rule_type_from_row",
    "rule_type_to_row",
]
