"""Conversions between stored rule type rows and rule type models."""

import uuid

from pydantic import ValidationError

from warden.db.models import RuleTypeRow
from warden.errors import RuleTypeError
from warden.models import RuleType, RuleTypeContext, RuleTypeDefinition


def rule_definition_to_json(definition: RuleTypeDefinition) -> str:
    return definition.model_dump_json(exclude_none=True)


def rule_definition_from_row(row: RuleTypeRow) -> RuleTypeDefinition:
    """Deserialize the definition blob of a stored rule type."""
    try:
        return RuleTypeDefinition.model_validate_json(row.definition)
    except ValidationError as e:
        raise RuleTypeError(f"cannot unmarshal rule type definition: {e}") from e


def rule_type_from_row(row: RuleTypeRow) -> RuleType:
    """Build the rule type model of a stored row."""
    definition = rule_definition_from_row(row)
    return RuleType(
        id=str(row.id) if row.id else None,
        name=row.name,
        context=RuleTypeContext(
            provider=row.provider,
            organization=row.organization,
            group=row.project,
        ),
        description=row.description or "",
        guidance=row.guidance or "",
        definition=definition,
    )


def rule_type_to_row(rule_type: RuleType) -> RuleTypeRow:
    """Serialize a rule type into a row ready to be added to a session."""
    return RuleTypeRow(
        id=rule_type.id or str(uuid.uuid4()),
        name=rule_type.name,
        provider=rule_type.context.provider,
        organization=rule_type.context.organization,
        project=rule_type.context.group,
        description=rule_type.description,
        guidance=rule_type.guidance,
        definition=rule_definition_to_json(rule_type.definition),
    )
