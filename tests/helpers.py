"""
Test helpers and factories.
"""

from typing import Any, Dict

from warden.models import (
    CelEvalConfig,
    EvalConfig,
    IngestConfig,
    RuleType,
    RuleTypeContext,
    RuleTypeDefinition,
)

API_URL = "https://api.github.test/"


def make_rule_type(
    name: str = "no-secrets",
    provider: str = "provider1",
    group: str | None = "acme",
    organization: str | None = None,
    **definition: Any,
) -> RuleType:
    """Build a rule type with a builtin ingester and a trivial cel evaluator."""
    fields: Dict[str, Any] = {
        "rule_schema": {
            "type": "object",
            "properties": {"enabled": {"type": "boolean"}},
        },
        "ingest": IngestConfig(type="builtin"),
        "eval": EvalConfig(type="cel", cel=CelEvalConfig(expression="profile.enabled == true")),
    }
    fields.update(definition)
    return RuleType(
        name=name,
        context=RuleTypeContext(provider=provider, organization=organization, group=group),
        guidance="Remove the secret from the repository.",
        definition=RuleTypeDefinition(**fields),
    )
