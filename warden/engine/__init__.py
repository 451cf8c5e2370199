"""Rule type engine - ingest, evaluate and remediate one rule type."""

from warden.engine.rule_types import (
    RuleEvalOutput,
    RuleMeta,
    RuleTypeEngine,
    RuleValidator,
    get_rules_from_profile_of_type,
    should_remediate,
)
from warden.engine.executor import EvaluationReport, alert_command_for, evaluate_entity

__all__ = [
    "EvaluationReport",
    "RuleEvalOutput",
    "RuleMeta",
    "RuleTypeEngine",
    "RuleValidator",
    "alert_command_for",
    "evaluate_entity",
    "get_rules_from_profile_of_type",
    "should_remediate",
]
