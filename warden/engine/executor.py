"""
Evaluation workflow for one (entity, rule, profile) triple.

1. Check the profile's selectors: entities out of scope are not evaluated
2. Validate the rule instance against the rule type schemas
3. Run the rule type engine (ingest, evaluate, maybe remediate)
4. Drive the alert action from the evaluation outcome
5. Hand the updated alert metadata back for the caller to persist
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel

from warden.actions import (
    Action,
    ActionCmd,
    ActionOpt,
    ActionOutcome,
    ActionResult,
    EvalStatusParams,
)
from warden.engine.rule_types import RuleEvalOutput, RuleTypeEngine
from warden.models import Entity, EvalOutcome, EvaluationResult, Profile, Rule
from warden.selectors import Selection

logger = logging.getLogger(__name__)


class EvaluationReport(BaseModel):
    """Everything one evaluation pass produced."""
    selected: bool = True
    selection_reason: str = ""
    evaluation: Optional[EvaluationResult] = None
    remediation: Optional[ActionResult] = None
    remediation_error: Optional[str] = None
    alert: Optional[ActionResult] = None
    alert_metadata: Optional[Dict[str, Any]] = None


def alert_command_for(result: EvaluationResult) -> ActionCmd:
    """Violations open alerts, passes close them, skips leave them alone."""
    if result.outcome == EvalOutcome.VIOLATION:
        return ActionCmd.TURN_ON
    if result.outcome == EvalOutcome.PASS:
        return ActionCmd.TURN_OFF
    return ActionCmd.DO_NOTHING


def _next_metadata(prior: Optional[Dict[str, Any]], alert: Optional[ActionResult]) -> Optional[Dict[str, Any]]:
    if alert is None:
        return prior
    if alert.outcome == ActionOutcome.TURNED_OFF:
        return None
    if alert.outcome == ActionOutcome.SUCCESS and alert.metadata is not None:
        return alert.metadata
    return prior


async def evaluate_entity(
    engine: RuleTypeEngine,
    alert_action: Action,
    profile: Profile,
    rule: Rule,
    entity: Entity,
    selection: Optional[Selection] = None,
    alert_metadata: Optional[Dict[str, Any]] = None,
) -> EvaluationReport:
    """
    Evaluate a rule of a profile against an entity and act on the outcome.

    Args:
        engine: Engine of the rule type the rule instantiates
        alert_action: Alert action of the rule type (noop if none)
        profile: Profile the rule belongs to
        rule: Rule instance (policy values and params)
        entity: Entity to evaluate
        selection: Compiled profile selectors for the entity type, if any
        alert_metadata: Alert metadata stored after the previous evaluation

    Returns:
        EvaluationReport; its alert_metadata is what the caller should store
    """
    if selection is not None:
        selected, reason = selection.select(entity)
        if not selected:
            logger.info(f"Entity not selected for rule {engine.get_id()}: {reason}")
            return EvaluationReport(selected=False, selection_reason=reason, alert_metadata=alert_metadata)

    validator = engine.get_rule_instance_validator()
    validator.validate_rule_definition(rule.definition)
    validator.validate_params(rule.params)

    output: RuleEvalOutput = await engine.evaluate(
        entity,
        rule.definition,
        rule.params,
        ActionOpt.from_string(profile.remediate),
    )
    result = output.result

    alert_result = None
    alert_setting = alert_action.get_on_off_state(profile)
    if alert_setting != ActionOpt.OFF:
        eval_params = EvalStatusParams(
            profile=profile,
            rule_type=engine.rule_type,
            evaluation=result,
            policy=rule.definition,
            params=rule.params,
        )
        alert_result = await alert_action.do(
            alert_command_for(result),
            alert_setting,
            entity,
            eval_params,
            alert_metadata,
        )
        logger.info(f"Alert for rule {engine.get_id()}: {alert_result.outcome.value}")

    return EvaluationReport(
        evaluation=result,
        remediation=output.remediation,
        remediation_error=output.remediation_error,
        alert=alert_result,
        alert_metadata=_next_metadata(alert_metadata, alert_result),
    )
