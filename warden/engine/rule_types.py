"""
Rule type engine.

Composes the ingester, evaluator and optional remediator of one rule type and
runs the ingest -> evaluate -> remediate pipeline for an entity.

Everything is resolved once at construction; an engine is immutable afterwards
and can serve any number of concurrent evaluations.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from warden.actions import ActionOpt, ActionResult, Remediator, new_rule_remediator
from warden.actions.models import ActionOutcome
from warden.engine.evaluators import Evaluator, new_rule_evaluator
from warden.engine.ingesters import Ingester, new_rule_data_ingest
from warden.errors import (
    IngestError,
    NoRemediationConfigured,
    RemediationError,
    RuleTypeError,
    SchemaError,
)
from warden.models import (
    Entity,
    EntityType,
    EvalOutcome,
    EvaluationResult,
    Profile,
    Rule,
    RuleType,
    RuleTypeContext,
)
from warden.providers.github import GitHubClient
from warden.schemas import compile_schema, validate_against_schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleMeta:
    """Identity of a rule type. Exactly one of organization or group is set."""
    name: str
    provider: str
    organization: Optional[str] = None
    group: Optional[str] = None

    def __post_init__(self):
        if bool(self.organization) == bool(self.group):
            raise RuleTypeError("rule type context must have exactly one of organization or group")

    @classmethod
    def from_context(cls, name: str, context: RuleTypeContext) -> "RuleMeta":
        return cls(
            name=name,
            provider=context.provider,
            organization=context.organization or None,
            group=context.group or None,
        )

    def __str__(self) -> str:
        if self.group:
            return f"{self.provider}/group/{self.group}/{self.name}"
        return f"{self.provider}/org/{self.organization}/{self.name}"


class RuleValidator:
    """Validates rule instances (policy values and params) of a rule type."""

    def __init__(self, rule_type: RuleType):
        try:
            self._schema = compile_schema(rule_type.definition.rule_schema)
        except SchemaError as e:
            raise RuleTypeError(f"cannot create json schema: {e}") from e

        try:
            self._param_schema = compile_schema(rule_type.definition.param_schema, allow_none=True)
        except SchemaError as e:
            raise RuleTypeError(f"cannot create json schema for params: {e}") from e

    def validate_rule_definition(self, policy: Dict[str, Any]) -> None:
        """Validate the policy values of a rule instance."""
        validate_against_schema(self._schema, policy)

    def validate_params(self, params: Optional[Dict[str, Any]]) -> None:
        """Validate rule parameters. Rule types without a param schema accept anything."""
        if self._param_schema is None:
            return
        if params is None:
            raise SchemaError("params cannot be nil")
        validate_against_schema(self._param_schema, params)


def should_remediate(setting: ActionOpt, result: EvaluationResult) -> bool:
    """
    Decide whether a remediation runs for an evaluation outcome.

    OFF never remediates and UNKNOWN is a policy error. ON and DRY_RUN
    remediate unless the evaluation was skipped. A skipped-silently
    evaluation still remediates. A passing evaluation never does.

    Raises:
        RemediationError: If the setting is UNKNOWN
    """
    if setting == ActionOpt.OFF:
        return False
    if setting == ActionOpt.UNKNOWN:
        raise RemediationError("unknown remediation action, check your policy definition")

    run = result.outcome != EvalOutcome.SKIPPED
    if result.is_pass:
        run = False
    return run


class RuleEvalOutput(BaseModel):
    """Evaluation result plus what happened on the remediation side."""
    result: EvaluationResult
    remediation: Optional[ActionResult] = None
    remediation_error: Optional[str] = None


class RuleTypeEngine:
    """Evaluates one rule type against entities."""

    def __init__(self, rule_type: RuleType, client: Optional[GitHubClient] = None):
        self.meta = RuleMeta.from_context(rule_type.name, rule_type.context)
        self.validator = RuleValidator(rule_type)
        self.ingester: Ingester = new_rule_data_ingest(rule_type)
        self.evaluator: Evaluator = new_rule_evaluator(rule_type)

        self.remediator: Optional[Remediator]
        try:
            self.remediator = new_rule_remediator(rule_type, client)
        except NoRemediationConfigured:
            # not having a remediation is fine
            self.remediator = None

        self.rule_type = rule_type

    def get_id(self) -> str:
        """Serializable identifier of the rule type."""
        return str(self.meta)

    def get_rule_instance_validator(self) -> RuleValidator:
        return self.validator

    async def eval(
        self,
        entity: Entity,
        policy: Dict[str, Any],
        params: Dict[str, Any],
        remediate_action: ActionOpt,
    ) -> EvaluationResult:
        """
        Run the rule type against an entity.

        Args:
            entity: Entity to evaluate
            policy: Rule values from the profile
            params: Rule parameters
            remediate_action: The profile's remediation setting

        Returns:
            The evaluation result. Remediation problems never replace it.

        Raises:
            IngestError: If evidence could not be ingested
        """
        output = await self.evaluate(entity, policy, params, remediate_action)
        return output.result

    async def evaluate(
        self,
        entity: Entity,
        policy: Dict[str, Any],
        params: Dict[str, Any],
        remediate_action: ActionOpt,
    ) -> RuleEvalOutput:
        """Like eval(), also reporting the remediation outcome."""
        try:
            ingested = await self.ingester.ingest(entity, params or {})
        except Exception as e:
            raise IngestError(f"error ingesting data: {e}") from e

        result = await self.evaluator.eval(policy, ingested)
        logger.info(f"Rule {self.get_id()} evaluated to {result.outcome.value}")

        output = RuleEvalOutput(result=result)
        try:
            output.remediation = await self._try_remediate(entity, policy, params, remediate_action, result)
        except Exception as e:
            logger.error(f"Remediation error for rule {self.get_id()}: {e}", exc_info=True)
            output.remediation_error = str(e)
            return output

        if output.remediation is not None and output.remediation.outcome == ActionOutcome.FAILED:
            logger.error(f"Remediation error for rule {self.get_id()}: {output.remediation.message}")
            output.remediation_error = output.remediation.message

        return output

    async def _try_remediate(
        self,
        entity: Entity,
        policy: Dict[str, Any],
        params: Dict[str, Any],
        remediate_action: ActionOpt,
        result: EvaluationResult,
    ) -> Optional[ActionResult]:
        if self.remediator is None:
            return None
        if not should_remediate(remediate_action, result):
            return None
        return await self.remediator.remediate(remediate_action, entity, policy, params)


def get_rules_from_profile_of_type(profile: Profile, rule_type: RuleType) -> List[Rule]:
    """Rules of a profile that instantiate the given rule type."""
    entity_type = EntityType.from_string(rule_type.definition.in_entity)
    if entity_type is None:
        raise RuleTypeError(f"unknown entity type: {rule_type.definition.in_entity}")
    return [r for r in profile.rules_for(entity_type) if r.type == rule_type.name]
