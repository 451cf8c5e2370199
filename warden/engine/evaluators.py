"""
Rule evaluators - judge ingested evidence against the profile's policy.

The cel evaluator runs a boolean CEL expression with two variables:
`ingested` (the evidence) and `profile` (the rule's policy values). An
optional `skip_if` expression marks the evaluation as skipped when true, e.g.
for archived repositories.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import celpy
from celpy import celtypes
from celpy.adapter import json_to_cel
from celpy.celparser import CELParseError
from celpy.evaluation import CELEvalError

from warden.engine.ingesters import IngestResult
from warden.errors import EvaluationError, RuleTypeError
from warden.models import CelEvalConfig, EvaluationResult, RuleType

logger = logging.getLogger(__name__)


class Evaluator(ABC):
    @abstractmethod
    async def eval(self, policy: Dict[str, Any], ingested: IngestResult) -> EvaluationResult:
        ...


class CelEvaluator(Evaluator):
    """Evaluate a CEL expression over the evidence and the policy."""

    def __init__(self, config: Optional[CelEvalConfig]):
        if config is None:
            raise RuleTypeError("cel evaluator requires a cel configuration")

        env = celpy.Environment()
        self._expression = config.expression
        self._program = self._compile(env, config.expression)
        self._skip_program = self._compile(env, config.skip_if) if config.skip_if else None

    @staticmethod
    def _compile(env: celpy.Environment, source: str) -> Any:
        try:
            return env.program(env.compile(source))
        except CELParseError as e:
            raise RuleTypeError(f"cannot compile expression '{source}': {e}") from e

    @staticmethod
    def _run(program: Any, activation: Dict[str, Any], source: str) -> bool:
        try:
            result = program.evaluate(activation)
        except CELEvalError as e:
            raise EvaluationError(f"error evaluating '{source}': {e}") from e
        if isinstance(result, CELEvalError):
            raise EvaluationError(f"error evaluating '{source}': {result}")
        if not isinstance(result, (celtypes.BoolType, bool)):
            raise EvaluationError(f"expression '{source}' did not evaluate to a boolean")
        return bool(result)

    async def eval(self, policy: Dict[str, Any], ingested: IngestResult) -> EvaluationResult:
        """
        Judge the evidence.

        Expressions that fail at runtime (missing fields, non-boolean results)
        are violations carrying the error message.
        """
        if ingested is None or ingested.object is None:
            return EvaluationResult.skipped_silently("no data ingested")

        activation = {
            "ingested": json_to_cel(ingested.object),
            "profile": json_to_cel(policy or {}),
        }

        try:
            if self._skip_program is not None and self._run(self._skip_program, activation, "skip_if"):
                return EvaluationResult.skipped("evaluation skipped by skip_if condition")

            if self._run(self._program, activation, self._expression):
                return EvaluationResult.passed()
        except EvaluationError as e:
            logger.warning(f"CEL evaluation error: {e}")
            return EvaluationResult.violation(str(e))

        return EvaluationResult.violation(f"evaluation failed: {self._expression}")


def new_rule_evaluator(rule_type: RuleType) -> Evaluator:
    """Build the evaluator a rule type definition asks for."""
    ev = rule_type.definition.eval

    if ev.type == "cel":
        return CelEvaluator(ev.cel)

    raise RuleTypeError(f"unsupported evaluator type: {ev.type}")
