"""
Exception hierarchy for warden.

Evaluation and action outcomes (pass/skip/turned-off/...) are not exceptions,
see warden.models. These are for genuine failures.
"""

from typing import Any, Dict, List, Optional


class WardenError(Exception):
    """Base exception for the engine."""

    code = "WARDEN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class SchemaError(WardenError):
    """A schema could not be compiled or is missing where one is required."""

    code = "SCHEMA_ERROR"


class SchemaValidationError(WardenError):
    """A document violates a schema. Carries every violated constraint."""

    code = "SCHEMA_VALIDATION_ERROR"

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        message = "invalid json schema: " + "\n".join(self.problems).strip()
        super().__init__(message, {"problems": self.problems})


class SchemaUpdateError(WardenError):
    """A schema replacement is not a compatible evolution of the current one."""

    code = "SCHEMA_UPDATE_ERROR"


class RuleTypeError(WardenError):
    """A rule type definition cannot be turned into an engine."""

    code = "RULE_TYPE_ERROR"


class IngestError(WardenError):
    code = "INGEST_ERROR"


class EvaluationError(WardenError):
    """The evaluator itself broke (not a rule violation)."""

    code = "EVALUATION_ERROR"


class RemediationError(WardenError):
    code = "REMEDIATION_ERROR"


class NoRemediationConfigured(WardenError):
    """The rule type declares no remediation."""

    code = "NO_REMEDIATION"


class SelectorCompileError(WardenError):
    code = "SELECTOR_COMPILE_ERROR"


class SelectorEvaluationError(WardenError):
    code = "SELECTOR_EVALUATION_ERROR"


class ResultUnknownError(SelectorEvaluationError):
    """A selector depends on entity attributes that are not known yet."""

    code = "SELECTOR_RESULT_UNKNOWN"

    def __init__(self, paths: List[str]):
        self.paths = list(paths)
        super().__init__(f"selection result unknown, missing: {', '.join(self.paths)}", {"paths": self.paths})


class TemplateExpansionError(WardenError):
    code = "TEMPLATE_EXPANSION_ERROR"


class RestCallError(WardenError):
    code = "REST_CALL_ERROR"


class ProviderError(WardenError):
    """A provider API call failed."""

    code = "PROVIDER_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, {"status_code": status_code} if status_code else None)
