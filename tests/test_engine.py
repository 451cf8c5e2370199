"""
Unit tests for the rule type engine: identity, validation, the remediation
decision and the ingest -> evaluate -> remediate pipeline.
"""

from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from warden.actions import ActionOpt, ActionOutcome, ActionResult
from warden.engine import (
    RuleMeta,
    RuleTypeEngine,
    RuleValidator,
    get_rules_from_profile_of_type,
    should_remediate,
)
from warden.engine.evaluators import CelEvaluator, Evaluator
from warden.engine.ingesters import IngestResult, Ingester, _get_nested_value
from warden.errors import (
    IngestError,
    ProviderError,
    RemediationError,
    RuleTypeError,
    SchemaError,
    SchemaValidationError,
)
from warden.models import (
    BuiltinIngestConfig,
    CelEvalConfig,
    EvalConfig,
    EvalOutcome,
    EvaluationResult,
    IngestConfig,
    Profile,
    RemediateConfig,
    RestDataSourceDefinition,
    RestRemediateConfig,
    Rule,
    RuleTypeContext,
)

from tests.helpers import make_rule_type


class StaticIngester(Ingester):
    def __init__(self, data=None, error=None):
        self.data = data if data is not None else {"found": True}
        self.error = error

    async def ingest(self, entity, params):
        if self.error is not None:
            raise self.error
        return IngestResult(object=self.data)


class StaticEvaluator(Evaluator):
    def __init__(self, result):
        self.result = result

    async def eval(self, policy, ingested):
        return self.result


def make_remediator(**kwargs):
    remediator = AsyncMock()
    remediator.remediate.return_value = ActionResult(outcome=ActionOutcome.SUCCESS)
    for key, value in kwargs.items():
        setattr(remediator.remediate, key, value)
    return remediator


class TestRuleMeta:
    """Test cases for rule type identity."""

    def test_group_scope(self):
        meta = RuleMeta(name="no-secrets", provider="provider1", group="acme")
        assert str(meta) == "provider1/group/acme/no-secrets"

    def test_organization_scope(self):
        meta = RuleMeta(name="no-secrets", provider="provider1", organization="acme-org")
        assert str(meta) == "provider1/org/acme-org/no-secrets"

    def test_both_scopes(self):
        with pytest.raises(RuleTypeError):
            RuleMeta(name="no-secrets", provider="provider1", organization="o", group="g")

    def test_no_scope(self):
        with pytest.raises(RuleTypeError):
            RuleMeta.from_context("no-secrets", RuleTypeContext(provider="provider1"))

    def test_engine_requires_scope(self):
        with pytest.raises(RuleTypeError):
            RuleTypeEngine(make_rule_type(group=None))


class TestRuleValidator:
    """Test cases for rule instance validation."""

    def test_rule_definition(self, rule_type):
        validator = RuleValidator(rule_type)
        validator.validate_rule_definition({"enabled": True})
        with pytest.raises(SchemaValidationError):
            validator.validate_rule_definition({"enabled": "yes"})

    def test_params_without_schema(self, rule_type):
        """Test rule types without a param schema accept any params."""
        RuleValidator(rule_type).validate_params({"anything": 1})

    def test_params_with_schema(self):
        rule_type = make_rule_type(param_schema={
            "type": "object",
            "properties": {"branch": {"type": "string"}},
            "required": ["branch"],
        })
        validator = RuleValidator(rule_type)
        validator.validate_params({"branch": "main"})
        with pytest.raises(SchemaValidationError):
            validator.validate_params({})
        with pytest.raises(SchemaError):
            validator.validate_params(None)

    def test_invalid_rule_schema(self):
        with pytest.raises(RuleTypeError):
            RuleValidator(make_rule_type(rule_schema={"type": 12}))


class TestShouldRemediate:
    """Test cases for the remediation decision."""

    @pytest.mark.parametrize("setting", [ActionOpt.ON, ActionOpt.DRY_RUN])
    @pytest.mark.parametrize("outcome,expected", [
        (EvalOutcome.PASS, False),
        (EvalOutcome.VIOLATION, True),
        (EvalOutcome.SKIPPED, False),
        (EvalOutcome.SKIPPED_SILENTLY, True),
    ])
    def test_enabled(self, setting, outcome, expected):
        assert should_remediate(setting, EvaluationResult(outcome=outcome)) is expected

    @pytest.mark.parametrize("outcome", list(EvalOutcome))
    def test_off(self, outcome):
        assert should_remediate(ActionOpt.OFF, EvaluationResult(outcome=outcome)) is False

    @pytest.mark.parametrize("outcome", list(EvalOutcome))
    def test_unknown(self, outcome):
        with pytest.raises(RemediationError):
            should_remediate(ActionOpt.UNKNOWN, EvaluationResult(outcome=outcome))


class TestRuleTypeEngine:
    """Test cases for RuleTypeEngine."""

    @pytest.fixture
    def engine(self, rule_type):
        return RuleTypeEngine(rule_type)

    def test_identity(self, engine):
        assert engine.get_id() == "provider1/group/acme/no-secrets"

    def test_no_remediation_configured(self, engine):
        assert engine.remediator is None

    def test_unsupported_ingest(self):
        with pytest.raises(RuleTypeError):
            RuleTypeEngine(make_rule_type(ingest=IngestConfig(type="git")))

    def test_unsupported_eval(self):
        with pytest.raises(RuleTypeError):
            RuleTypeEngine(make_rule_type(eval=EvalConfig(type="rego")))

    def test_invalid_expression(self):
        with pytest.raises(RuleTypeError):
            RuleTypeEngine(make_rule_type(eval=EvalConfig(type="cel", cel=CelEvalConfig(expression="a &&"))))

    @pytest.mark.asyncio
    async def test_skipped_does_not_remediate(self, engine, repository):
        """Test a skipped evaluation never reaches the remediator."""
        engine.ingester = StaticIngester()
        engine.evaluator = StaticEvaluator(EvaluationResult.skipped())
        engine.remediator = make_remediator()

        result = await engine.eval(repository, {"enabled": True}, {}, ActionOpt.ON)

        assert result.outcome == EvalOutcome.SKIPPED
        engine.remediator.remediate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_violation_remediates_once(self, engine, repository):
        engine.ingester = StaticIngester()
        engine.evaluator = StaticEvaluator(EvaluationResult.violation("secret found"))
        engine.remediator = make_remediator()

        result = await engine.eval(repository, {"enabled": True}, {}, ActionOpt.ON)

        assert result.outcome == EvalOutcome.VIOLATION
        engine.remediator.remediate.assert_awaited_once_with(ActionOpt.ON, repository, {"enabled": True}, {})

    @pytest.mark.asyncio
    async def test_pass_does_not_remediate(self, engine, repository):
        engine.ingester = StaticIngester()
        engine.evaluator = StaticEvaluator(EvaluationResult.passed())
        engine.remediator = make_remediator()

        result = await engine.eval(repository, {"enabled": True}, {}, ActionOpt.ON)

        assert result.is_pass
        engine.remediator.remediate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ingest_error(self, engine, repository):
        engine.ingester = StaticIngester(error=RuntimeError("rate limited"))
        engine.remediator = make_remediator()

        with pytest.raises(IngestError, match="rate limited"):
            await engine.eval(repository, {"enabled": True}, {}, ActionOpt.ON)

        engine.remediator.remediate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remediation_error_keeps_result(self, engine, repository):
        """Test a failing remediation is reported next to, not instead of, the result."""
        engine.ingester = StaticIngester()
        engine.evaluator = StaticEvaluator(EvaluationResult.violation("secret found"))
        engine.remediator = make_remediator(side_effect=ProviderError("forbidden", status_code=403))

        output = await engine.evaluate(repository, {"enabled": True}, {}, ActionOpt.ON)

        assert output.result.outcome == EvalOutcome.VIOLATION
        assert output.remediation is None
        assert "forbidden" in output.remediation_error

    @pytest.mark.asyncio
    async def test_failed_remediation_result(self, engine, repository):
        engine.ingester = StaticIngester()
        engine.evaluator = StaticEvaluator(EvaluationResult.violation("secret found"))
        engine.remediator = make_remediator(
            return_value=ActionResult(outcome=ActionOutcome.FAILED, message="cannot render remediation")
        )

        output = await engine.evaluate(repository, {"enabled": True}, {}, ActionOpt.DRY_RUN)

        assert output.result.outcome == EvalOutcome.VIOLATION
        assert output.remediation_error == "cannot render remediation"

    @pytest.mark.asyncio
    async def test_cel_runtime_error_is_a_violation(self, repository):
        """Test an expression failing at runtime still yields an outcome and a remediation decision."""
        engine = RuleTypeEngine(make_rule_type(
            eval=EvalConfig(type="cel", cel=CelEvalConfig(expression="ingested.missing_field == true")),
        ))
        engine.remediator = make_remediator()

        result = await engine.eval(repository, {"enabled": True}, {}, ActionOpt.ON)

        assert result.outcome == EvalOutcome.VIOLATION
        assert "missing_field" in result.message
        engine.remediator.remediate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_setting_keeps_result(self, engine, repository):
        engine.ingester = StaticIngester()
        engine.evaluator = StaticEvaluator(EvaluationResult.violation("secret found"))
        engine.remediator = make_remediator()

        output = await engine.evaluate(repository, {"enabled": True}, {}, ActionOpt.UNKNOWN)

        assert output.result.outcome == EvalOutcome.VIOLATION
        assert output.remediation_error is not None
        engine.remediator.remediate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_builtin_cel_pipeline(self, repository):
        """Test the real builtin ingester and cel evaluator together."""
        engine = RuleTypeEngine(make_rule_type(
            ingest=IngestConfig(type="builtin"),
            eval=EvalConfig(type="cel", cel=CelEvalConfig(expression="ingested.is_private == profile.private")),
        ))

        assert (await engine.eval(repository, {"private": False}, {}, ActionOpt.OFF)).is_pass
        result = await engine.eval(repository, {"private": True}, {}, ActionOpt.OFF)
        assert result.outcome == EvalOutcome.VIOLATION

    @pytest.mark.asyncio
    async def test_rest_remediation_dry_run(self, repository):
        """Test a violation with dry-run remediation produces a curl report."""
        engine = RuleTypeEngine(make_rule_type(
            eval=EvalConfig(type="cel", cel=CelEvalConfig(expression="ingested.is_private")),
            remediate=RemediateConfig(
                type="rest",
                rest=RestRemediateConfig(
                    endpoint="repos/{{ entity.owner }}/{{ entity.name }}",
                    body='{"private": true}',
                ),
            ),
        ))

        output = await engine.evaluate(repository, {}, {}, ActionOpt.DRY_RUN)

        assert output.result.outcome == EvalOutcome.VIOLATION
        assert output.remediation.outcome == ActionOutcome.SUCCESS
        assert "repos/acme/widgets" in output.remediation.report

    @pytest.mark.asyncio
    async def test_rest_ingest(self, repository):
        engine = RuleTypeEngine(make_rule_type(
            ingest=IngestConfig(
                type="rest",
                rest=RestDataSourceDefinition(
                    endpoint="https://api.example.test/repos/{owner}/{name}/branches/{branch}/protection",
                    parse="json",
                    input_schema={
                        "type": "object",
                        "properties": {"branch": {"type": "string"}},
                        "required": ["branch"],
                    },
                ),
            ),
            eval=EvalConfig(type="cel", cel=CelEvalConfig(expression="ingested.status_code == 200")),
        ))

        with respx.mock:
            route = respx.get("https://api.example.test/repos/acme/widgets/branches/main/protection").mock(
                return_value=httpx.Response(404, json={"message": "Branch not protected"})
            )
            result = await engine.eval(repository, {}, {"branch": "main"}, ActionOpt.OFF)

        assert route.called
        assert result.outcome == EvalOutcome.VIOLATION

    @pytest.mark.asyncio
    async def test_rest_ingest_invalid_params(self, repository):
        engine = RuleTypeEngine(make_rule_type(
            ingest=IngestConfig(
                type="rest",
                rest=RestDataSourceDefinition(
                    endpoint="https://api.example.test/repos/{owner}/{name}",
                    input_schema={"type": "object", "required": ["branch"]},
                ),
            ),
        ))

        with pytest.raises(IngestError):
            await engine.eval(repository, {"enabled": True}, {}, ActionOpt.OFF)


class TestCelEvaluator:
    """Test cases for the cel evaluator."""

    @pytest.mark.asyncio
    async def test_skip_if(self):
        evaluator = CelEvaluator(CelEvalConfig(expression="ingested.is_private", skip_if="ingested.is_archived"))

        result = await evaluator.eval({}, IngestResult(object={"is_private": False, "is_archived": True}))

        assert result.outcome == EvalOutcome.SKIPPED

    @pytest.mark.asyncio
    async def test_nothing_ingested(self):
        evaluator = CelEvaluator(CelEvalConfig(expression="ingested.is_private"))

        result = await evaluator.eval({}, IngestResult())

        assert result.outcome == EvalOutcome.SKIPPED_SILENTLY

    @pytest.mark.asyncio
    async def test_non_boolean(self):
        evaluator = CelEvaluator(CelEvalConfig(expression="ingested.name"))

        result = await evaluator.eval({}, IngestResult(object={"name": "widgets"}))

        assert result.outcome == EvalOutcome.VIOLATION
        assert "did not evaluate to a boolean" in result.message

    @pytest.mark.asyncio
    async def test_missing_field(self):
        evaluator = CelEvaluator(CelEvalConfig(expression="ingested.missing_field == true"))

        result = await evaluator.eval({}, IngestResult(object={"name": "widgets"}))

        assert result.outcome == EvalOutcome.VIOLATION
        assert "ingested.missing_field == true" in result.message


class TestIngesters:
    """Test cases for ingester helpers."""

    def test_get_nested_value(self):
        data = {"properties": {"language": {"primary": "go"}}}
        assert _get_nested_value(data, "properties.language.primary") == "go"
        assert _get_nested_value(data, "properties.missing.primary") is None

    @pytest.mark.asyncio
    async def test_builtin_path(self, repository):
        engine = RuleTypeEngine(make_rule_type(
            ingest=IngestConfig(type="builtin", builtin=BuiltinIngestConfig(path="default_branch")),
        ))

        ingested = await engine.ingester.ingest(repository, {})

        assert ingested.object == "main"


class TestGetRulesFromProfile:
    """Test cases for get_rules_from_profile_of_type."""

    def test_filters_by_type_and_entity(self, rule_type):
        profile = Profile(
            name="baseline",
            repository=[
                Rule(type="no-secrets", name="first"),
                Rule(type="branch-protection"),
                Rule(type="no-secrets", name="second"),
            ],
            pull_request=[Rule(type="no-secrets", name="pr")],
        )

        rules = get_rules_from_profile_of_type(profile, rule_type)

        assert [r.name for r in rules] == ["first", "second"]

    def test_unknown_entity(self):
        with pytest.raises(RuleTypeError):
            get_rules_from_profile_of_type(Profile(name="p"), make_rule_type(in_entity="planet"))
