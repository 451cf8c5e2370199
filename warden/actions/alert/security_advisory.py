"""
Security advisory alerts.

When a rule fails for a repository, open a (draft) repository security
advisory describing the failure; when the rule passes again, close it. The
advisory identifier is kept in the action metadata between evaluations.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from jinja2 import Environment, StrictUndefined, TemplateError
from pydantic import BaseModel

from warden.actions.interfaces import Action
from warden.actions.models import (
    ActionCmd,
    ActionOpt,
    ActionOutcome,
    ActionResult,
    ActionType,
    EvalStatusParams,
)
from warden.errors import ProviderError
from warden.models import Entity, Profile, SecurityAdvisoryConfig, repo_coordinates
from warden.providers.github import AdvisoryVulnerability, GitHubClient, generate_curl_command

logger = logging.getLogger(__name__)

ALERT_TYPE = "security_advisory"

SUMMARY_TEMPLATE = "warden: profile {{ profile }} failed with rule {{ rule }}"

DESCRIPTION_NO_REMEDIATE_TEMPLATE = """
**Description:**

warden found a potential security problem in {{ repository }}.

The {{ rule }} rule type marks this as a {{ severity }} severity issue.

**Details:**

- Profile: {{ profile }}
- Rule: {{ rule }}
- Repository: {{ repository }}
- Severity: {{ severity }}

**Remediation:**

- Turn on remediation in the {{ profile }} profile to let warden fix issues like this automatically (only for rule types that define a remediation).
- Otherwise follow the guidance below to fix it by hand.

**Guidance:**

{{ guidance }}

**Notes:**

This advisory was opened because alerting is on in {{ profile }}. It is closed automatically once rule {{ rule }} passes again.
"""

DESCRIPTION_TEMPLATE = """
**Description:**

warden found a potential security problem in {{ repository }}.

The {{ rule }} rule type marks this as a {{ severity }} severity issue.

**Details:**

- Profile: {{ profile }}
- Rule: {{ rule }}
- Repository: {{ repository }}
- Severity: {{ severity }}

**Remediation:**

- Remediation is on in this profile, so warden may already have tried to fix this. Check for pending remediations, such as open pull requests waiting for review.
- If the automatic fix did not happen or you prefer to do it yourself, follow the guidance below.

**Guidance:**

{{ guidance }}

**Notes:**

This advisory was opened because alerting is on in {{ profile }}. It is closed automatically once rule {{ rule }} passes again.
"""


class TemplateParams(BaseModel):
    """Values available to the summary and description templates."""
    profile: str
    rule: str
    repository: str
    severity: str
    guidance: str


class AdvisoryParams(BaseModel):
    owner: str
    repo: str
    template: TemplateParams
    summary: str
    description: str
    vulnerabilities: List[AdvisoryVulnerability]
    ghsa_id: Optional[str] = None  # from prior metadata


class SecurityAdvisoryAlert(Action):
    """Alert action backed by GitHub repository security advisories."""

    def __init__(
        self,
        action_type: ActionType,
        config: Optional[SecurityAdvisoryConfig],
        client: GitHubClient,
    ):
        if not action_type:
            raise ValueError("action type cannot be empty")

        env = Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=True)
        self._summary_tmpl = env.from_string(SUMMARY_TEMPLATE)
        self._description_tmpl = env.from_string(DESCRIPTION_TEMPLATE)
        self._description_no_rem_tmpl = env.from_string(DESCRIPTION_NO_REMEDIATE_TEMPLATE)

        self._action_type = action_type
        self._config = config or SecurityAdvisoryConfig()
        self._client = client

    def parent_type(self) -> ActionType:
        return self._action_type

    def sub_type(self) -> str:
        return ALERT_TYPE

    def get_on_off_state(self, profile: Profile) -> ActionOpt:
        return ActionOpt.from_string(profile.alert)

    async def do(
        self,
        cmd: ActionCmd,
        setting: ActionOpt,
        entity: Entity,
        eval_params: EvalStatusParams,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        """
        Open or close a security advisory.

        Args:
            cmd: TURN_ON opens, TURN_OFF closes, DO_NOTHING skips
            setting: The profile's alert setting (ON, DRY_RUN, ...)
            entity: Repository, pull request or artifact the rule ran against
            eval_params: Profile, rule type and evaluation outcome
            metadata: Metadata returned by a previous TURN_ON, if any

        Returns:
            ActionResult; SUCCESS on open carries {"ghsa_id": ...} as metadata
        """
        logger.info(f"Processing {ALERT_TYPE} alert: cmd={cmd.value} setting={setting.value}")

        if setting in (ActionOpt.OFF, ActionOpt.UNKNOWN):
            return ActionResult(
                outcome=ActionOutcome.FAILED,
                message=f"{self.parent_type().value}: action not performed, setting is {setting.value}",
            )

        try:
            params = self._get_params(entity, eval_params, metadata)
        except (TypeError, TemplateError) as e:
            return ActionResult(outcome=ActionOutcome.FAILED, message=f"error extracting details: {e}")

        if setting == ActionOpt.ON:
            return await self._run(params, cmd)
        return self._run_dry(params, cmd)

    async def _run(self, params: AdvisoryParams, cmd: ActionCmd) -> ActionResult:
        if cmd == ActionCmd.TURN_ON:
            try:
                ghsa_id = await self._client.create_security_advisory(
                    params.owner,
                    params.repo,
                    params.template.severity,
                    params.summary,
                    params.description,
                    params.vulnerabilities,
                )
            except ProviderError as e:
                logger.error(f"Error creating security advisory: {e}")
                return ActionResult(outcome=ActionOutcome.FAILED, message=f"error creating security advisory: {e}")

            logger.info(f"Opened security advisory {ghsa_id} for {params.template.repository}")
            return ActionResult(outcome=ActionOutcome.SUCCESS, metadata={"ghsa_id": ghsa_id})

        if cmd == ActionCmd.TURN_OFF:
            if not params.ghsa_id:
                return ActionResult(
                    outcome=ActionOutcome.SKIPPED,
                    message="cannot close security advisory without a GHSA ID",
                )
            try:
                await self._client.close_security_advisory(params.owner, params.repo, params.ghsa_id)
            except ProviderError as e:
                logger.error(f"Error closing security advisory {params.ghsa_id}: {e}")
                return ActionResult(outcome=ActionOutcome.FAILED, message=f"error closing security advisory: {e}")

            logger.info(f"Closed security advisory {params.ghsa_id}")
            return ActionResult(
                outcome=ActionOutcome.TURNED_OFF,
                message=f"{self.parent_type().value}: security advisory {params.ghsa_id} closed",
            )

        return ActionResult(outcome=ActionOutcome.SKIPPED, message="nothing to do")

    def _run_dry(self, params: AdvisoryParams, cmd: ActionCmd) -> ActionResult:
        base_url = self._client.get_base_url()

        if cmd == ActionCmd.TURN_ON:
            endpoint = f"repos/{params.owner}/{params.repo}/security-advisories"
            body = json.dumps({
                "summary": params.summary,
                "severity": params.template.severity,
                "description": params.description,
                "vulnerabilities": [v.to_api() for v in params.vulnerabilities],
            })
            curl_cmd = generate_curl_command("POST", base_url, endpoint, body)
            logger.info(f"Run the following curl command to open a security advisory:\n{curl_cmd}")
            return ActionResult(outcome=ActionOutcome.SUCCESS, report=curl_cmd)

        if cmd == ActionCmd.TURN_OFF:
            if not params.ghsa_id:
                return ActionResult(
                    outcome=ActionOutcome.SKIPPED,
                    message="cannot close security advisory without a GHSA ID",
                )
            endpoint = f"repos/{params.owner}/{params.repo}/security-advisories/{params.ghsa_id}"
            curl_cmd = generate_curl_command("PATCH", base_url, endpoint, '{"state": "closed"}')
            logger.info(f"Run the following curl command to close the security advisory:\n{curl_cmd}")
            # nothing was closed, so the metadata must be kept
            return ActionResult(outcome=ActionOutcome.SKIPPED, message="dry run", report=curl_cmd)

        return ActionResult(outcome=ActionOutcome.SKIPPED, message="nothing to do")

    def _get_params(
        self,
        entity: Entity,
        eval_params: EvalStatusParams,
        metadata: Optional[Dict[str, Any]],
    ) -> AdvisoryParams:
        owner, repo = repo_coordinates(entity)
        repository = f"{owner}/{repo}"

        ghsa_id = None
        if metadata is not None:
            value = metadata.get("ghsa_id") if isinstance(metadata, dict) else None
            if isinstance(value, str) and value:
                ghsa_id = value
            else:
                # nothing usable saved, not an error
                logger.debug(f"Ignoring alert metadata without ghsa_id: {metadata!r}")

        template = TemplateParams(
            profile=eval_params.profile.name,
            rule=eval_params.rule_type.name,
            repository=repository,
            severity=self._config.severity,
            guidance=eval_params.rule_type.guidance,
        )
        values = template.model_dump()

        if ActionOpt.from_string(eval_params.profile.remediate) == ActionOpt.ON:
            description = self._description_tmpl.render(**values)
        else:
            description = self._description_no_rem_tmpl.render(**values)

        return AdvisoryParams(
            owner=owner,
            repo=repo,
            template=template,
            summary=self._summary_tmpl.render(**values),
            description=description,
            vulnerabilities=[AdvisoryVulnerability(package_name=repository)],
            ghsa_id=ghsa_id,
        )
