"""
REST remediation.

Fixes a violation by issuing a templated API call against the provider, e.g.
PATCHing repository settings. Endpoint and body are Jinja templates rendered
with `entity` (entity attributes), `profile` (the rule's policy values) and
`params` (the rule parameters).
"""

import logging
from typing import Any, Dict, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

from warden.actions.interfaces import Remediator
from warden.actions.models import (
    ActionCmd,
    ActionOpt,
    ActionOutcome,
    ActionResult,
    ActionType,
    EvalStatusParams,
)
from warden.errors import ProviderError, RuleTypeError
from warden.models import Entity, Profile, RestRemediateConfig
from warden.providers.github import GitHubClient, generate_curl_command

logger = logging.getLogger(__name__)

REMEDIATE_TYPE = "rest"


class RestRemediator(Remediator):
    """Remediation through a single provider REST call."""

    def __init__(self, action_type: ActionType, config: Optional[RestRemediateConfig], client: GitHubClient):
        if config is None:
            raise RuleTypeError("rest remediation requires a rest configuration")

        env = Environment(undefined=StrictUndefined, autoescape=False)
        try:
            self._endpoint_tmpl = env.from_string(config.endpoint)
            self._body_tmpl = env.from_string(config.body) if config.body else None
        except TemplateError as e:
            raise RuleTypeError(f"cannot parse remediation template: {e}") from e

        self._action_type = action_type
        self._method = config.method.upper()
        self._client = client

    def parent_type(self) -> ActionType:
        return self._action_type

    def sub_type(self) -> str:
        return REMEDIATE_TYPE

    def get_on_off_state(self, profile: Profile) -> ActionOpt:
        return ActionOpt.from_string(profile.remediate)

    async def do(
        self,
        cmd: ActionCmd,
        setting: ActionOpt,
        entity: Entity,
        eval_params: EvalStatusParams,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        if setting in (ActionOpt.OFF, ActionOpt.UNKNOWN):
            return ActionResult(
                outcome=ActionOutcome.FAILED,
                message=f"{self.parent_type().value}: action not performed, setting is {setting.value}",
            )
        if cmd != ActionCmd.TURN_ON:
            # a remediation cannot be undone
            return ActionResult(outcome=ActionOutcome.SKIPPED, message="nothing to do")

        return await self._apply(setting, entity, eval_params.policy, eval_params.params)

    async def remediate(
        self,
        setting: ActionOpt,
        entity: Entity,
        policy: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        if setting in (ActionOpt.OFF, ActionOpt.UNKNOWN):
            return ActionResult(
                outcome=ActionOutcome.FAILED,
                message=f"{self.parent_type().value}: action not performed, setting is {setting.value}",
            )
        return await self._apply(setting, entity, policy, params or {})

    async def _apply(
        self,
        setting: ActionOpt,
        entity: Entity,
        policy: Dict[str, Any],
        params: Dict[str, Any],
    ) -> ActionResult:
        context = {"entity": entity.to_selector_dict(), "profile": policy, "params": params}
        try:
            endpoint = self._endpoint_tmpl.render(**context)
            body = self._body_tmpl.render(**context) if self._body_tmpl else ""
        except (TemplateError, TypeError, ValueError) as e:
            return ActionResult(outcome=ActionOutcome.FAILED, message=f"cannot render remediation: {e}")

        if setting == ActionOpt.DRY_RUN:
            curl_cmd = generate_curl_command(self._method, self._client.get_base_url(), endpoint, body)
            logger.info(f"Run the following curl command to remediate:\n{curl_cmd}")
            return ActionResult(outcome=ActionOutcome.SUCCESS, report=curl_cmd)

        try:
            response = await self._client.do_request(self._method, endpoint, body or None)
        except ProviderError as e:
            logger.error(f"Remediation call {self._method} {endpoint} failed: {e}")
            return ActionResult(outcome=ActionOutcome.FAILED, message=f"error performing remediation: {e}")

        logger.info(f"Remediation {self._method} {endpoint} returned {response.status_code}")
        return ActionResult(outcome=ActionOutcome.SUCCESS)
