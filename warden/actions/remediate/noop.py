"""Fallback remediation for rule types that configure none."""

from typing import Any, Dict, Optional

from warden.actions.interfaces import Remediator
from warden.actions.models import (
    ActionCmd,
    ActionOpt,
    ActionOutcome,
    ActionResult,
    ActionType,
    EvalStatusParams,
)
from warden.models import Entity, Profile


class NoopRemediate(Remediator):
    """Always off, never available. Fallback handed out by new_remediate_action."""

    def __init__(self, action_type: ActionType = ActionType.REMEDIATE):
        self._action_type = action_type

    def parent_type(self) -> ActionType:
        return self._action_type

    def sub_type(self) -> str:
        return "noop"

    def get_on_off_state(self, profile: Profile) -> ActionOpt:
        return ActionOpt.OFF

    def _not_available(self) -> ActionResult:
        return ActionResult(
            outcome=ActionOutcome.NOT_AVAILABLE,
            message=f"{self.parent_type().value}: action not available",
        )

    async def do(
        self,
        cmd: ActionCmd,
        setting: ActionOpt,
        entity: Entity,
        eval_params: EvalStatusParams,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        return self._not_available()

    async def remediate(
        self,
        setting: ActionOpt,
        entity: Entity,
        policy: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        return self._not_available()
