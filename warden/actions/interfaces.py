"""Capability set shared by alert and remediation actions."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from warden.actions.models import ActionCmd, ActionOpt, ActionResult, ActionType, EvalStatusParams
from warden.models import Entity, Profile


class Action(ABC):
    """
    An alert or remediation variant.

    do() is the single side-effecting entry point. Metadata is passed in and
    returned by value; persisting it is the caller's job.
    """

    @abstractmethod
    def parent_type(self) -> ActionType:
        ...

    @abstractmethod
    def sub_type(self) -> str:
        ...

    @abstractmethod
    def get_on_off_state(self, profile: Profile) -> ActionOpt:
        ...

    @abstractmethod
    async def do(
        self,
        cmd: ActionCmd,
        setting: ActionOpt,
        entity: Entity,
        eval_params: EvalStatusParams,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        ...


class Remediator(Action):
    """An action that can also be driven directly by the rule type engine."""

    @abstractmethod
    async def remediate(
        self,
        setting: ActionOpt,
        entity: Entity,
        policy: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        ...
