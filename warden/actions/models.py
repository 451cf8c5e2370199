"""Data models for the action framework."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from warden.models import EvaluationResult, Profile, RuleType


class ActionType(str, Enum):
    """Action families."""
    ALERT = "alert"
    REMEDIATE = "remediate"


class ActionOpt(str, Enum):
    """Profile setting for an action family."""
    ON = "on"
    OFF = "off"
    DRY_RUN = "dry_run"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "ActionOpt":
        """Parse a profile setting. Anything unrecognized is UNKNOWN, never OFF."""
        mapping = {
            "on": cls.ON,
            "off": cls.OFF,
            "dry_run": cls.DRY_RUN,
        }
        if value is None:
            return cls.UNKNOWN
        return mapping.get(value, cls.UNKNOWN)


class ActionCmd(str, Enum):
    """What the action is asked to do to the external system."""
    TURN_ON = "turn_on"
    TURN_OFF = "turn_off"
    DO_NOTHING = "do_nothing"


class ActionOutcome(str, Enum):
    SUCCESS = "success"
    NOT_AVAILABLE = "not_available"  # no implementation configured
    SKIPPED = "skipped"  # nothing to do
    FAILED = "failed"  # attempted and errored
    TURNED_OFF = "turned_off"  # off command succeeded, metadata can be cleared


class ActionResult(BaseModel):
    """
    Result of Action.do().

    metadata is only set when the action created external state that a later
    turn-off needs to reference. report carries the dry-run description.
    """
    model_config = ConfigDict(frozen=True)

    outcome: ActionOutcome
    metadata: Optional[Dict[str, Any]] = None
    message: str = ""
    report: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome in (ActionOutcome.SUCCESS, ActionOutcome.TURNED_OFF, ActionOutcome.SKIPPED)


class EvalStatusParams(BaseModel):
    """Per-evaluation context handed to actions. Read-only."""
    model_config = ConfigDict(frozen=True)

    profile: Profile
    rule_type: RuleType
    evaluation: EvaluationResult
    policy: Dict[str, Any] = {}
    params: Dict[str, Any] = {}
