"""Action framework - alerts and remediations with on/off/dry-run settings."""

from warden.actions.models import (
    ActionCmd,
    ActionOpt,
    ActionOutcome,
    ActionResult,
    ActionType,
    EvalStatusParams,
)
from warden.actions.interfaces import Action, Remediator
from warden.actions.factory import new_alert_action, new_remediate_action, new_rule_remediator

__all__ = [
    "Action",
    "ActionCmd",
    "ActionOpt",
    "ActionOutcome",
    "ActionResult",
    "ActionType",
    "EvalStatusParams",
    "Remediator",
    "new_alert_action",
    "new_remediate_action",
    "new_rule_remediator",
]
