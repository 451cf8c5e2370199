"""Resolve the alert and remediation actions a rule type configures."""

import logging
from typing import Optional

from warden.actions.alert.noop import NoopAlert
from warden.actions.alert.security_advisory import ALERT_TYPE, SecurityAdvisoryAlert
from warden.actions.interfaces import Action, Remediator
from warden.actions.models import ActionType
from warden.actions.remediate.noop import NoopRemediate
from warden.actions.remediate.rest import REMEDIATE_TYPE, RestRemediator
from warden.errors import NoRemediationConfigured, RuleTypeError
from warden.models import RuleType
from warden.providers.github import GitHubClient

logger = logging.getLogger(__name__)


def new_rule_remediator(rule_type: RuleType, client: Optional[GitHubClient] = None) -> Remediator:
    """
    Build the remediator of a rule type.

    Raises:
        NoRemediationConfigured: If the rule type defines no remediation
        RuleTypeError: If the remediation type is unknown or misconfigured
    """
    rem = rule_type.definition.remediate
    if rem is None:
        raise NoRemediationConfigured(f"rule type {rule_type.name} has no remediation")

    if rem.type == REMEDIATE_TYPE:
        return RestRemediator(ActionType.REMEDIATE, rem.rest, client or GitHubClient())

    raise RuleTypeError(f"unknown remediation type: {rem.type}")


def new_alert_action(rule_type: RuleType, client: Optional[GitHubClient] = None) -> Action:
    """Build the alert action of a rule type. Rule types without one get a noop alert."""
    alert = rule_type.definition.alert
    if alert is None:
        return NoopAlert(ActionType.ALERT)

    if alert.type == ALERT_TYPE:
        return SecurityAdvisoryAlert(ActionType.ALERT, alert.security_advisory, client or GitHubClient())

    raise RuleTypeError(f"unknown alert type: {alert.type}")


def new_remediate_action(rule_type: RuleType, client: Optional[GitHubClient] = None) -> Remediator:
    """
    Build the remediation action of a rule type for callers that need one.

    Unlike new_rule_remediator, rule types without a remediation get a noop
    remediation instead of an error.
    """
    try:
        return new_rule_remediator(rule_type, client)
    except NoRemediationConfigured:
        return NoopRemediate(ActionType.REMEDIATE)
