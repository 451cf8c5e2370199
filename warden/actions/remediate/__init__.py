"""Remediation actions."""

from warden.actions.remediate.noop import NoopRemediate
from warden.actions.remediate.rest import RestRemediator

__all__ = ["NoopRemediate", "RestRemediator"]
