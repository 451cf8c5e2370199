"""Alert actions."""

from warden.actions.alert.noop import NoopAlert
from warden.actions.alert.security_advisory import SecurityAdvisoryAlert

__all__ = ["NoopAlert", "SecurityAdvisoryAlert"]
