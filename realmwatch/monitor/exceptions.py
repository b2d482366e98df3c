"""Exception hierarchy for the monitor pipeline and scheduler."""

from __future__ import annotations


class MonitorError(Exception):
    """Base exception for monitor errors."""


class ConfigIncompleteError(MonitorError):
    """Realm, program or notification channel is not configured yet."""


class NotificationError(MonitorError):
    """A channel did not confirm delivery of a message."""


class ResetInProgressError(MonitorError):
    """Configuration changes are refused until a pending reset completes."""
