"""Monitoring subsystem — notify pipeline, scheduler, Discord delivery."""

from realmwatch.monitor.channels import DiscordChannel, NotificationChannel
from realmwatch.monitor.exceptions import (
    ConfigIncompleteError,
    MonitorError,
    NotificationError,
    ResetInProgressError,
)
from realmwatch.monitor.factory import create_monitor_stack, discord_channel_factory
from realmwatch.monitor.formatters import format_new_proposals_summary, format_proposal
from realmwatch.monitor.pipeline import ProposalPipeline
from realmwatch.monitor.scheduler import MonitorScheduler
from realmwatch.monitor.types import AlertMessage

__all__ = [
    "AlertMessage",
    "ConfigIncompleteError",
    "DiscordChannel",
    "MonitorError",
    "MonitorScheduler",
    "NotificationChannel",
    "NotificationError",
    "ProposalPipeline",
    "ResetInProgressError",
    "create_monitor_stack",
    "discord_channel_factory",
    "format_new_proposals_summary",
    "format_proposal",
]
