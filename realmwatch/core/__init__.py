"""Core module — config, types, logging."""

from realmwatch.core.config import Settings, get_settings, load_settings, reset_settings
from realmwatch.core.logging import setup_logging
from realmwatch.core.types import (
    CycleResult,
    MonitorConfig,
    MonitorState,
    MonitorStatus,
    ProposalRecord,
    ProposalState,
)

__all__ = [
    "CycleResult",
    "MonitorConfig",
    "MonitorState",
    "MonitorStatus",
    "ProposalRecord",
    "ProposalState",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
