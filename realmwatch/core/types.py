"""Domain types for governance monitoring."""

from __future__ import annotations

import time
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

NO_DESCRIPTION = "No description provided."
NO_END_TIME = "No end time available"


class ProposalState(StrEnum):
    """SPL Governance proposal state, in on-chain discriminant order."""

    DRAFT = "Draft"
    SIGNING_OFF = "SigningOff"
    VOTING = "Voting"
    SUCCEEDED = "Succeeded"
    EXECUTING = "Executing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    DEFEATED = "Defeated"
    EXECUTING_WITH_ERRORS = "ExecutingWithErrors"
    VETOED = "Vetoed"


class ProposalRecord(BaseModel):
    """A proposal read from chain. Identity is ``id``."""

    model_config = ConfigDict(frozen=True)

    id: str
    governance: str
    title: str
    description: str = NO_DESCRIPTION
    state: ProposalState
    voting_end_time: datetime | None = None

    @property
    def voting_end_label(self) -> str:
        if self.voting_end_time is None:
            return NO_END_TIME
        return self.voting_end_time.isoformat()


class MonitorConfig(BaseModel):
    """Persisted monitor target and notification destination."""

    model_config = ConfigDict(frozen=True)

    realm_id: str | None = None
    program_id: str | None = None
    notification_channel_id: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.realm_id and self.program_id and self.notification_channel_id)

    @property
    def has_target(self) -> bool:
        return bool(self.realm_id and self.program_id)


class CycleResult(BaseModel):
    """Outcome of one fetch → dedup → notify cycle."""

    checked: int = 0
    notified: int = 0
    error: str | None = None
    finished_at: float = Field(default_factory=time.time)

    @property
    def ok(self) -> bool:
        return self.error is None


class MonitorState(StrEnum):
    """Scheduler lifecycle state."""

    IDLE = "IDLE"  # no config or incomplete config
    ARMED = "ARMED"  # complete config, no cycle in flight
    RUNNING = "RUNNING"  # a cycle in flight


class MonitorStatus(BaseModel):
    """Read-only snapshot of the scheduler."""

    state: MonitorState
    config: MonitorConfig
    last_result: CycleResult | None = None
    next_run_at: float | None = None
