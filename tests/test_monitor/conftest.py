"""In-memory fakes shared by the pipeline and scheduler tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from realmwatch.core.types import MonitorConfig, ProposalRecord, ProposalState
from realmwatch.monitor.channels import NotificationChannel
from realmwatch.monitor.types import AlertMessage
from realmwatch.store.base import StateStore
from realmwatch.store.exceptions import StorageError


class FakeChannel(NotificationChannel):
    """Records every message; ``fail_on`` titles/texts are reported undelivered."""

    def __init__(self) -> None:
        self.sent: list[AlertMessage] = []
        self.texts: list[str] = []
        self.fail_on: set[str] = set()
        self.closed = False

    async def send(self, msg: AlertMessage) -> bool:
        if msg.title in self.fail_on:
            return False
        self.sent.append(msg)
        return True

    async def send_text(self, text: str) -> bool:
        if text in self.fail_on:
            return False
        self.texts.append(text)
        return True

    async def close(self) -> None:
        self.closed = True


class MemoryStore(StateStore):
    def __init__(self, config: MonitorConfig | None = None) -> None:
        self.config = config or MonitorConfig()
        self.seen: list[str] = []
        self.fail_mark_known = False
        self.resets = 0

    async def load_config(self) -> MonitorConfig:
        return self.config

    async def save_config(self, config: MonitorConfig) -> None:
        self.config = config

    async def is_known(self, proposal_id: str) -> bool:
        return proposal_id in self.seen

    async def mark_known(self, proposal_id: str) -> None:
        if self.fail_mark_known:
            raise StorageError("disk full")
        if proposal_id not in self.seen:
            self.seen.append(proposal_id)

    async def known_ids(self) -> set[str]:
        return set(self.seen)

    async def reset_all(self) -> None:
        self.config = MonitorConfig()
        self.seen.clear()
        self.resets += 1


def make_record(proposal_id: str, title: str | None = None) -> ProposalRecord:
    return ProposalRecord(
        id=proposal_id,
        governance="G1",
        title=title or f"Proposal {proposal_id}",
        state=ProposalState.VOTING,
    )


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def record() -> Callable[..., ProposalRecord]:
    return make_record
