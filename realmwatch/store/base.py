"""Abstract durable store for monitor config and the seen-proposal set."""

from __future__ import annotations

import abc

from realmwatch.core.types import MonitorConfig


class StateStore(abc.ABC):
    """Owns the two persisted records: monitor config and seen proposal ids.

    An id must only be marked known after its notification was delivered;
    the store itself does not enforce this, the pipeline does.
    """

    @abc.abstractmethod
    async def load_config(self) -> MonitorConfig:
        """Return the persisted config, or an empty one. Never raises."""

    @abc.abstractmethod
    async def save_config(self, config: MonitorConfig) -> None:
        """Persist *config*. Raises StorageError on failure."""

    @abc.abstractmethod
    async def is_known(self, proposal_id: str) -> bool:
        """Whether *proposal_id* was already notified."""

    @abc.abstractmethod
    async def mark_known(self, proposal_id: str) -> None:
        """Add *proposal_id* to the seen set. Raises StorageError on failure."""

    @abc.abstractmethod
    async def known_ids(self) -> set[str]:
        """Snapshot of every seen proposal id."""

    @abc.abstractmethod
    async def reset_all(self) -> None:
        """Clear both the config and the seen set."""
