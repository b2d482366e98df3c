"""Dedup & notify pipeline — one fetch → dedup → notify cycle."""

from __future__ import annotations

import structlog

from realmwatch.core.types import CycleResult, ProposalRecord
from realmwatch.governance.fetcher import ProposalFetcher
from realmwatch.monitor.channels import NotificationChannel
from realmwatch.monitor.exceptions import NotificationError
from realmwatch.monitor.formatters import (
    CYCLE_FAILED_TEXT,
    NO_PROPOSALS_TEXT,
    format_new_proposals_summary,
    format_proposal,
)
from realmwatch.store.base import StateStore

logger = structlog.get_logger(__name__)


class ProposalPipeline:
    """Notifies each proposal the store has not seen, then records it.

    A proposal id is marked known only after its notification was
    delivered, so a crash in between re-notifies it next cycle instead of
    dropping it. Every error is contained here: the caller always gets a
    CycleResult back and the channel gets one failure message.
    """

    def __init__(self, fetcher: ProposalFetcher, store: StateStore) -> None:
        self._fetcher = fetcher
        self._store = store

    async def run(
        self,
        channel: NotificationChannel,
        realm_id: str,
        program_id: str,
    ) -> CycleResult:
        logger.info("cycle_started", realm_id=realm_id, program_id=program_id)
        try:
            result = await self._process(channel, realm_id, program_id)
        except Exception as exc:
            logger.exception("cycle_failed", realm_id=realm_id, program_id=program_id)
            await self._report_failure(channel)
            return CycleResult(error=f"{type(exc).__name__}: {exc}")

        logger.info("cycle_finished", checked=result.checked, notified=result.notified)
        return result

    async def _process(
        self,
        channel: NotificationChannel,
        realm_id: str,
        program_id: str,
    ) -> CycleResult:
        proposals = await self._fetcher.fetch_all(realm_id, program_id)

        if not proposals:
            logger.info("no_proposals_found", realm_id=realm_id)
            await self._deliver_text(channel, NO_PROPOSALS_TEXT)
            return CycleResult()

        notified = 0
        for proposal in proposals:
            if await self._store.is_known(proposal.id):
                continue
            logger.info("new_proposal_detected", proposal_id=proposal.id, title=proposal.title)
            await self._notify(channel, proposal)
            await self._store.mark_known(proposal.id)
            notified += 1

        if notified:
            await self._deliver_text(channel, format_new_proposals_summary(notified))
        else:
            logger.info("no_new_proposals", checked=len(proposals))

        return CycleResult(checked=len(proposals), notified=notified)

    async def _notify(self, channel: NotificationChannel, proposal: ProposalRecord) -> None:
        if not await channel.send(format_proposal(proposal)):
            raise NotificationError(f"Delivery not confirmed for proposal {proposal.id}")

    async def _deliver_text(self, channel: NotificationChannel, text: str) -> None:
        if not await channel.send_text(text):
            raise NotificationError(f"Delivery not confirmed for message {text!r}")

    async def _report_failure(self, channel: NotificationChannel) -> None:
        try:
            delivered = await channel.send_text(CYCLE_FAILED_TEXT)
        except Exception:
            logger.exception("failure_report_error")
            return
        if not delivered:
            logger.warning("failure_report_not_delivered")
