"""Proposal fetcher — realm-scoped proposal listing with rate-limit backoff."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from realmwatch.core.config import FetcherConfig
from realmwatch.core.types import ProposalRecord
from realmwatch.governance.exceptions import (
    AccountDecodeError,
    FatalUpstreamError,
    TransientUpstreamError,
)
from realmwatch.governance.layout import (
    GOVERNANCE_ACCOUNT_TYPES,
    PROPOSAL_ACCOUNT_TYPES,
    REALM_OFFSET,
    account_type_filter,
    decode_proposal,
    is_valid_pubkey,
    read_parent,
)
from realmwatch.governance.rpc import SolanaRpcClient, memcmp

logger = structlog.stdlib.get_logger()

SleepFn = Callable[[float], Awaitable[None]]


class ProposalFetcher:
    """Lists every proposal of a realm.

    The RPC indexes proposals by program, not by realm, so the realm scope is
    applied client-side: first collect the realm's governance accounts, then
    keep only proposals owned by one of them.

    Rate-limit errors are retried with exponential backoff; any other error
    propagates immediately. When retries run out an empty list is returned.
    """

    def __init__(
        self,
        rpc: SolanaRpcClient,
        config: FetcherConfig | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        cfg = config or FetcherConfig()
        self._rpc = rpc
        self._max_retries = cfg.max_retries
        self._initial_backoff_ms = cfg.initial_backoff_ms
        self._sleep = sleep

    async def fetch_all(self, realm_id: str, program_id: str) -> list[ProposalRecord]:
        for name, value in (("realm", realm_id), ("program", program_id)):
            if not is_valid_pubkey(value):
                raise FatalUpstreamError(f"Invalid {name} id: {value!r}")

        delay_ms = self._initial_backoff_ms
        for attempt in range(1, self._max_retries + 1):
            try:
                return await self._fetch_once(realm_id, program_id)
            except TransientUpstreamError as exc:
                logger.warning(
                    "proposal_fetch_rate_limited",
                    attempt=attempt,
                    max_retries=self._max_retries,
                    delay_ms=delay_ms,
                    error=str(exc),
                )
                await self._sleep(delay_ms / 1000.0)
                delay_ms *= 2
            except Exception:
                logger.exception(
                    "proposal_fetch_failed",
                    realm_id=realm_id,
                    program_id=program_id,
                )
                raise

        logger.error(
            "proposal_fetch_retries_exhausted",
            realm_id=realm_id,
            program_id=program_id,
            attempts=self._max_retries,
        )
        return []

    async def _fetch_once(self, realm_id: str, program_id: str) -> list[ProposalRecord]:
        logger.info("proposal_fetch_started", realm_id=realm_id, program_id=program_id)

        governances = await self._governance_accounts(realm_id, program_id)
        logger.info("governance_accounts_fetched", count=len(governances))

        # The program is shared by every realm; only proposals owned by one of
        # this realm's governances are decoded.
        fetched = 0
        proposals: list[ProposalRecord] = []
        for account_type in PROPOSAL_ACCOUNT_TYPES:
            accounts = await self._rpc.get_program_accounts(
                program_id,
                [memcmp(0, account_type_filter(account_type))],
            )
            fetched += len(accounts)
            for pubkey, data in accounts:
                if self._owner(pubkey, data) in governances:
                    proposals.append(decode_proposal(pubkey, data))
        logger.info("proposals_filtered", fetched=fetched, count=len(proposals))
        return proposals

    @staticmethod
    def _owner(pubkey: str, data: bytes) -> str | None:
        try:
            return read_parent(data)
        except AccountDecodeError:
            logger.debug("account_too_short", pubkey=pubkey, size=len(data))
            return None

    async def _governance_accounts(self, realm_id: str, program_id: str) -> set[str]:
        # Realms, token owner records etc. share the realm offset; keep only
        # governance kinds.
        accounts = await self._rpc.get_program_accounts(
            program_id,
            [memcmp(REALM_OFFSET, realm_id)],
        )
        return {
            pubkey
            for pubkey, data in accounts
            if data and data[0] in GOVERNANCE_ACCOUNT_TYPES and self._owner(pubkey, data) == realm_id
        }
