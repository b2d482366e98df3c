"""Convenience factory for wiring the monitoring stack."""

from __future__ import annotations

from realmwatch.core.config import DiscordConfig, Settings
from realmwatch.governance.fetcher import ProposalFetcher
from realmwatch.governance.rpc import SolanaRpcClient
from realmwatch.monitor.channels import DiscordChannel, NotificationChannel
from realmwatch.monitor.pipeline import ProposalPipeline
from realmwatch.monitor.scheduler import ChannelFactory, MonitorScheduler
from realmwatch.store.base import StateStore
from realmwatch.store.json_store import JsonStateStore


def discord_channel_factory(config: DiscordConfig) -> ChannelFactory:
    """Return a factory building a DiscordChannel per destination id."""

    def _build(channel_id: str) -> NotificationChannel:
        if not channel_id.isdigit():
            raise ValueError(f"{channel_id!r} is not a Discord channel id")
        return DiscordChannel(config, channel_id)

    return _build


def create_monitor_stack(
    settings: Settings,
    store: StateStore | None = None,
) -> tuple[SolanaRpcClient, MonitorScheduler]:
    """Build the RPC client + scheduler from settings.

    Returns:
        (rpc_client, scheduler) — the caller owns both lifecycles.
    """
    rpc = SolanaRpcClient(settings.solana)
    fetcher = ProposalFetcher(rpc, settings.fetcher)
    state_store = store or JsonStateStore.from_config(settings.storage)
    pipeline = ProposalPipeline(fetcher=fetcher, store=state_store)

    scheduler = MonitorScheduler(
        store=state_store,
        pipeline=pipeline,
        channel_factory=discord_channel_factory(settings.discord),
        interval_secs=settings.monitor.interval_secs,
    )
    return rpc, scheduler
