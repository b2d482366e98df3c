"""Monitor scheduler — explicit IDLE / ARMED / RUNNING state machine.

At most one cycle is in flight. When a cycle completes (success or handled
failure) exactly one timer is scheduled ``interval_secs`` after completion,
so a slow fetch can never overlap the next run. Cancelling the timer bumps a
generation counter; a timer whose generation is stale never starts a cycle.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import structlog

from realmwatch.core.types import CycleResult, MonitorConfig, MonitorState, MonitorStatus
from realmwatch.monitor.channels import NotificationChannel
from realmwatch.monitor.exceptions import ConfigIncompleteError, ResetInProgressError
from realmwatch.monitor.pipeline import ProposalPipeline
from realmwatch.store.base import StateStore

logger = structlog.get_logger(__name__)

# Builds the channel for a notification destination id.
ChannelFactory = Callable[[str], NotificationChannel]

DEFAULT_INTERVAL_SECS = 30 * 60


class MonitorScheduler:
    """Runs the proposal pipeline on a self-rescheduling timer.

    Usage::

        scheduler = MonitorScheduler(store, pipeline, channel_factory)
        await scheduler.start()          # runs immediately if configured
        await scheduler.set_target(realm_id, program_id)
        result = await scheduler.trigger_now()
        await scheduler.stop()
    """

    def __init__(
        self,
        store: StateStore,
        pipeline: ProposalPipeline,
        channel_factory: ChannelFactory,
        interval_secs: float = DEFAULT_INTERVAL_SECS,
    ) -> None:
        self._store = store
        self._pipeline = pipeline
        self._channel_factory = channel_factory
        self._interval_secs = interval_secs

        self._state = MonitorState.IDLE
        self._config = MonitorConfig()
        self._last_result: CycleResult | None = None
        self._cycle_task: asyncio.Task[CycleResult] | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._timer_generation = 0
        self._next_run_at: float | None = None
        self._rearm_pending = False
        self._resetting = False
        self._channels: dict[str, NotificationChannel] = {}

    # ── Properties ────────────────────────────────────────────────

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    async def known_ids(self) -> set[str]:
        return await self._store.known_ids()

    def status(self) -> MonitorStatus:
        return MonitorStatus(
            state=self._state,
            config=self._config,
            last_result=self._last_result,
            next_run_at=self._next_run_at,
        )

    # ── Lifecycle ────────────────────────────────────────────────

    async def load_config(self) -> MonitorConfig:
        """Refresh the in-memory config from the store without starting a cycle."""
        self._config = await self._store.load_config()
        return self._config

    async def start(self) -> None:
        """Load the persisted config and run immediately if it is complete."""
        await self.load_config()
        if not self._config.is_complete:
            logger.info("monitor_waiting_for_config", **self._config.model_dump())
            return
        self._state = MonitorState.ARMED
        self._launch_cycle("startup")

    async def stop(self) -> None:
        """Cancel the pending timer and any in-flight cycle, close channels."""
        self._cancel_timer()
        if self._cycle_task is not None:
            self._cycle_task.cancel()
            try:
                await self._cycle_task
            except asyncio.CancelledError:
                pass
            self._cycle_task = None
        self._state = MonitorState.IDLE
        for channel in self._channels.values():
            try:
                await channel.close()
            except Exception:
                logger.exception("channel_close_error", channel=type(channel).__name__)
        self._channels.clear()
        logger.info("monitor_stopped")

    # ── Reconfiguration ──────────────────────────────────────────

    async def set_target(self, realm_id: str, program_id: str) -> MonitorConfig:
        config = self._config.model_copy(update={"realm_id": realm_id, "program_id": program_id})
        return await self._apply_config(config)

    async def set_destination(self, channel_id: str) -> MonitorConfig:
        config = self._config.model_copy(update={"notification_channel_id": channel_id})
        return await self._apply_config(config)

    async def _apply_config(self, config: MonitorConfig) -> MonitorConfig:
        if self._resetting:
            raise ResetInProgressError("Reset in progress")
        await self._store.save_config(config)
        self._config = config
        if not config.is_complete:
            logger.info("monitor_config_incomplete", **config.model_dump())
            return config

        self._cancel_timer()
        if self._state is MonitorState.RUNNING:
            # Picked up by _finish_cycle once the in-flight cycle completes.
            self._rearm_pending = True
            logger.info("monitor_rearm_pending")
        else:
            self._state = MonitorState.ARMED
            self._launch_cycle("reconfigured")
        return config

    async def reset(self) -> None:
        """Forget the config and every seen proposal, back to IDLE.

        An in-flight cycle is allowed to finish first. Configuration changes
        made while waiting are refused with ResetInProgressError.
        """
        self._resetting = True
        try:
            self._config = MonitorConfig()
            self._rearm_pending = False
            self._cancel_timer()
            while self._cycle_task is not None and not self._cycle_task.done():
                await asyncio.wait({self._cycle_task})
            self._cancel_timer()
            await self._store.reset_all()
            self._state = MonitorState.IDLE
            self._last_result = None
        finally:
            self._resetting = False
        logger.info("monitor_reset")

    # ── Triggers ─────────────────────────────────────────────────

    async def trigger_now(self) -> CycleResult | None:
        """Run a cycle right away and return its result.

        Returns None without starting anything when a cycle is already
        running.

        Raises:
            ConfigIncompleteError: realm, program or destination is missing.
        """
        if not self._config.is_complete:
            raise ConfigIncompleteError("Monitor is not fully configured")
        if self._state is MonitorState.RUNNING:
            logger.info("manual_trigger_rejected", reason="cycle_in_flight")
            return None
        self._cancel_timer()
        task = self._launch_cycle("manual")
        return await asyncio.shield(task)

    # ── Internal ────────────────────────────────────────────────

    def _launch_cycle(self, reason: str) -> asyncio.Task[CycleResult]:
        config = self._config
        self._state = MonitorState.RUNNING
        self._next_run_at = None
        logger.info("cycle_launched", reason=reason)
        task = asyncio.create_task(self._run_cycle(config))
        self._cycle_task = task
        return task

    async def _run_cycle(self, config: MonitorConfig) -> CycleResult:
        result = await self._execute(config)
        self._last_result = result
        self._finish_cycle()
        return result

    async def _execute(self, config: MonitorConfig) -> CycleResult:
        if not (config.realm_id and config.program_id and config.notification_channel_id):
            logger.error("cycle_config_incomplete", **config.model_dump())
            return CycleResult(error="ConfigIncompleteError: Monitor is not fully configured")

        try:
            channel = self._channel_for(config.notification_channel_id)
        except Exception as exc:
            logger.exception("channel_unavailable", channel_id=config.notification_channel_id)
            return CycleResult(error=f"Notification channel is invalid: {exc}")

        try:
            return await self._pipeline.run(channel, config.realm_id, config.program_id)
        except Exception as exc:
            logger.exception("cycle_crashed")
            return CycleResult(error=f"{type(exc).__name__}: {exc}")

    def _channel_for(self, channel_id: str) -> NotificationChannel:
        channel = self._channels.get(channel_id)
        if channel is None:
            channel = self._channel_factory(channel_id)
            self._channels[channel_id] = channel
        return channel

    def _finish_cycle(self) -> None:
        self._cycle_task = None
        if not self._config.is_complete:
            self._state = MonitorState.IDLE
            return

        self._state = MonitorState.ARMED
        if self._rearm_pending:
            self._rearm_pending = False
            self._launch_cycle("reconfigured")
            return
        self._schedule_timer()

    def _schedule_timer(self) -> None:
        self._cancel_timer()
        generation = self._timer_generation
        self._next_run_at = time.time() + self._interval_secs
        self._timer_task = asyncio.create_task(self._fire_after(generation))
        logger.info("next_cycle_scheduled", in_secs=self._interval_secs)

    async def _fire_after(self, generation: int) -> None:
        await asyncio.sleep(self._interval_secs)
        if generation != self._timer_generation or self._state is not MonitorState.ARMED:
            return
        self._timer_task = None
        self._launch_cycle("timer")

    def _cancel_timer(self) -> None:
        self._timer_generation += 1
        self._next_run_at = None
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
