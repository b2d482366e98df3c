"""Tests for the chat command router and status formatting."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from realmwatch.bot.commands import (
    NOT_CONFIGURED,
    RESET_PENDING,
    STORAGE_FAILED,
    CommandRouter,
    format_status,
)
from realmwatch.core.types import CycleResult, MonitorConfig, MonitorState, MonitorStatus
from realmwatch.monitor.exceptions import ConfigIncompleteError, ResetInProgressError
from realmwatch.store.exceptions import StorageError

REALM = "DPiH3H3c7t47BMxqTxLsuPQpEC6Kne8GA9VXbxpnZxFE"
PROGRAM = "GovER5Lthms3bLBqWub97yVrMmEogzX7xNjdXpPPCVZw"


# ── Helpers ─────────────────────────────────────────────────────


def _scheduler(config: MonitorConfig | None = None) -> MagicMock:
    cfg = config or MonitorConfig()
    sched = MagicMock()
    sched.set_target = AsyncMock(
        side_effect=lambda r, p: cfg.model_copy(update={"realm_id": r, "program_id": p})
    )
    sched.set_destination = AsyncMock(
        side_effect=lambda c: cfg.model_copy(update={"notification_channel_id": c})
    )
    sched.trigger_now = AsyncMock(return_value=CycleResult(checked=4, notified=1))
    sched.reset = AsyncMock()
    sched.known_ids = AsyncMock(return_value={"P1", "P2"})
    sched.status = MagicMock(
        return_value=MonitorStatus(state=MonitorState.IDLE, config=cfg)
    )
    return sched


@pytest.fixture
def scheduler() -> MagicMock:
    return _scheduler()


@pytest.fixture
def router(scheduler: MagicMock) -> CommandRouter:
    return CommandRouter(scheduler)


# ── Dispatch ───────────────────────────────────────────────────


class TestDispatch:
    async def test_plain_text_ignored(self, router: CommandRouter) -> None:
        assert await router.handle("hello there", "1") is None

    async def test_unknown_command_ignored(self, router: CommandRouter) -> None:
        assert await router.handle("!dance", "1") is None

    async def test_bare_prefix_ignored(self, router: CommandRouter) -> None:
        assert await router.handle("!", "1") is None

    async def test_case_insensitive(self, router: CommandRouter, scheduler: MagicMock) -> None:
        await router.handle("!FETCH", "1")
        scheduler.trigger_now.assert_awaited_once()

    async def test_custom_prefix(self, scheduler: MagicMock) -> None:
        router = CommandRouter(scheduler, prefix="?")
        assert await router.handle("!fetch", "1") is None
        assert await router.handle("?fetch", "1") is not None

    async def test_storage_error_reply(self, router: CommandRouter, scheduler: MagicMock) -> None:
        scheduler.set_destination.side_effect = StorageError("disk full")
        assert await router.handle("!setchannel", "1") == STORAGE_FAILED

    async def test_reconfigure_during_reset(
        self, router: CommandRouter, scheduler: MagicMock
    ) -> None:
        scheduler.set_target.side_effect = ResetInProgressError("Reset in progress")
        assert await router.handle(f"!setup {REALM} {PROGRAM}", "1") == RESET_PENDING


# ── setup / setchannel ─────────────────────────────────────────


class TestSetup:
    async def test_usage_when_missing_args(self, router: CommandRouter, scheduler: MagicMock) -> None:
        reply = await router.handle(f"!setup {REALM}", "1")
        assert reply is not None and reply.startswith("Usage:")
        scheduler.set_target.assert_not_called()

    async def test_invalid_address(self, router: CommandRouter, scheduler: MagicMock) -> None:
        reply = await router.handle(f"!setup nope {PROGRAM}", "1")
        assert reply == "`nope` is not a valid realm address."
        scheduler.set_target.assert_not_called()

    async def test_setup_without_channel(self, router: CommandRouter, scheduler: MagicMock) -> None:
        reply = await router.handle(f"!setup {REALM} {PROGRAM}", "1")
        scheduler.set_target.assert_awaited_once_with(REALM, PROGRAM)
        assert reply is not None and "setchannel" in reply

    async def test_setup_with_channel_starts(self) -> None:
        router = CommandRouter(_scheduler(MonitorConfig(notification_channel_id="9")))
        reply = await router.handle(f"!setup {REALM} {PROGRAM}", "1")
        assert reply == "Setup complete. Monitoring started."

    async def test_setchannel_uses_message_channel(
        self, router: CommandRouter, scheduler: MagicMock
    ) -> None:
        reply = await router.handle("!setchannel", "555")
        scheduler.set_destination.assert_awaited_once_with("555")
        assert reply is not None and "!setup" in reply

    async def test_setchannel_after_setup(self) -> None:
        router = CommandRouter(_scheduler(MonitorConfig(realm_id=REALM, program_id=PROGRAM)))
        assert await router.handle("!setchannel", "555") == "Notification channel set."


# ── fetch ──────────────────────────────────────────────────────


class TestFetch:
    async def test_success(self, router: CommandRouter) -> None:
        reply = await router.handle("!fetch", "1")
        assert reply == "Check complete: 4 proposals checked, 1 new."

    async def test_not_configured(self, router: CommandRouter, scheduler: MagicMock) -> None:
        scheduler.trigger_now.side_effect = ConfigIncompleteError("missing")
        assert await router.handle("!fetch", "1") == NOT_CONFIGURED

    async def test_already_running(self, router: CommandRouter, scheduler: MagicMock) -> None:
        scheduler.trigger_now.return_value = None
        assert await router.handle("!fetch", "1") == "A proposal check is already running."

    async def test_failed_cycle(self, router: CommandRouter, scheduler: MagicMock) -> None:
        scheduler.trigger_now.return_value = CycleResult(error="boom")
        reply = await router.handle("!fetch", "1")
        assert reply is not None and reply.startswith("The proposal check failed")


# ── status / reset / help ──────────────────────────────────────


class TestOtherCommands:
    async def test_reset(self, router: CommandRouter, scheduler: MagicMock) -> None:
        reply = await router.handle("!reset", "1")
        scheduler.reset.assert_awaited_once()
        assert reply is not None and reply.startswith("Monitor reset.")

    async def test_status(self, router: CommandRouter) -> None:
        reply = await router.handle("!status", "1")
        assert reply is not None and "**State:** IDLE" in reply
        assert "**Seen proposals:** 2" in reply

    async def test_status_storage_error(self, router: CommandRouter, scheduler: MagicMock) -> None:
        scheduler.known_ids.side_effect = StorageError("corrupt")
        assert await router.handle("!status", "1") == STORAGE_FAILED

    async def test_help_lists_commands(self, router: CommandRouter) -> None:
        reply = await router.handle("!help", "1")
        assert reply is not None
        for name in ("setup", "setchannel", "fetch", "status", "reset"):
            assert f"!{name}" in reply


class TestFormatStatus:
    def test_unconfigured(self) -> None:
        text = format_status(MonitorStatus(state=MonitorState.IDLE, config=MonitorConfig()))
        assert "**Realm:** -" in text
        assert "**Channel:** -" in text
        assert "Last check" not in text
        assert "Seen proposals" not in text

    def test_seen_count(self) -> None:
        status = MonitorStatus(state=MonitorState.IDLE, config=MonitorConfig())
        assert "**Seen proposals:** 0" in format_status(status, seen_count=0)

    def test_configured_with_history(self) -> None:
        status = MonitorStatus(
            state=MonitorState.ARMED,
            config=MonitorConfig(realm_id=REALM, program_id=PROGRAM, notification_channel_id="77"),
            last_result=CycleResult(checked=3, notified=2, finished_at=0.0),
            next_run_at=1800.0,
        )
        text = format_status(status)
        assert "**Channel:** <#77>" in text
        assert "1970-01-01 00:00:00 UTC" in text
        assert "checked 3, notified 2" in text
        assert "**Next check:** 1970-01-01 00:30:00 UTC" in text
