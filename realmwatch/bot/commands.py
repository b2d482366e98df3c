"""Chat command router — turns ``!command`` text into scheduler calls."""

from __future__ import annotations

import datetime
from collections.abc import Awaitable, Callable

import structlog

from realmwatch.core.types import CycleResult, MonitorStatus
from realmwatch.governance.layout import is_valid_pubkey
from realmwatch.monitor.exceptions import ConfigIncompleteError, ResetInProgressError
from realmwatch.monitor.scheduler import MonitorScheduler
from realmwatch.store.exceptions import StorageError

logger = structlog.get_logger(__name__)

NOT_CONFIGURED = "Bot is not fully configured. Use `!setup` and `!setchannel` first."
STORAGE_FAILED = "Could not update the saved state. Check the logs for details."
RESET_PENDING = "A reset is in progress. Try again once it completes."

Handler = Callable[[list[str], str], Awaitable[str]]


def _format_time(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.datetime.fromtimestamp(ts, tz=datetime.UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def _format_result(result: CycleResult) -> str:
    if not result.ok:
        return f"failed ({result.error})"
    return f"checked {result.checked}, notified {result.notified}"


def format_status(status: MonitorStatus, seen_count: int | None = None) -> str:
    cfg = status.config
    lines = [
        f"**State:** {status.state.value}",
        f"**Realm:** {cfg.realm_id or '-'}",
        f"**Program:** {cfg.program_id or '-'}",
        f"**Channel:** {f'<#{cfg.notification_channel_id}>' if cfg.notification_channel_id else '-'}",
    ]
    if seen_count is not None:
        lines.append(f"**Seen proposals:** {seen_count}")
    if status.last_result is not None:
        lines.append(
            f"**Last check:** {_format_time(status.last_result.finished_at)} — "
            f"{_format_result(status.last_result)}"
        )
    if status.next_run_at is not None:
        lines.append(f"**Next check:** {_format_time(status.next_run_at)}")
    return "\n".join(lines)


class CommandRouter:
    """Maps chat messages to monitor operations and returns the reply text.

    Supported commands (with the default ``!`` prefix): ``setup``,
    ``setchannel``, ``fetch``, ``status``, ``reset``, ``help``. Messages
    that are not commands yield ``None``.
    """

    def __init__(self, scheduler: MonitorScheduler, prefix: str = "!") -> None:
        self._scheduler = scheduler
        self._prefix = prefix
        self._handlers: dict[str, Handler] = {
            "setup": self._setup,
            "setchannel": self._setchannel,
            "fetch": self._fetch,
            "status": self._status,
            "reset": self._reset,
            "help": self._help,
        }

    async def handle(self, content: str, channel_id: str) -> str | None:
        if not content.startswith(self._prefix):
            return None
        parts = content[len(self._prefix):].split()
        if not parts:
            return None
        handler = self._handlers.get(parts[0].lower())
        if handler is None:
            return None

        logger.info("command_received", command=parts[0].lower(), channel_id=channel_id)
        try:
            return await handler(parts[1:], channel_id)
        except StorageError:
            logger.exception("command_storage_error", command=parts[0].lower())
            return STORAGE_FAILED
        except ResetInProgressError:
            logger.info("command_rejected_during_reset", command=parts[0].lower())
            return RESET_PENDING

    async def _setup(self, args: list[str], channel_id: str) -> str:
        if len(args) < 2:
            return f"Usage: `{self._prefix}setup <REALM_ID> <PROGRAM_ID>`"
        realm_id, program_id = args[0], args[1]
        for label, value in (("realm", realm_id), ("program", program_id)):
            if not is_valid_pubkey(value):
                return f"`{value}` is not a valid {label} address."

        config = await self._scheduler.set_target(realm_id, program_id)
        if config.notification_channel_id is None:
            return f"Setup complete. Run `{self._prefix}setchannel` to set the notification channel."
        return "Setup complete. Monitoring started."

    async def _setchannel(self, args: list[str], channel_id: str) -> str:
        config = await self._scheduler.set_destination(channel_id)
        if not config.has_target:
            return f"Notification channel set. Run `{self._prefix}setup` to choose a realm."
        return "Notification channel set."

    async def _fetch(self, args: list[str], channel_id: str) -> str:
        try:
            result = await self._scheduler.trigger_now()
        except ConfigIncompleteError:
            return NOT_CONFIGURED
        if result is None:
            return "A proposal check is already running."
        if not result.ok:
            return "The proposal check failed. Check the logs for details."
        return f"Check complete: {result.checked} proposals checked, {result.notified} new."

    async def _status(self, args: list[str], channel_id: str) -> str:
        known = await self._scheduler.known_ids()
        return format_status(self._scheduler.status(), seen_count=len(known))

    async def _reset(self, args: list[str], channel_id: str) -> str:
        await self._scheduler.reset()
        return (
            "Monitor reset. Configure again with "
            f"`{self._prefix}setup` and `{self._prefix}setchannel`."
        )

    async def _help(self, args: list[str], channel_id: str) -> str:
        p = self._prefix
        return "\n".join([
            f"`{p}setup <REALM_ID> <PROGRAM_ID>` — choose the realm to monitor",
            f"`{p}setchannel` — send notifications to this channel",
            f"`{p}fetch` — check for new proposals now",
            f"`{p}status` — show the current configuration",
            f"`{p}reset` — forget the configuration and seen proposals",
        ])
