#!/usr/bin/env python3
"""Main bot entrypoint — wires all components and runs the proposal monitor.

Usage::

    # Run the Discord bot with the default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Single check with the saved configuration, then exit
    python scripts/run.py --once

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from realmwatch.bot.client import RealmWatchBot
from realmwatch.bot.commands import CommandRouter
from realmwatch.core.config import Settings, load_settings
from realmwatch.core.logging import setup_logging
from realmwatch.monitor.exceptions import ConfigIncompleteError
from realmwatch.monitor.factory import create_monitor_stack

logger = structlog.get_logger(__name__)


async def run_once(settings: Settings) -> int:
    """Run one cycle against the saved configuration."""
    rpc, scheduler = create_monitor_stack(settings)
    await rpc.connect()
    try:
        await scheduler.load_config()
        try:
            result = await scheduler.trigger_now()
        except ConfigIncompleteError:
            logger.error("monitor_not_configured")
            print(
                "Monitor is not configured. Use !setup and !setchannel in Discord first.",
                file=sys.stderr,
            )
            return 1
    finally:
        await scheduler.stop()
        await rpc.close()

    if result is None or not result.ok:
        return 1
    logger.info("check_complete", checked=result.checked, notified=result.notified)
    return 0


async def run_bot(settings: Settings) -> int:
    """Start the Discord bot and run until interrupted."""
    token = settings.discord.bot_token.get_secret_value()
    if not token:
        logger.error("discord_token_missing")
        print(
            "No Discord bot token. Set DISCORD_TOKEN or discord.bot_token in the config.",
            file=sys.stderr,
        )
        return 1

    rpc, scheduler = create_monitor_stack(settings)
    await rpc.connect()
    router = CommandRouter(scheduler, prefix=settings.discord.command_prefix)
    bot = RealmWatchBot(scheduler=scheduler, router=router)

    logger.info(
        "bot_starting",
        rpc_url=settings.solana.rpc_url,
        interval_secs=settings.monitor.interval_secs,
        data_dir=settings.storage.data_dir,
    )

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    bot_task = asyncio.create_task(bot.start(token))
    stop_task = asyncio.create_task(stop_event.wait())

    try:
        done, _ = await asyncio.wait(
            {bot_task, stop_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")
        done = set()

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("bot_shutting_down")
    stop_task.cancel()
    exit_code = 0
    if bot_task in done and not bot_task.cancelled() and bot_task.exception() is not None:
        logger.error("bot_crashed", error=str(bot_task.exception()))
        exit_code = 1

    try:
        await bot.close()
    except Exception:
        logger.exception("bot_close_error")
    if not bot_task.done():
        bot_task.cancel()
        try:
            await bot_task
        except asyncio.CancelledError:
            pass
    await rpc.close()

    logger.info("bot_stopped", last_result=scheduler.last_result)
    return exit_code


async def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)
    if args.once:
        return await run_once(settings)
    return await run_bot(settings)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the SPL Governance proposal monitor.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check with the saved configuration and exit",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
