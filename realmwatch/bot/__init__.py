"""Chat command surface — command router and Discord gateway client."""

from realmwatch.bot.client import RealmWatchBot
from realmwatch.bot.commands import CommandRouter, format_status

__all__ = [
    "CommandRouter",
    "RealmWatchBot",
    "format_status",
]
