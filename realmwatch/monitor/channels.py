"""Notification channels — Discord delivery over the bot REST API."""

from __future__ import annotations

import abc
from typing import Any

import aiohttp
import structlog

from realmwatch.core.config import DiscordConfig
from realmwatch.monitor.types import AlertMessage

logger = structlog.get_logger(__name__)

# Discord rejects embeds beyond these sizes.
_TITLE_LIMIT = 256
_DESCRIPTION_LIMIT = 4096
_FIELD_VALUE_LIMIT = 1024
_CONTENT_LIMIT = 2000

_DELIVERED = (200, 201, 204)


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class NotificationChannel(abc.ABC):
    """Base class for message delivery channels."""

    @abc.abstractmethod
    async def send(self, msg: AlertMessage) -> bool:
        """Send a rich message. Returns True once delivery is confirmed."""

    @abc.abstractmethod
    async def send_text(self, text: str) -> bool:
        """Send a plain-text message. Returns True once delivery is confirmed."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class DiscordChannel(NotificationChannel):
    """Delivers messages to one Discord text channel with colour-coded embeds."""

    def __init__(self, config: DiscordConfig, channel_id: str) -> None:
        self._token = config.bot_token.get_secret_value()
        self._url = f"{config.api_base.rstrip('/')}/channels/{channel_id}/messages"
        self._channel_id = channel_id
        self._session: aiohttp.ClientSession | None = None

    @property
    def channel_id(self) -> str:
        return self._channel_id

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Bot {self._token}"},
            )
        return self._session

    def _build_embed(self, msg: AlertMessage) -> dict[str, Any]:
        embed: dict[str, Any] = {
            "title": _clip(msg.title, _TITLE_LIMIT),
            "color": msg.color,
        }
        if msg.body:
            embed["description"] = _clip(msg.body, _DESCRIPTION_LIMIT)
        if msg.fields:
            embed["fields"] = [
                {"name": k, "value": _clip(v or "-", _FIELD_VALUE_LIMIT), "inline": True}
                for k, v in msg.fields.items()
            ]
        return embed

    async def send(self, msg: AlertMessage) -> bool:
        return await self._post({"embeds": [self._build_embed(msg)]}, title=msg.title)

    async def send_text(self, text: str) -> bool:
        return await self._post({"content": _clip(text, _CONTENT_LIMIT)}, title=text[:80])

    async def _post(self, payload: dict[str, Any], title: str) -> bool:
        try:
            session = self._get_session()
            async with session.post(self._url, json=payload) as resp:
                if resp.status in _DELIVERED:
                    return True
                body = await resp.text()
                logger.warning(
                    "discord_send_failed",
                    channel_id=self._channel_id,
                    status=resp.status,
                    title=title,
                    body=body[:200],
                )
                return False
        except Exception:
            logger.exception("discord_send_error", channel_id=self._channel_id, title=title)
            return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
