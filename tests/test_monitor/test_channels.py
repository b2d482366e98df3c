"""Tests for notification channels — HTTP mocking, error handling, session management."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from pydantic import SecretStr

from realmwatch.core.config import DiscordConfig
from realmwatch.monitor.channels import DiscordChannel
from realmwatch.monitor.types import DEFAULT_EMBED_COLOR, AlertMessage


# ── Helpers ─────────────────────────────────────────────────────


def _msg(**kw: object) -> AlertMessage:
    defaults: dict[str, object] = {
        "title": "TEST_TITLE",
        "body": "test body",
        "fields": {"key": "value"},
        "source_event_type": "TEST",
        "timestamp": 1000.0,
    }
    defaults.update(kw)
    return AlertMessage(**defaults)  # type: ignore[arg-type]


def _dc_config(**kw: object) -> DiscordConfig:
    defaults: dict[str, object] = {
        "bot_token": SecretStr("fake-token"),
        "api_base": "https://discord.test/api/v10",
    }
    defaults.update(kw)
    return DiscordConfig(**defaults)  # type: ignore[arg-type]


def _mock_response(status: int = 200, text: str = "ok") -> AsyncMock:
    resp = AsyncMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def _channel_with_session(status: int = 200) -> tuple[DiscordChannel, MagicMock]:
    ch = DiscordChannel(_dc_config(), "123")
    mock_session = MagicMock()
    mock_session.post = MagicMock(return_value=_mock_response(status))
    mock_session.closed = False
    ch._session = mock_session
    return ch, mock_session


# ── DiscordChannel ─────────────────────────────────────────────


class TestDiscordChannel:
    async def test_send_success(self) -> None:
        ch, mock_session = _channel_with_session(200)

        result = await ch.send(_msg())
        assert result is True
        call_args = mock_session.post.call_args
        assert call_args[0][0] == "https://discord.test/api/v10/channels/123/messages"
        payload = call_args[1]["json"]
        assert "embeds" in payload
        assert payload["embeds"][0]["title"] == "TEST_TITLE"
        assert payload["embeds"][0]["description"] == "test body"

    async def test_send_204_is_success(self) -> None:
        ch, _ = _channel_with_session(204)
        assert await ch.send(_msg()) is True

    async def test_send_failure_status(self) -> None:
        ch, _ = _channel_with_session(403)
        assert await ch.send(_msg()) is False

    async def test_send_exception(self) -> None:
        ch = DiscordChannel(_dc_config(), "123")
        mock_session = MagicMock()
        mock_session.post = MagicMock(side_effect=Exception("network error"))
        mock_session.closed = False
        ch._session = mock_session

        assert await ch.send(_msg()) is False

    async def test_send_text(self) -> None:
        ch, mock_session = _channel_with_session(200)

        assert await ch.send_text("hello") is True
        assert mock_session.post.call_args[1]["json"] == {"content": "hello"}

    async def test_send_text_is_clipped(self) -> None:
        ch, mock_session = _channel_with_session(200)

        await ch.send_text("x" * 2500)
        content = mock_session.post.call_args[1]["json"]["content"]
        assert len(content) == 2000
        assert content.endswith("…")

    async def test_explicit_color_wins(self) -> None:
        ch, mock_session = _channel_with_session(200)

        await ch.send(_msg(color=5814783))
        assert mock_session.post.call_args[1]["json"]["embeds"][0]["color"] == 5814783

    async def test_default_color(self) -> None:
        ch, mock_session = _channel_with_session(200)

        await ch.send(_msg())
        embed = mock_session.post.call_args[1]["json"]["embeds"][0]
        assert embed["color"] == DEFAULT_EMBED_COLOR
        assert embed["title"] == "TEST_TITLE"

    async def test_long_title_is_clipped(self) -> None:
        ch, mock_session = _channel_with_session(200)

        await ch.send(_msg(title="t" * 300))
        title = mock_session.post.call_args[1]["json"]["embeds"][0]["title"]
        assert len(title) == 256
        assert title.endswith("…")

    async def test_embed_fields_inline(self) -> None:
        ch, mock_session = _channel_with_session(200)

        await ch.send(_msg(fields={"State": "Voting", "Empty": ""}))
        fields = mock_session.post.call_args[1]["json"]["embeds"][0]["fields"]
        assert fields[0] == {"name": "State", "value": "Voting", "inline": True}
        assert fields[1]["value"] == "-"

    async def test_auth_header(self) -> None:
        ch = DiscordChannel(_dc_config(), "123")
        session = ch._get_session()
        try:
            assert session.headers["Authorization"] == "Bot fake-token"
        finally:
            await ch.close()

    async def test_close(self) -> None:
        ch = DiscordChannel(_dc_config(), "123")
        mock_session = AsyncMock()
        mock_session.closed = False
        ch._session = mock_session

        await ch.close()
        mock_session.close.assert_awaited_once()
        assert ch._session is None

    async def test_close_no_session(self) -> None:
        ch = DiscordChannel(_dc_config(), "123")
        await ch.close()

    def test_channel_id(self) -> None:
        assert DiscordChannel(_dc_config(), "987").channel_id == "987"
