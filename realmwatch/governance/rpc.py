"""Minimal async Solana JSON-RPC client — only what proposal polling needs."""

from __future__ import annotations

import base64
import itertools
from types import TracebackType
from typing import Any

import httpx
import structlog

from realmwatch.core.config import SolanaConfig
from realmwatch.governance.exceptions import FatalUpstreamError, RateLimitedError

logger = structlog.stdlib.get_logger()

# Some RPC providers wrap throttling in a JSON-RPC error instead of HTTP 429.
_RATE_LIMIT_CODES = {429, -32429}


def memcmp(offset: int, data: str) -> dict[str, Any]:
    """Build a ``getProgramAccounts`` memcmp filter (``data`` is base58)."""
    return {"memcmp": {"offset": offset, "bytes": data}}


def _is_rate_limit_error(error: dict[str, Any]) -> bool:
    if error.get("code") in _RATE_LIMIT_CODES:
        return True
    return "too many requests" in str(error.get("message", "")).lower()


class SolanaRpcClient:
    """Async JSON-RPC client over httpx.

    Usage::

        async with SolanaRpcClient(settings.solana) as rpc:
            accounts = await rpc.get_program_accounts(program_id, [memcmp(1, realm)])
    """

    def __init__(self, config: SolanaConfig | None = None) -> None:
        cfg = config or SolanaConfig()
        self._url = cfg.rpc_url
        self._commitment = cfg.commitment
        self._timeout = cfg.timeout_secs
        self._http: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    @property
    def connected(self) -> bool:
        """Whether the HTTP client is active."""
        return self._http is not None and not self._http.is_closed

    async def connect(self) -> httpx.AsyncClient:
        """Create the httpx async client, or return the open one."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._http

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> SolanaRpcClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def call(self, method: str, params: list[Any]) -> Any:
        """Issue one JSON-RPC request and return its ``result``.

        Raises:
            RateLimitedError: the node throttled the request.
            FatalUpstreamError: any other transport, HTTP or RPC failure.
        """
        http = await self.connect()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            response = await http.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            raise FatalUpstreamError(f"{method} request failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitedError(f"{method} rate limited (HTTP 429)")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FatalUpstreamError(
                f"{method} returned HTTP {exc.response.status_code}"
            ) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise FatalUpstreamError(f"{method} returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise FatalUpstreamError(f"{method} returned an unexpected body")

        error = body.get("error")
        if isinstance(error, dict):
            if _is_rate_limit_error(error):
                raise RateLimitedError(f"{method} rate limited: {error.get('message', '')}")
            raise FatalUpstreamError(
                f"{method} failed: [{error.get('code')}] {error.get('message', '')}"
            )

        return body.get("result")

    async def get_program_accounts(
        self,
        program_id: str,
        filters: list[dict[str, Any]] | None = None,
    ) -> list[tuple[str, bytes]]:
        """Return ``(pubkey, raw account data)`` for every matching account."""
        config: dict[str, Any] = {
            "encoding": "base64",
            "commitment": self._commitment,
        }
        if filters:
            config["filters"] = filters

        result = await self.call("getProgramAccounts", [program_id, config])
        if not isinstance(result, list):
            raise FatalUpstreamError("getProgramAccounts returned a non-list result")

        accounts: list[tuple[str, bytes]] = []
        for entry in result:
            try:
                pubkey = str(entry["pubkey"])
                encoded, encoding = entry["account"]["data"]
            except (KeyError, TypeError, ValueError) as exc:
                raise FatalUpstreamError("getProgramAccounts entry is malformed") from exc
            if encoding != "base64":
                raise FatalUpstreamError(f"Unexpected account encoding: {encoding}")
            accounts.append((pubkey, base64.b64decode(encoded)))

        logger.debug(
            "program_accounts_fetched",
            program_id=program_id,
            count=len(accounts),
            filters=len(filters or []),
        )
        return accounts
