"""JSON-file implementation of the durable store.

Layout (under ``data_dir``)::

    config.json          {"realm_id": ..., "program_id": ..., "notification_channel_id": ...}
    proposal_store.json  ["<proposal id>", ...]

Each file is rewritten through a temp file + ``os.replace`` so a crash
never leaves a truncated record behind.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from realmwatch.core.config import StorageConfig
from realmwatch.core.types import MonitorConfig
from realmwatch.store.base import StateStore
from realmwatch.store.exceptions import StorageError

logger = structlog.get_logger(__name__)


def _write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    os.replace(tmp_path, path)


def _read_json(path: Path) -> Any | None:
    """Return the decoded file, or None when it does not exist."""
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        return None
    if not text.strip():
        return None
    return json.loads(text)


def _remove(path: Path) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


class JsonStateStore(StateStore):
    """Durable store backed by two JSON files.

    Config writes and seen-set writes are serialized by separate locks;
    ``reset_all`` holds both.

    Usage::

        store = JsonStateStore.from_config(settings.storage)
        if not await store.is_known(proposal.id):
            ...
            await store.mark_known(proposal.id)
    """

    def __init__(
        self,
        data_dir: str | Path,
        config_file: str = "config.json",
        seen_file: str = "proposal_store.json",
    ) -> None:
        self._data_dir = Path(data_dir)
        self._config_path = self._data_dir / config_file
        self._seen_path = self._data_dir / seen_file
        self._config_lock = asyncio.Lock()
        self._seen_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: StorageConfig) -> JsonStateStore:
        return cls(
            data_dir=config.data_dir,
            config_file=config.config_file,
            seen_file=config.seen_file,
        )

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def seen_path(self) -> Path:
        return self._seen_path

    # ── Config ──────────────────────────────────────────────────

    async def load_config(self) -> MonitorConfig:
        try:
            raw = await asyncio.to_thread(_read_json, self._config_path)
        except (OSError, ValueError):
            logger.warning("config_load_failed", path=str(self._config_path), exc_info=True)
            return MonitorConfig()

        if not isinstance(raw, dict):
            return MonitorConfig()

        try:
            return MonitorConfig(**raw)
        except ValidationError:
            logger.warning("config_invalid", path=str(self._config_path))
            return MonitorConfig()

    async def save_config(self, config: MonitorConfig) -> None:
        payload = config.model_dump(exclude_none=True)
        async with self._config_lock:
            try:
                await asyncio.to_thread(_write_json_atomic, self._config_path, payload)
            except OSError as exc:
                raise StorageError(f"Failed to write {self._config_path}: {exc}") from exc
        logger.info("config_saved", **payload)

    # ── Seen set ────────────────────────────────────────────────

    def _read_seen(self) -> list[str]:
        try:
            raw = _read_json(self._seen_path)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to read {self._seen_path}: {exc}") from exc
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise StorageError(f"{self._seen_path} does not contain a JSON list")
        return [str(item) for item in raw]

    async def is_known(self, proposal_id: str) -> bool:
        seen = await asyncio.to_thread(self._read_seen)
        return proposal_id in seen

    async def known_ids(self) -> set[str]:
        return set(await asyncio.to_thread(self._read_seen))

    async def mark_known(self, proposal_id: str) -> None:
        async with self._seen_lock:
            seen = await asyncio.to_thread(self._read_seen)
            if proposal_id in seen:
                return
            seen.append(proposal_id)
            try:
                await asyncio.to_thread(_write_json_atomic, self._seen_path, seen)
            except OSError as exc:
                raise StorageError(f"Failed to write {self._seen_path}: {exc}") from exc
        logger.info("proposal_marked_known", proposal_id=proposal_id, total=len(seen))

    # ── Reset ───────────────────────────────────────────────────

    async def reset_all(self) -> None:
        async with self._config_lock, self._seen_lock:
            try:
                # Seen set first; a partial reset may keep the config, never stale ids.
                await asyncio.to_thread(_remove, self._seen_path)
                await asyncio.to_thread(_remove, self._config_path)
            except OSError as exc:
                raise StorageError(f"Failed to reset state in {self._data_dir}: {exc}") from exc
        logger.info("state_reset", data_dir=str(self._data_dir))
