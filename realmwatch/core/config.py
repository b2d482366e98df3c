"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

# Environment variables that take precedence over the YAML file.
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SOLANA_RPC_URL": ("solana", "rpc_url"),
    "DISCORD_TOKEN": ("discord", "bot_token"),
}


class SolanaConfig(BaseModel):
    """Solana JSON-RPC endpoint configuration."""

    rpc_url: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    timeout_secs: float = 30.0


class FetcherConfig(BaseModel):
    """Retry policy for the proposal fetcher."""

    max_retries: int = 5
    initial_backoff_ms: int = 500


class MonitorConfigSettings(BaseModel):
    """Scheduler configuration."""

    interval_secs: float = 30 * 60


class StorageConfig(BaseModel):
    """Where monitor configuration and seen proposal ids are persisted."""

    data_dir: str = "data"
    config_file: str = "config.json"
    seen_file: str = "proposal_store.json"


class DiscordConfig(BaseModel):
    """Discord bot credentials and REST endpoint."""

    bot_token: SecretStr = SecretStr("")
    api_base: str = "https://discord.com/api/v10"
    command_prefix: str = "!"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    solana: SolanaConfig = SolanaConfig()
    fetcher: FetcherConfig = FetcherConfig()
    monitor: MonitorConfigSettings = MonitorConfigSettings()
    storage: StorageConfig = StorageConfig()
    discord: DiscordConfig = DiscordConfig()
    logging: LoggingConfig = LoggingConfig()


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        section_data = data.get(section)
        if not isinstance(section_data, dict):
            section_data = {}
            data[section] = section_data
        section_data[key] = value
    return data


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**_apply_env_overrides(data))
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
