"""
Configuration management for the intelligence marketplace.

Loads configuration from YAML with ZERO defaults.
Every value must be explicitly specified or loading fails.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict

REDACTION_MARKER = "***REDACTED***"
CONFIG_ENV_VAR = "MARKET_CONFIG_PATH"
DEFAULT_CONFIG_FILENAME = "config.yaml"

_SENSITIVE_FRAGMENTS: tuple[str, ...] = ("key", "secret", "token", "password")

# Project root when running from a source checkout: src/intel_market/config.py -> <root>
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class ServiceConfig(BaseModel):
    """Service identity configuration."""

    model_config = ConfigDict(extra="forbid")
    name: str
    version: str


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")
    level: str
    directory: str | None


class MarketplaceConfig(BaseModel):
    """Registry, catalog, and ledger bounds."""

    model_config = ConfigDict(extra="forbid")
    initial_reputation: int
    max_reputation: int
    min_rating: int
    max_rating: int
    min_price: float
    max_price: float
    max_name_length: int
    max_description_length: int
    max_title_length: int
    max_review_length: int
    max_top_agents: int
    categories: list[str]


class RankingConfig(BaseModel):
    """Discovery ranking weights."""

    model_config = ConfigDict(extra="forbid")
    quality_weight: float
    recency_weight: float


class TransparencyConfig(BaseModel):
    """Commit-reveal configuration."""

    model_config = ConfigDict(extra="forbid")
    commitment_ttl_seconds: int
    explorer_url: str


class PrivacyConfig(BaseModel):
    """Privacy collaborator connection and shielding policy."""

    model_config = ConfigDict(extra="forbid")
    base_url: str
    shield_path: str
    reveal_path: str
    timeout_seconds: int
    shield_price_threshold: float
    shield_reputation_threshold: int


class MemoryConfig(BaseModel):
    """Memory collaborator connection configuration."""

    model_config = ConfigDict(extra="forbid")
    base_url: str
    record_path: str
    search_path: str
    timeout_seconds: int
    similar_limit: int


class Settings(BaseModel):
    """
    Root configuration container.

    All fields are REQUIRED. No defaults exist.
    Missing fields cause immediate failure.
    """

    model_config = ConfigDict(extra="forbid")
    service: ServiceConfig
    logging: LoggingConfig
    marketplace: MarketplaceConfig
    ranking: RankingConfig
    transparency: TransparencyConfig
    privacy: PrivacyConfig
    memory: MemoryConfig


def get_config_path() -> Path:
    """
    Determine configuration file path.

    Order: MARKET_CONFIG_PATH env var, ./config.yaml, then the project root.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    cwd_path = Path.cwd() / DEFAULT_CONFIG_FILENAME
    if cwd_path.exists():
        return cwd_path

    return _PROJECT_ROOT / DEFAULT_CONFIG_FILENAME


def load_settings(config_path: Path) -> Settings:
    """Load and validate settings from a YAML file."""
    raw = yaml.safe_load(config_path.read_text())
    if not isinstance(raw, dict):
        msg = f"Invalid config file: {config_path}"
        raise ValueError(msg)
    return Settings(**raw)


# Module-level mutable container to avoid `global` statement
_settings_holder: dict[str, Settings] = {}


def get_settings() -> Settings:
    """Load settings once and return the cached instance afterwards."""
    settings = _settings_holder.get("current")
    if settings is None:
        settings = load_settings(get_config_path())
        _settings_holder["current"] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop cached settings. Used in testing."""
    _settings_holder.pop("current", None)


def _redact(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return {k: _redact(v, k) for k, v in value.items()}
    if any(fragment in key.lower() for fragment in _SENSITIVE_FRAGMENTS) and value:
        return REDACTION_MARKER
    return value


def get_safe_config(settings: Settings | None = None) -> dict[str, Any]:
    """Get configuration with sensitive values redacted. Defaults to the cached settings."""
    if settings is None:
        settings = get_settings()
    dumped = settings.model_dump()
    return {section: _redact(values, section) for section, values in dumped.items()}
