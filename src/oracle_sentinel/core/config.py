"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from oracle_sentinel.core.exceptions import ConfigError
from oracle_sentinel.core.models import OracleName


class NotifierBackend(StrEnum):
    """Supported notification transports."""

    SMTP = "smtp"
    LOG = "log"


class OracleConfig(BaseModel):
    """Access settings for one upstream oracle.

    `assets` maps canonical tickers to the oracle's own identifiers. Leave it
    unset to use the built-in table from ``oracle_sentinel.oracles.assets``.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    base_url: str
    request_timeout: float = 10.0
    rate_limit_per_minute: int = 30
    rate_limit_backoff: float = 5.0
    assets: dict[str, str] | None = None

    @field_validator("base_url")
    @classmethod
    def base_url_is_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @field_validator("request_timeout", "rate_limit_backoff")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("rate_limit_per_minute")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit_per_minute must be >= 1")
        return v

    @field_validator("assets")
    @classmethod
    def tickers_uppercase(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        if v is None:
            return None
        table = {k.strip().upper(): str(ident) for k, ident in v.items()}
        if "" in table:
            raise ValueError("asset tickers must not be empty")
        return table


_DEFAULT_BASE_URLS: dict[str, str] = {
    "chainlink": "https://api.coingecko.com/api/v3",
    "redstone": "https://api.redstone.finance",
    "pyth": "https://hermes.pyth.network",
}


class OraclesConfig(BaseModel):
    """Per-oracle configuration."""

    model_config = ConfigDict(frozen=True)

    chainlink: OracleConfig = OracleConfig(base_url=_DEFAULT_BASE_URLS["chainlink"])
    redstone: OracleConfig = OracleConfig(base_url=_DEFAULT_BASE_URLS["redstone"])
    pyth: OracleConfig = OracleConfig(base_url=_DEFAULT_BASE_URLS["pyth"])

    @model_validator(mode="before")
    @classmethod
    def fill_default_base_urls(cls, data: object) -> object:
        """Partial oracle sections (e.g. only `enabled`) keep the default URL."""
        if not isinstance(data, dict):
            return data
        filled = dict(data)
        for key, url in _DEFAULT_BASE_URLS.items():
            section = filled.get(key)
            if isinstance(section, dict) and "base_url" not in section:
                filled[key] = {**section, "base_url": url}
        return filled

    def for_oracle(self, oracle: OracleName) -> OracleConfig:
        return getattr(self, oracle.name.lower())


class EvaluatorConfig(BaseModel):
    """Alert evaluation pacing."""

    model_config = ConfigDict(frozen=True)

    inter_alert_delay: float = 2.0

    @field_validator("inter_alert_delay")
    @classmethod
    def delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("inter_alert_delay must be >= 0")
        return v


class SchedulerConfig(BaseModel):
    """Cadence of the two periodic jobs."""

    model_config = ConfigDict(frozen=True)

    alert_interval_seconds: int = 30
    history_minute: int = 0
    run_on_start: bool = True

    @field_validator("alert_interval_seconds")
    @classmethod
    def interval_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("alert_interval_seconds must be >= 1")
        return v

    @field_validator("history_minute")
    @classmethod
    def minute_in_hour(cls, v: int) -> int:
        if v < 0 or v > 59:
            raise ValueError("history_minute must be between 0 and 59")
        return v


class StorageConfig(BaseModel):
    """Document store configuration."""

    model_config = ConfigDict(frozen=True)

    sqlite_path: str = "./data/oracle_sentinel.db"


class NotifierConfig(BaseModel):
    """Email delivery configuration."""

    model_config = ConfigDict(frozen=True)

    backend: NotifierBackend = NotifierBackend.LOG
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_tls: bool = True
    username: str | None = None
    password: str | None = None
    sender_name: str = "Alertify"
    timeout: float = 30.0

    @model_validator(mode="after")
    def smtp_requires_account(self) -> NotifierConfig:
        if self.backend == NotifierBackend.SMTP and not self.username:
            raise ValueError("username is required when backend is 'smtp'")
        return self


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 1056
    api_key: str | None = None


class SentinelConfig(BaseModel):
    """Root configuration for the entire oracle-sentinel system."""

    model_config = ConfigDict(frozen=True)

    oracles: OraclesConfig = OraclesConfig()
    evaluator: EvaluatorConfig = EvaluatorConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    storage: StorageConfig = StorageConfig()
    notifier: NotifierConfig = NotifierConfig()
    api: APIConfig = APIConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "ORACLE_SENTINEL_",
) -> SentinelConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (ORACLE_SENTINEL_NOTIFIER__PASSWORD, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        ORACLE_SENTINEL_EVALUATOR__INTER_ALERT_DELAY=1.5
            ->  evaluator.inter_alert_delay = 1.5
    """
    try:
        yaml_path = _resolve_config_path(config_path)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return SentinelConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_path = os.environ.get("ORACLE_SENTINEL_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from ORACLE_SENTINEL_CONFIG not found: {env_path}",
                context={"field": "ORACLE_SENTINEL_CONFIG", "value": env_path},
            )
        return p

    default = Path("oracle-sentinel.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    """Load and parse YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int/float.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        # Skip the CONFIG env var itself
        if parts == ["config"]:
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            nested = target.get(part)
            # Copy so YAML-derived nested dicts are never mutated in place
            target[part] = dict(nested) if isinstance(nested, dict) else {}
            target = target[part]
        target[parts[-1]] = cast_value

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
