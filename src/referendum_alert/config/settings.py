"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``REFALERT_``, nested via ``__``)
2. YAML config file (``REFALERT_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class CacheEngine(enum.StrEnum):
    """Supported cache backends."""

    MEMORY = "memory"
    REDIS = "redis"


class Network(enum.StrEnum):
    """Relay-chain networks a referendum can live on."""

    POLKADOT = "dot"
    KUSAMA = "ksm"

    @classmethod
    def parse(cls, value: str | None) -> Network | None:
        """Parse a user-supplied network name.

        Accepts the short codes and the full chain names, case-insensitive.
        Returns None for anything else.
        """
        if not value:
            return None
        token = value.strip().lower()
        if token in ("dot", "polkadot"):
            return cls.POLKADOT
        if token in ("ksm", "kusama"):
            return cls.KUSAMA
        return None

    @property
    def display_name(self) -> str:
        return "Polkadot" if self is Network.POLKADOT else "Kusama"

    @property
    def token_symbol(self) -> str:
        return "DOT" if self is Network.POLKADOT else "KSM"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_SERVER__",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8787


class DatabaseConfig(BaseSettings):
    """Database settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./referendum_alert.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class CacheConfig(BaseSettings):
    """Cache settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_CACHE__",
        case_sensitive=False,
    )

    engine: CacheEngine = Field(
        default=CacheEngine.MEMORY,
        description="Cache backend: memory or redis",
    )
    url: str = "redis://localhost:6379/0"
    max_connections: int = 10


class TelegramConfig(BaseSettings):
    """Telegram Bot API settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_TELEGRAM__",
        case_sensitive=False,
    )

    token: str = ""
    webhook_secret: str = ""
    api_url: str = "https://api.telegram.org"
    timeout: float = 10.0


class SourcesConfig(BaseSettings):
    """Vote data provider settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_SOURCES__",
        case_sensitive=False,
    )

    subscan_api_key: str = ""
    subscan_rows: int = 50
    request_timeout: float = 15.0
    provider_order: list[str] = Field(
        default_factory=lambda: ["subscan", "polkassembly"],
        description="Provider names in fallback rank order",
    )


class NotifierConfig(BaseSettings):
    """Notification pass settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_NOTIFIER__",
        case_sensitive=False,
    )

    poll_interval: float = 60.0
    max_concurrent_targets: int = 4
    pass_deadline: float = Field(
        default=50.0,
        description="Seconds after which a pass stops starting new targets (0 = no deadline)",
    )
    lock_ttl: int = 300


class IdentityConfig(BaseSettings):
    """On-chain identity display-name lookup settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_IDENTITY__",
        case_sensitive=False,
    )

    enabled: bool = True
    ttl_seconds: int = 7 * 24 * 60 * 60
    hosts: list[str] = Field(
        default_factory=lambda: [
            "https://polkadot.api.subscan.io",
            "https://kusama.api.subscan.io",
            "https://people-polkadot.api.subscan.io",
            "https://people-kusama.api.subscan.io",
        ]
    )


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


class TaskConfig(BaseSettings):
    """Background cron settings."""

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_TASK__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``REFALERT_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="REFALERT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    admin_key: str = ""
    config_path: str = ""

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    task: TaskConfig = Field(default_factory=TaskConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                merged = {**val, **values[key]}
                values[key] = merged
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))

    @property
    def effective_admin_key(self) -> str:
        """Shared secret guarding the admin routes.

        Falls back to the Telegram webhook secret when no dedicated key is set.
        """
        return self.admin_key or self.telegram.webhook_secret
