"""
Configuration for fusion-bot.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path("fusion.yaml")


def _from_env(env_name: str | None) -> str | None:
    if env_name:
        return os.environ.get(env_name)
    return None


@dataclass
class DiscordConfig:
    """Discord connection configuration."""

    token: str | None = None
    token_env: str | None = "DISCORD_TOKEN"
    application_id: int | None = None
    guild_id: int | None = None  # Sync commands to one guild instead of globally
    status: str | None = None

    def get_token(self) -> str | None:
        """Get bot token from config or environment."""
        return self.token or _from_env(self.token_env)


@dataclass
class StoreConfig:
    """Quote store configuration."""

    db_path: Path | None = field(default_factory=lambda: Path("fusion.db"))
    collection: str = "quotes"
    busy_timeout_seconds: float = 30.0


@dataclass
class WarcraftConfig:
    """Blizzard World of Warcraft API configuration."""

    region: str = "us"
    locale: str = "en_US"
    client_id: str = ""
    client_secret: str = ""
    client_secret_env: str | None = "BLIZZARD_CLIENT_SECRET"
    timeout_seconds: float = 10.0

    def get_client_secret(self) -> str:
        """Get OAuth client secret from config or environment."""
        return self.client_secret or _from_env(self.client_secret_env) or ""


@dataclass
class RaiderIoConfig:
    """Raider.IO API configuration."""

    region: str = "us"
    base_url: str = "https://raider.io/api/v1"
    default_fields: str | None = None  # e.g. "mythic_plus_scores_by_season:current"
    api_key: str | None = None
    api_key_env: str | None = None
    timeout_seconds: float = 10.0

    def get_api_key(self) -> str | None:
        """Get API key from config or environment."""
        return self.api_key or _from_env(self.api_key_env)


@dataclass
class BotConfig:
    """Complete fusion-bot configuration."""

    discord: DiscordConfig = field(default_factory=DiscordConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    warcraft: WarcraftConfig = field(default_factory=WarcraftConfig)
    raiderio: RaiderIoConfig = field(default_factory=RaiderIoConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BotConfig":
        """Create config from a dictionary (e.g., from YAML)."""
        config = cls()

        if "discord" in data:
            discord = data["discord"] or {}
            config.discord = DiscordConfig(
                token=discord.get("token"),
                token_env=discord.get("token_env", config.discord.token_env),
                application_id=_optional_int(discord.get("application_id")),
                guild_id=_optional_int(discord.get("guild_id")),
                status=discord.get("status"),
            )

        if "store" in data:
            store = data["store"] or {}
            db_path = store.get("db_path", str(config.store.db_path))
            config.store = StoreConfig(
                db_path=Path(db_path) if db_path else None,
                collection=store.get("collection", "quotes"),
                busy_timeout_seconds=store.get("busy_timeout_seconds", 30.0),
            )

        if "warcraft" in data:
            wow = data["warcraft"] or {}
            config.warcraft = WarcraftConfig(
                region=wow.get("region", "us"),
                locale=wow.get("locale", "en_US"),
                client_id=wow.get("client_id", ""),
                client_secret=wow.get("client_secret", ""),
                client_secret_env=wow.get("client_secret_env", config.warcraft.client_secret_env),
                timeout_seconds=wow.get("timeout_seconds", 10.0),
            )

        if "raiderio" in data:
            rio = data["raiderio"] or {}
            config.raiderio = RaiderIoConfig(
                region=rio.get("region", "us"),
                base_url=rio.get("base_url", config.raiderio.base_url),
                default_fields=rio.get("default_fields"),
                api_key=rio.get("api_key"),
                api_key_env=rio.get("api_key_env"),
                timeout_seconds=rio.get("timeout_seconds", 10.0),
            )

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "BotConfig":
        """Load config from a YAML file. A missing file yields the defaults."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for logging. Secrets are left out."""
        return {
            "discord": {
                "application_id": self.discord.application_id,
                "guild_id": self.discord.guild_id,
                "status": self.discord.status,
                "token_configured": self.discord.get_token() is not None,
            },
            "store": {
                "db_path": str(self.store.db_path) if self.store.db_path else None,
                "collection": self.store.collection,
            },
            "warcraft": {
                "region": self.warcraft.region,
                "locale": self.warcraft.locale,
                "client_id": self.warcraft.client_id,
            },
            "raiderio": {
                "region": self.raiderio.region,
                "base_url": self.raiderio.base_url,
                "default_fields": self.raiderio.default_fields,
            },
        }


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)
