"""Tests for fusion-bot configuration."""

import tempfile
from pathlib import Path

from fusion_bot.config import BotConfig, DiscordConfig, RaiderIoConfig, WarcraftConfig


class TestBotConfig:
    """Test configuration loading and parsing."""

    def test_default_config(self):
        """Default config should have sensible values."""
        config = BotConfig()

        assert config.store.db_path == Path("fusion.db")
        assert config.store.collection == "quotes"
        assert config.discord.token_env == "DISCORD_TOKEN"
        assert config.warcraft.region == "us"
        assert config.raiderio.base_url == "https://raider.io/api/v1"

    def test_from_dict(self):
        """Should parse config from dictionary."""
        data = {
            "discord": {"application_id": "1234", "guild_id": 5678, "status": "quoting"},
            "store": {"db_path": "/tmp/q.db", "collection": "wisdom", "busy_timeout_seconds": 5},
            "warcraft": {"region": "eu", "locale": "de_DE", "client_id": "abc"},
            "raiderio": {"region": "eu", "default_fields": "gear", "api_key_env": "RIO_KEY"},
        }

        config = BotConfig.from_dict(data)

        assert config.discord.application_id == 1234
        assert config.discord.guild_id == 5678
        assert config.discord.status == "quoting"
        assert config.store.db_path == Path("/tmp/q.db")
        assert config.store.collection == "wisdom"
        assert config.store.busy_timeout_seconds == 5
        assert config.warcraft.region == "eu"
        assert config.warcraft.locale == "de_DE"
        assert config.warcraft.client_id == "abc"
        assert config.raiderio.default_fields == "gear"

    def test_empty_sections_use_defaults(self):
        """A section present but empty in YAML should not break loading."""
        config = BotConfig.from_dict({"discord": None, "store": None})
        assert config.store.collection == "quotes"
        assert config.discord.token_env == "DISCORD_TOKEN"

    def test_blank_db_path(self):
        """A blank path is kept as missing so the store can reject it."""
        config = BotConfig.from_dict({"store": {"db_path": ""}})
        assert config.store.db_path is None

    def test_from_yaml(self):
        """Should load config from YAML file."""
        yaml_content = """
discord:
  token_env: FUSION_TOKEN
store:
  db_path: quotes.db
raiderio:
  region: kr
"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(yaml_content)
            f.flush()
            config = BotConfig.from_yaml(Path(f.name))

        assert config.discord.token_env == "FUSION_TOKEN"
        assert config.store.db_path == Path("quotes.db")
        assert config.raiderio.region == "kr"

    def test_from_yaml_missing_file(self, tmp_path):
        """A missing file yields the defaults."""
        config = BotConfig.from_yaml(tmp_path / "nope.yaml")
        assert config.store.collection == "quotes"

    def test_to_dict_omits_secrets(self, monkeypatch):
        """Secrets never appear in the loggable dict."""
        monkeypatch.setenv("DISCORD_TOKEN", "super-secret-token")
        config = BotConfig.from_dict(
            {"warcraft": {"client_id": "id", "client_secret": "shh"}, "raiderio": {"api_key": "k"}}
        )

        data = config.to_dict()
        rendered = repr(data)

        assert data["discord"]["token_configured"] is True
        assert "super-secret-token" not in rendered
        assert "shh" not in rendered
        assert "'k'" not in rendered


class TestSecrets:
    """Test secret resolution from config or environment."""

    def test_token_from_env(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "from-env")
        assert DiscordConfig().get_token() == "from-env"

    def test_token_from_config_wins(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "from-env")
        assert DiscordConfig(token="inline").get_token() == "inline"

    def test_token_missing(self, monkeypatch):
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)
        assert DiscordConfig().get_token() is None

    def test_client_secret_from_env(self, monkeypatch):
        monkeypatch.setenv("BLIZZARD_CLIENT_SECRET", "bnet")
        assert WarcraftConfig().get_client_secret() == "bnet"

    def test_client_secret_missing(self, monkeypatch):
        monkeypatch.delenv("BLIZZARD_CLIENT_SECRET", raising=False)
        assert WarcraftConfig().get_client_secret() == ""

    def test_raiderio_api_key(self, monkeypatch):
        monkeypatch.setenv("RIO_KEY", "rio")
        assert RaiderIoConfig(api_key_env="RIO_KEY").get_api_key() == "rio"
        assert RaiderIoConfig().get_api_key() is None
