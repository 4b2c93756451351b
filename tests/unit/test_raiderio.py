"""Tests for the Raider.IO client and data models."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import HTTPStatusError

from fusion_bot.raiderio import (
    RaiderIoCharacterProfile,
    RaiderIoClient,
    RaiderIoGuildProfile,
    character_profile_url,
    guild_profile_url,
)

CHARACTER_RESPONSE = {
    "name": "Thrall",
    "race": "Orc",
    "class": "Shaman",
    "active_spec_name": "Enhancement",
    "region": "us",
    "realm": "Area 52",
    "profile_url": "https://raider.io/characters/us/area-52/Thrall",
    "last_crawled_at": "2024-05-01T12:30:00.000Z",
    "gear": {"item_level_equipped": 489.5, "item_level_total": 491},
    "mythic_plus_ranks": {"overall": {"world": 1234, "region": 456, "realm": 7}},
    "mythic_plus_scores_by_season": [
        {"season": "season-df-4", "scores": {"all": 3100.5, "dps": 3100.5, "healer": 0}},
    ],
}

GUILD_RESPONSE = {
    "name": "Fusion",
    "faction": "horde",
    "region": "us",
    "realm": "Area 52",
    "raid_progression": {
        "nerubar-palace": {
            "summary": "8/8 H",
            "total_bosses": 8,
            "normal_bosses_killed": 8,
            "heroic_bosses_killed": 8,
            "mythic_bosses_killed": 2,
        }
    },
    "members": [{"rank": 0}, {"rank": 1}, {"rank": 2}],
}


@pytest.fixture
def mock_response():
    """Create a mock httpx response."""

    def _make_response(json_data, status_code=200):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = json_data
        response.raise_for_status = MagicMock()
        if status_code >= 400:
            response.raise_for_status.side_effect = HTTPStatusError(
                "Error", request=MagicMock(), response=response
            )
        return response

    return _make_response


class TestRaiderIoCharacterProfile:
    """Test character profile parsing."""

    def test_from_dict(self):
        profile = RaiderIoCharacterProfile.from_dict(CHARACTER_RESPONSE)
        assert profile.name == "Thrall"
        assert profile.character_class == "Shaman"
        assert profile.active_spec_name == "Enhancement"
        assert profile.gear.item_level_equipped == 489.5
        assert profile.overall_rank.world == 1234
        assert profile.current_score == 3100.5
        assert profile.last_crawled_at.year == 2024

    def test_from_dict_minimal(self):
        profile = RaiderIoCharacterProfile.from_dict({"name": "Bare"})
        assert profile.gear is None
        assert profile.overall_rank is None
        assert profile.current_score is None
        assert profile.last_crawled_at is None

    def test_bad_timestamp_is_ignored(self):
        profile = RaiderIoCharacterProfile.from_dict({"name": "X", "last_crawled_at": "soon"})
        assert profile.last_crawled_at is None

    def test_profile_url_fallback(self):
        """Without a profile_url the link is built from slugs."""
        profile = RaiderIoCharacterProfile(name="Thrall", realm="Area 52", region="EU")
        assert character_profile_url(profile) == "https://raider.io/characters/eu/area-52/thrall"

    def test_profile_url_prefers_api_value(self):
        profile = RaiderIoCharacterProfile.from_dict(CHARACTER_RESPONSE)
        assert character_profile_url(profile) == CHARACTER_RESPONSE["profile_url"]


class TestRaiderIoGuildProfile:
    """Test guild profile parsing."""

    def test_from_dict(self):
        profile = RaiderIoGuildProfile.from_dict(GUILD_RESPONSE)
        assert profile.name == "Fusion"
        assert profile.member_count == 3
        assert profile.raid_progression["nerubar-palace"].summary == "8/8 H"
        assert profile.raid_progression["nerubar-palace"].mythic_bosses_killed == 2

    def test_guild_url(self):
        profile = RaiderIoGuildProfile.from_dict(GUILD_RESPONSE)
        assert guild_profile_url(profile) == "https://raider.io/guilds/us/area-52/fusion"


class TestRaiderIoClient:
    """Test RaiderIoClient class."""

    def test_rejects_unknown_region(self):
        with pytest.raises(ValueError):
            RaiderIoClient(region="atlantis")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("realm,name", [("", "Thrall"), ("Area 52", "  "), (None, "x")])
    async def test_get_character_requires_input(self, realm, name):
        client = RaiderIoClient()
        with pytest.raises(ValueError):
            await client.get_character(realm, name)

    @pytest.mark.asyncio
    async def test_get_character(self, mock_response):
        """Should send region, realm and name as query parameters."""
        client = RaiderIoClient(default_fields="gear,mythic_plus_ranks", api_key="secret")

        with patch("httpx.AsyncClient") as MockClient:
            mock_client = AsyncMock()
            mock_client.get.return_value = mock_response(CHARACTER_RESPONSE)
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            MockClient.return_value = mock_client

            profile = await client.get_character(" Area 52 ", "Thrall", region="US")

            assert profile is not None
            assert profile.name == "Thrall"

            args, kwargs = mock_client.get.call_args
            assert args[0] == "https://raider.io/api/v1/characters/profile"
            assert kwargs["params"] == {
                "region": "us",
                "realm": "Area 52",
                "name": "Thrall",
                "fields": "gear,mythic_plus_ranks",
            }
            assert kwargs["headers"] == {"x-api-key": "secret"}

    @pytest.mark.asyncio
    async def test_get_character_not_found(self, mock_response):
        """Should return None on 404."""
        client = RaiderIoClient()

        with patch("httpx.AsyncClient") as MockClient:
            mock_client = AsyncMock()
            mock_client.get.return_value = mock_response({}, status_code=404)
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            MockClient.return_value = mock_client

            assert await client.get_character("Area 52", "Nobody") is None

    @pytest.mark.asyncio
    async def test_get_character_error(self, mock_response):
        client = RaiderIoClient()

        with patch("httpx.AsyncClient") as MockClient:
            mock_client = AsyncMock()
            mock_client.get.return_value = mock_response({}, status_code=500)
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            MockClient.return_value = mock_client

            with pytest.raises(HTTPStatusError):
                await client.get_character("Area 52", "Thrall")

    @pytest.mark.asyncio
    async def test_get_guild(self, mock_response):
        """Guild lookups only send fields when asked."""
        client = RaiderIoClient(base_url="https://example.test/api/v1/")

        with patch("httpx.AsyncClient") as MockClient:
            mock_client = AsyncMock()
            mock_client.get.return_value = mock_response(GUILD_RESPONSE)
            mock_client.__aenter__.return_value = mock_client
            mock_client.__aexit__.return_value = None
            MockClient.return_value = mock_client

            profile = await client.get_guild("Area 52", "Fusion", fields="raid_progression,members")

            assert profile.member_count == 3
            args, kwargs = mock_client.get.call_args
            assert args[0] == "https://example.test/api/v1/guilds/profile"
            assert kwargs["params"]["fields"] == "raid_progression,members"
            assert kwargs["headers"] == {}
