"""Tests for embed and message builders."""

from datetime import UTC, datetime

import discord

from fusion_bot.formatters import (
    MAX_EMBED_DESCRIPTION,
    build_quote_embed,
    build_raiderio_character_embed,
    build_raiderio_guild_embed,
    class_color,
    format_search_results,
    format_warcraft_character,
    truncate,
)
from fusion_bot.models import Deletion, MentionedUser, Quote
from fusion_bot.raiderio import RaiderIoCharacterProfile, RaiderIoGuildProfile
from fusion_bot.warcraft import CharacterProfile


def _quote(**overrides):
    values = {
        "person": "Ada Lovelace",
        "message": "The engine weaves algebraic patterns.",
        "guild_id": 1,
        "channel_id": 2,
        "added_by": 3,
        "short_id": "ABCDEFGH",
        "added_at": datetime(2024, 3, 1, 12, 0, tzinfo=UTC),
    }
    values.update(overrides)
    return Quote(**values)


def _fields(embed):
    return {f.name: f.value for f in embed.fields}


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("hello", 10) == "hello"

    def test_long_text_marked(self):
        assert truncate("abcdefghij", 4) == "abcd…"


class TestQuoteEmbed:
    """Test the quote card."""

    def test_basic_fields(self):
        embed = build_quote_embed(_quote(tags=["science"], uses=4, likes=2))
        fields = _fields(embed)

        assert embed.title == "Ada Lovelace"
        assert "algebraic patterns" in embed.description
        assert fields["Short Id"] == "`ABCDEFGH`"
        assert fields["Tags"] == "science"
        assert fields["Mentions"] == "None"
        assert "Uses: 4" in fields["Stats"]
        assert "Likes: 2" in fields["Stats"]
        assert "Deleted" not in fields
        assert embed.footer.text == "Added by <@3> on 2024-03-01 12:00 UTC"

    def test_mentions_listed(self):
        embed = build_quote_embed(
            _quote(mentioned_users=[MentionedUser(user_id=5, display_name="Charles")])
        )
        assert _fields(embed)["Mentions"] == "<@5> (Charles)"

    def test_nsfw(self):
        embed = build_quote_embed(_quote(nsfw=True))
        assert _fields(embed)["NSFW"] == "Yes"
        assert embed.colour == discord.Color.dark_red()

    def test_deleted_quote(self):
        deletion = Deletion(at=datetime(2024, 4, 1, tzinfo=UTC), by=77)
        embed = build_quote_embed(_quote(deletion=deletion))
        assert "<@77>" in _fields(embed)["Deleted"]

    def test_long_message_fits_embed(self):
        embed = build_quote_embed(_quote(message="x" * 10_000))
        assert len(embed.description) <= MAX_EMBED_DESCRIPTION


class TestSearchResults:
    def test_lists_each_quote(self):
        text = format_search_results(
            " engine ", [_quote(), _quote(short_id="HGFEDCBA", person="Charles")]
        )
        assert "Showing 2 result(s) for `engine`" in text
        assert "`ABCDEFGH` **Ada Lovelace**" in text
        assert "`HGFEDCBA` **Charles**" in text


class TestRaiderIoEmbeds:
    """Test Raider.IO embeds."""

    def test_class_color(self):
        assert class_color("Death Knight") == discord.Color.from_rgb(0xC4, 0x1F, 0x3B)
        assert class_color("unknown") == discord.Color.dark_blue()
        assert class_color(None) == discord.Color.dark_blue()

    def test_character_embed(self):
        profile = RaiderIoCharacterProfile.from_dict(
            {
                "name": "Thrall",
                "class": "Shaman",
                "active_spec_name": "Enhancement",
                "region": "us",
                "realm": "Area 52",
                "gear": {"item_level_equipped": 489, "item_level_total": 491},
                "mythic_plus_ranks": {"overall": {"world": 12345, "region": 456}},
                "mythic_plus_scores_by_season": [{"season": "s", "scores": {"all": 3100.5}}],
            }
        )
        embed = build_raiderio_character_embed(profile)
        fields = _fields(embed)

        assert embed.title == "Thrall"
        assert embed.description == "Shaman (Enhancement)"
        assert embed.url == "https://raider.io/characters/us/area-52/thrall"
        assert "World: 12,345" in fields["Mythic+ Ranks"]
        assert "Realm: -" in fields["Mythic+ Ranks"]
        assert fields["Mythic+ Scores"] == "Current: 3,100.5"
        assert "Equipped: 489" in fields["Item Level"]

    def test_character_embed_without_scores(self):
        embed = build_raiderio_character_embed(RaiderIoCharacterProfile(name="Fresh"))
        assert "Mythic+ Scores" not in _fields(embed)

    def test_guild_embed(self):
        profile = RaiderIoGuildProfile.from_dict(
            {
                "name": "Fusion",
                "faction": "alliance",
                "region": "eu",
                "realm": "Draenor",
                "raid_progression": {"raid-a": {"summary": "3/8 M"}},
                "members": [{}, {}],
            }
        )
        embed = build_raiderio_guild_embed(profile)
        assert "Faction: Alliance" in embed.description
        assert embed.colour == discord.Color.blue()
        assert _fields(embed)["raid-a"] == "3/8 M"
        assert embed.footer.text == "2 members"


class TestWarcraftSummary:
    def test_summary(self):
        profile = CharacterProfile.from_dict(
            {
                "id": 1,
                "name": "Thrall",
                "level": 70,
                "race": {"id": 2, "name": "Orc"},
                "character_class": {"id": 7, "name": "Shaman"},
                "realm": {"id": 3, "name": "Area 52"},
                "equipped_item_level": 489,
            }
        )
        assert (
            format_warcraft_character(profile)
            == "**Thrall** level 70 Orc Shaman on Area 52 (item level 489)"
        )

    def test_minimal(self):
        profile = CharacterProfile.from_dict({"id": 1, "name": "Bare", "level": 10})
        assert format_warcraft_character(profile) == "**Bare** level 10"
