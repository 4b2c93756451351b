"""
Discord embed and message builders.

Pure construction helpers: they take quotes or game-data profiles and return
``discord.Embed`` objects or plain text. Nothing here touches the store or
the network.
"""

from datetime import UTC, datetime

import discord

from .models import Quote
from .raiderio import (
    RaiderIoCharacterProfile,
    RaiderIoGuildProfile,
    character_profile_url,
    guild_profile_url,
)
from .warcraft import CharacterProfile

# Discord limits
MAX_EMBED_DESCRIPTION = 4096
MAX_EMBED_FIELD_VALUE = 1024

SEARCH_SNIPPET_LENGTH = 120

CLASS_COLORS = {
    "death knight": discord.Color.from_rgb(0xC4, 0x1F, 0x3B),
    "demon hunter": discord.Color.from_rgb(0xA3, 0x30, 0xC9),
    "druid": discord.Color.from_rgb(0xFF, 0x7D, 0x0A),
    "evoker": discord.Color.from_rgb(0x33, 0x93, 0x7F),
    "hunter": discord.Color.from_rgb(0xAB, 0xD4, 0x73),
    "mage": discord.Color.from_rgb(0x3F, 0xC7, 0xEB),
    "monk": discord.Color.from_rgb(0x00, 0xFF, 0x96),
    "paladin": discord.Color.from_rgb(0xF4, 0x8C, 0xBA),
    "priest": discord.Color.from_rgb(0xFF, 0xFF, 0xFF),
    "rogue": discord.Color.from_rgb(0xFF, 0xF5, 0x69),
    "shaman": discord.Color.from_rgb(0x00, 0x70, 0xDE),
    "warlock": discord.Color.from_rgb(0x87, 0x87, 0xED),
    "warrior": discord.Color.from_rgb(0xC7, 0x9C, 0x6E),
}


def truncate(value: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut with an ellipsis."""
    if not value or len(value) <= max_length:
        return value
    return value[:max_length] + "…"


def _format_ts(value: datetime | None) -> str:
    if value is None:
        return "unknown"
    return value.astimezone(UTC).strftime("%Y-%m-%d %H:%M") + " UTC"


# =============================================================================
# Quotes
# =============================================================================


def build_quote_embed(quote: Quote) -> discord.Embed:
    """Full quote card used by find, share and restore replies."""
    tags = ", ".join(quote.tags) if quote.tags else "None"
    mentions = (
        ", ".join(f"<@{m.user_id}> ({m.display_name})" for m in quote.mentioned_users)
        if quote.mentioned_users
        else "None"
    )

    embed = discord.Embed(
        title=quote.person,
        description=truncate(f"> {quote.message}", MAX_EMBED_DESCRIPTION - 1),
        colour=discord.Color.dark_red() if quote.nsfw else discord.Color.dark_grey(),
    )
    if quote.person_user_id is not None:
        embed.set_author(name=quote.person)

    embed.add_field(name="Short Id", value=f"`{quote.short_id}`", inline=True)
    embed.add_field(name="NSFW", value="Yes" if quote.nsfw else "No", inline=True)
    embed.add_field(name="Tags", value=truncate(tags, MAX_EMBED_FIELD_VALUE - 1), inline=False)
    embed.add_field(
        name="Mentions", value=truncate(mentions, MAX_EMBED_FIELD_VALUE - 1), inline=False
    )
    embed.add_field(name="Stats", value=f"Uses: {quote.uses}\nLikes: {quote.likes}", inline=True)

    if quote.is_deleted:
        embed.add_field(
            name="Deleted",
            value=f"{_format_ts(quote.deleted_at)} by <@{quote.deleted_by}>",
            inline=False,
        )

    embed.set_footer(text=f"Added by <@{quote.added_by}> on {_format_ts(quote.added_at)}")
    return embed


def format_search_results(query: str, quotes: list[Quote]) -> str:
    """One line per hit: id, person and a message snippet."""
    lines = [f"Showing {len(quotes)} result(s) for `{query.strip()}`:", ""]
    for quote in quotes:
        lines.append(
            f"`{quote.short_id}` **{quote.person}**: "
            f"{truncate(quote.message, SEARCH_SNIPPET_LENGTH)}"
        )
    return "\n".join(lines)


# =============================================================================
# Raider.IO
# =============================================================================


def class_color(class_name: str | None) -> discord.Color:
    if not class_name:
        return discord.Color.dark_blue()
    return CLASS_COLORS.get(class_name.strip().lower(), discord.Color.dark_blue())


def _format_rank(value: int | None) -> str:
    return f"{value:,}" if value is not None else "-"


def build_raiderio_character_embed(profile: RaiderIoCharacterProfile) -> discord.Embed:
    spec = f" ({profile.active_spec_name})" if profile.active_spec_name else ""
    embed = discord.Embed(
        title=profile.name,
        description=f"{profile.character_class}{spec}",
        colour=class_color(profile.character_class),
        url=character_profile_url(profile),
    )
    embed.add_field(
        name="Realm", value=f"{profile.realm} ({profile.region.upper()})", inline=True
    )

    rank = profile.overall_rank
    if rank is not None:
        embed.add_field(
            name="Mythic+ Ranks",
            value=(
                f"World: {_format_rank(rank.world)}\n"
                f"Region: {_format_rank(rank.region)}\n"
                f"Realm: {_format_rank(rank.realm)}"
            ),
            inline=True,
        )

    score = profile.current_score
    if score is not None:
        embed.add_field(name="Mythic+ Scores", value=f"Current: {score:,.1f}", inline=True)

    if profile.gear is not None:
        embed.add_field(
            name="Item Level",
            value=(
                f"Equipped: {profile.gear.item_level_equipped:g}\n"
                f"Total: {profile.gear.item_level_total:g}"
            ),
            inline=True,
        )

    if profile.last_crawled_at is not None:
        embed.set_footer(text=f"Last synced {_format_ts(profile.last_crawled_at)}")

    return embed


def build_raiderio_guild_embed(profile: RaiderIoGuildProfile) -> discord.Embed:
    faction = profile.faction.strip().title() if profile.faction else "Unknown"
    is_alliance = profile.faction.strip().lower() == "alliance"
    embed = discord.Embed(
        title=profile.name,
        description=f"Realm: {profile.realm} ({profile.region.upper()}) | Faction: {faction}",
        colour=discord.Color.blue() if is_alliance else discord.Color.dark_red(),
        url=guild_profile_url(profile),
    )

    for raid, progression in list(profile.raid_progression.items())[:3]:
        embed.add_field(name=raid, value=progression.summary or "-", inline=True)

    if profile.member_count:
        embed.set_footer(text=f"{profile.member_count} members")

    return embed


# =============================================================================
# Blizzard
# =============================================================================


def format_warcraft_character(profile: CharacterProfile) -> str:
    """Short text summary of a Blizzard character profile."""
    parts = [f"**{profile.name}**", f"level {profile.level}"]
    if profile.race and profile.race.name:
        parts.append(profile.race.name)
    if profile.character_class and profile.character_class.name:
        parts.append(profile.character_class.name)

    summary = " ".join(parts)
    if profile.realm and profile.realm.name:
        summary += f" on {profile.realm.name}"
    if profile.item_level:
        summary += f" (item level {profile.item_level})"
    return summary
