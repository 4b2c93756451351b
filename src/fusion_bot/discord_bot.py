"""Discord binding for fusion-bot: slash commands, buttons and identity lookup."""

import logging
from typing import Iterable

import discord
from discord import app_commands
from discord.ext import commands

from .commands import CommandContext, GameDataCommands, QuoteCommands, Reply, ping
from .config import BotConfig
from .mentions import GuildMember, Identity, PlatformUser

logger = logging.getLogger(__name__)


def _to_member(member: discord.Member) -> GuildMember:
    return GuildMember(
        id=member.id,
        username=member.name,
        global_name=member.global_name,
        discriminator=member.discriminator,
        nick=member.nick,
    )


class DiscordDirectory:
    """Resolves users against the interaction's guild, then the client cache."""

    def __init__(self, client: discord.Client, guild: discord.Guild | None):
        self.client = client
        self.guild = guild

    def get_user(self, user_id: int) -> Identity | None:
        if self.guild is not None:
            member = self.guild.get_member(user_id)
            if member is not None:
                return _to_member(member)

        user = self.client.get_user(user_id)
        if user is None:
            return None
        return PlatformUser(
            id=user.id,
            username=user.name,
            global_name=user.global_name,
            discriminator=user.discriminator,
        )

    def guild_members(self) -> Iterable[GuildMember]:
        if self.guild is None:
            return []
        return [_to_member(m) for m in self.guild.members]


def has_moderation_permission(permissions: discord.Permissions | None) -> bool:
    """Quote moderators can manage messages, manage the server, or are admins."""
    if permissions is None:
        return False
    return bool(
        permissions.manage_messages or permissions.manage_guild or permissions.administrator
    )


def _context(interaction: discord.Interaction) -> CommandContext:
    user = interaction.user
    # Users outside a guild (DMs) carry no guild permissions
    permissions = getattr(user, "guild_permissions", None)
    return CommandContext(
        user_id=user.id,
        username=str(user),
        channel_id=interaction.channel_id or 0,
        directory=DiscordDirectory(interaction.client, interaction.guild),
        guild_id=interaction.guild_id,
        can_moderate=has_moderation_permission(permissions),
    )


class QuoteActionButton(discord.ui.Button):
    def __init__(self, quotes: QuoteCommands, short_id: str, action: str, label: str, style):
        super().__init__(style=style, label=label, custom_id=f"quote:{short_id}:{action}")
        self.quotes = quotes
        self.short_id = short_id
        self.action = action

    async def callback(self, interaction: discord.Interaction) -> None:
        ctx = _context(interaction)
        if self.action == "share":
            reply = await self.quotes.share(ctx, self.short_id)
        elif self.action == "like":
            reply = await self.quotes.like(ctx, self.short_id)
        else:
            reply = self.quotes.copy(ctx, self.short_id)
        await send_reply(interaction, reply, self.quotes)


class QuoteActionsView(discord.ui.View):
    """Share, copy and like buttons under a quote card."""

    def __init__(self, quotes: QuoteCommands, short_id: str):
        super().__init__(timeout=None)
        self.add_item(
            QuoteActionButton(quotes, short_id, "share", "Share", discord.ButtonStyle.primary)
        )
        self.add_item(
            QuoteActionButton(quotes, short_id, "copy", "Copy Id", discord.ButtonStyle.secondary)
        )
        self.add_item(
            QuoteActionButton(quotes, short_id, "like", "Like", discord.ButtonStyle.success)
        )


async def send_reply(
    interaction: discord.Interaction,
    reply: Reply,
    quotes: QuoteCommands | None = None,
) -> None:
    """Send a handler reply, as a followup when the interaction was deferred."""
    kwargs = {"ephemeral": reply.ephemeral}
    if reply.content:
        kwargs["content"] = reply.content
    if reply.embed is not None:
        kwargs["embed"] = reply.embed
    if reply.quote_id and quotes is not None:
        kwargs["view"] = QuoteActionsView(quotes, reply.quote_id)

    if interaction.response.is_done():
        await interaction.followup.send(**kwargs)
    else:
        await interaction.response.send_message(**kwargs)


def build_bot(
    config: BotConfig,
    quotes: QuoteCommands,
    game_data: GameDataCommands,
    intents: discord.Intents | None = None,
) -> commands.Bot:
    if intents is None:
        intents = discord.Intents.default()
        # Person matching walks the guild member list
        intents.members = True

    bot = commands.Bot(
        command_prefix="/",
        intents=intents,
        application_id=config.discord.application_id,
    )

    @bot.event
    async def on_ready() -> None:
        logger.info(f"fusion-bot connected as {bot.user}")
        if config.discord.status:
            await bot.change_presence(activity=discord.Game(config.discord.status))
        try:
            if config.discord.guild_id is not None:
                guild = discord.Object(id=config.discord.guild_id)
                bot.tree.copy_global_to(guild=guild)
                synced = await bot.tree.sync(guild=guild)
            else:
                synced = await bot.tree.sync()
            logger.info(f"Synced {len(synced)} commands")
        except discord.HTTPException:
            logger.exception("Failed to sync commands")

    @app_commands.command(name="ping", description="Replies with a Pong! message")
    async def ping_command(interaction: discord.Interaction) -> None:
        await send_reply(interaction, ping())

    # /quote
    quote_group = app_commands.Group(name="quote", description="Save and look up quotes")

    @quote_group.command(name="add", description="Save a quote")
    @app_commands.describe(
        person="Who said it (a mention or a name)",
        message="What they said",
        tags="Comma separated tags",
        nsfw="Mark the quote as NSFW",
    )
    async def quote_add(
        interaction: discord.Interaction,
        person: str,
        message: str,
        tags: str | None = None,
        nsfw: bool = False,
    ) -> None:
        reply = await quotes.add(_context(interaction), person, message, tags, nsfw)
        await send_reply(interaction, reply, quotes)

    @quote_group.command(name="find", description="Show a quote by its short id")
    @app_commands.describe(short_id="Quote id, or the start of one")
    async def quote_find(interaction: discord.Interaction, short_id: str) -> None:
        reply = await quotes.find(_context(interaction), short_id)
        await send_reply(interaction, reply, quotes)

    @quote_group.command(name="search", description="Search quote text and tags")
    @app_commands.describe(query="Text to look for", limit="Maximum results (1-10)")
    async def quote_search(
        interaction: discord.Interaction,
        query: str,
        limit: app_commands.Range[int, 1, 10] = 5,
    ) -> None:
        reply = await quotes.search(_context(interaction), query, limit)
        await send_reply(interaction, reply, quotes)

    @quote_group.command(name="by", description="List quotes from a person")
    @app_commands.describe(person="A mention or a name")
    async def quote_by(interaction: discord.Interaction, person: str) -> None:
        reply = await quotes.by_person(_context(interaction), person)
        await send_reply(interaction, reply, quotes)

    @quote_group.command(name="delete", description="Soft delete a quote")
    @app_commands.describe(short_id="Quote id")
    async def quote_delete(interaction: discord.Interaction, short_id: str) -> None:
        reply = await quotes.delete(_context(interaction), short_id)
        await send_reply(interaction, reply, quotes)

    @quote_group.command(name="restore", description="Restore a soft deleted quote")
    @app_commands.describe(short_id="Quote id")
    async def quote_restore(interaction: discord.Interaction, short_id: str) -> None:
        reply = await quotes.restore(_context(interaction), short_id)
        await send_reply(interaction, reply, quotes)

    # /raiderio
    raiderio_group = app_commands.Group(name="raiderio", description="Raider.IO lookups")

    @raiderio_group.command(name="character", description="Look up a character on Raider.IO")
    @app_commands.describe(server="Realm name", character="Character name")
    async def raiderio_character(
        interaction: discord.Interaction, server: str, character: str
    ) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        reply = await game_data.raiderio_character(_context(interaction), server, character)
        await send_reply(interaction, reply)

    @raiderio_group.command(name="guild", description="Look up a guild on Raider.IO")
    @app_commands.describe(server="Realm name", guild="Guild name")
    async def raiderio_guild(interaction: discord.Interaction, server: str, guild: str) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        reply = await game_data.raiderio_guild(_context(interaction), server, guild)
        await send_reply(interaction, reply)

    # /warcraft
    warcraft_group = app_commands.Group(name="warcraft", description="Battle.net lookups")

    @warcraft_group.command(name="character", description="Look up a character on Battle.net")
    @app_commands.describe(realm="Realm name", character="Character name")
    async def warcraft_character(
        interaction: discord.Interaction, realm: str, character: str
    ) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        reply = await game_data.warcraft_character(_context(interaction), realm, character)
        await send_reply(interaction, reply)

    bot.tree.add_command(ping_command)
    bot.tree.add_command(quote_group)
    bot.tree.add_command(raiderio_group)
    bot.tree.add_command(warcraft_group)
    return bot


__all__ = [
    "DiscordDirectory",
    "QuoteActionsView",
    "build_bot",
    "has_moderation_permission",
    "send_reply",
]
