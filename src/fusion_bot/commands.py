"""
Command handlers for fusion-bot.

Each handler takes already-parsed arguments plus a ``CommandContext`` and
returns a ``Reply``. The Discord binding in ``discord_bot`` only translates
interactions into these calls and replies back, so the handlers can be
exercised without a gateway connection.
"""

import logging
from dataclasses import dataclass

import discord
import httpx

from .formatters import (
    build_quote_embed,
    build_raiderio_character_embed,
    build_raiderio_guild_embed,
    format_search_results,
    format_warcraft_character,
)
from .identifiers import InvalidArgumentError, normalize_person_key, normalize_short_id
from .mentions import UserDirectory, extract_mentioned_users, parse_tags, resolve_person
from .models import Quote, QuoteStore, QuoteStoreError
from .raiderio import RaiderIoClient
from .warcraft import GameDataConfigError, WarcraftClient

logger = logging.getLogger(__name__)

SEARCH_LIMIT_MAX = 10
PERSON_LIST_LIMIT = 10


@dataclass
class CommandContext:
    """Who invoked a command, and where."""

    user_id: int
    username: str
    channel_id: int
    directory: UserDirectory
    guild_id: int | None = None
    can_moderate: bool = False


@dataclass
class Reply:
    """What to send back to the invoking user."""

    content: str | None = None
    embed: discord.Embed | None = None
    ephemeral: bool = True
    quote_id: str | None = None  # Attach share/copy/like buttons for this quote


def ping() -> Reply:
    return Reply("Pong!", ephemeral=False)


class QuoteCommands:
    """Handlers for the /quote command group."""

    def __init__(self, store: QuoteStore):
        self.store = store

    async def add(
        self,
        ctx: CommandContext,
        person: str,
        message: str,
        tags: str | None = None,
        nsfw: bool = False,
    ) -> Reply:
        if not message or not message.strip():
            return Reply("Please provide the quote text.")
        if ctx.guild_id is None:
            return Reply("Quotes can only be added inside a server.")

        tag_list = parse_tags(tags)
        person_name, person_user_id = resolve_person(person, ctx.directory)
        quote = Quote(
            person=person_name,
            person_key=normalize_person_key(person_name),
            person_user_id=person_user_id,
            message=message,
            tags=tag_list,
            mentioned_users=extract_mentioned_users(message, ctx.directory),
            nsfw=nsfw,
            guild_id=ctx.guild_id,
            channel_id=ctx.channel_id,
            added_by=ctx.user_id,
        )

        logger.info(
            f"Quote add requested by {ctx.username} ({ctx.user_id}) in guild {ctx.guild_id} "
            f"channel {ctx.channel_id}: person={quote.person_key} tags={tag_list} nsfw={nsfw}"
        )

        try:
            stored = await self.store.insert_new(quote)
        except InvalidArgumentError as e:
            return Reply(f"That quote could not be saved: {e}")
        except QuoteStoreError:
            logger.exception(f"Saving quote for {quote.person_key} failed")
            return Reply("Something went wrong saving that quote. The error was logged.")

        tags_summary = ", ".join(tag_list) if tag_list else "No tags"
        return Reply(
            f"Quote {stored.short_id} from {stored.person} received! "
            f"Tags: {tags_summary} NSFW: {nsfw}"
        )

    async def find(self, ctx: CommandContext, short_id: str) -> Reply:
        """Exact lookup, falling back to the first prefix match."""
        normalized = normalize_short_id(short_id)
        if not normalized:
            return Reply("Please provide the quote id you want to look up.")

        try:
            quote = await self.store.get_by_short_id(normalized)
            if quote is not None:
                await self.store.increment_uses(quote.short_id)
                return self._quote_reply(quote)

            matches = await self.store.get_fuzzy_by_short_id_prefix(normalized)
            if not matches:
                return Reply(f"No quotes found matching id prefix `{normalized}`.")

            fallback = matches[0]
            await self.store.increment_uses(fallback.short_id)
            return self._quote_reply(
                fallback, content=f"Quote `{normalized}` not found. Showing closest match:"
            )
        except QuoteStoreError:
            logger.exception(f"Quote lookup failed for {normalized}")
            return Reply("Something went wrong looking up that quote. The error was logged.")

    async def search(self, ctx: CommandContext, query: str, limit: int = 5) -> Reply:
        if not query or not query.strip():
            return Reply("Please provide text to search for.")

        clamped = max(1, min(SEARCH_LIMIT_MAX, limit))
        try:
            results = await self.store.search(query, clamped)
            if not results:
                return Reply("No quotes matched that search.")
            for quote in results:
                await self.store.increment_uses(quote.short_id)
        except QuoteStoreError:
            logger.exception("Quote search failed")
            return Reply("Something went wrong searching quotes. The error was logged.")

        return Reply(format_search_results(query, results))

    async def by_person(self, ctx: CommandContext, person: str) -> Reply:
        """List quotes attributed to a person."""
        name, _ = resolve_person(person, ctx.directory)
        key = normalize_person_key(name)
        try:
            quotes = await self.store.find_by_person_key(key)
        except QuoteStoreError:
            logger.exception(f"Quote listing failed for {key}")
            return Reply("Something went wrong listing quotes. The error was logged.")

        if not quotes:
            return Reply(f"No quotes found for {name}.")

        shown = quotes[:PERSON_LIST_LIMIT]
        content = format_search_results(name, shown)
        if len(quotes) > len(shown):
            content += f"\n…and {len(quotes) - len(shown)} more."
        return Reply(content)

    async def delete(self, ctx: CommandContext, short_id: str) -> Reply:
        normalized = normalize_short_id(short_id)
        if not normalized:
            return Reply("Please provide the quote id you want to delete.")
        if not ctx.can_moderate:
            return Reply("You do not have permission to delete quotes.")

        try:
            deleted = await self.store.soft_delete(normalized, ctx.user_id)
        except QuoteStoreError:
            logger.exception(f"Soft delete failed for {normalized}")
            return Reply("Something went wrong deleting that quote. The error was logged.")

        if deleted:
            return Reply(f"Quote `{normalized}` has been soft deleted.")
        return Reply(f"Quote `{normalized}` does not exist or was already deleted.")

    async def restore(self, ctx: CommandContext, short_id: str) -> Reply:
        normalized = normalize_short_id(short_id)
        if not normalized:
            return Reply("Please provide the quote id you want to restore.")
        if not ctx.can_moderate:
            return Reply("You do not have permission to restore quotes.")

        try:
            restored = await self.store.restore(normalized, ctx.user_id)
        except QuoteStoreError:
            logger.exception(f"Restore failed for {normalized}")
            return Reply("Something went wrong restoring that quote. The error was logged.")

        if restored:
            return Reply(f"Quote `{normalized}` has been restored.")
        return Reply(f"Quote `{normalized}` does not exist or is not deleted.")

    async def like(self, ctx: CommandContext, short_id: str) -> Reply:
        normalized = normalize_short_id(short_id)
        try:
            likes = await self.store.increment_likes(normalized)
        except QuoteStoreError:
            logger.exception(f"Like failed for {normalized}")
            return Reply("Something went wrong liking that quote. The error was logged.")

        if likes is None:
            return Reply(f"Quote `{normalized}` could not be found.")
        return Reply(f"Quote `{normalized}` now has {likes} like(s).")

    async def share(self, ctx: CommandContext, short_id: str) -> Reply:
        normalized = normalize_short_id(short_id)
        try:
            quote = await self.store.get_by_short_id(normalized)
            if quote is None:
                return Reply(f"Quote `{normalized}` could not be found.")
            await self.store.increment_uses(quote.short_id)
        except QuoteStoreError:
            logger.exception(f"Sharing quote {normalized} failed")
            return Reply("Something went wrong sharing that quote. The error was logged.")
        return self._quote_reply(quote)

    def copy(self, ctx: CommandContext, short_id: str) -> Reply:
        return Reply(f"Short Id: `{normalize_short_id(short_id)}`")

    @staticmethod
    def _quote_reply(quote: Quote, content: str | None = None) -> Reply:
        return Reply(
            content=content,
            embed=build_quote_embed(quote),
            ephemeral=False,
            quote_id=quote.short_id,
        )


_LOOKUP_ERRORS = (httpx.HTTPError, GameDataConfigError, ValueError)


class GameDataCommands:
    """Handlers for the /raiderio and /warcraft command groups."""

    def __init__(self, raiderio: RaiderIoClient, warcraft: WarcraftClient | None = None):
        self.raiderio = raiderio
        self.warcraft = warcraft

    async def raiderio_character(self, ctx: CommandContext, server: str, character: str) -> Reply:
        server, character = (server or "").strip(), (character or "").strip()
        if not server or not character:
            return Reply("Please supply both a server and character name.")

        logger.info(
            f"Raider.IO character lookup requested by {ctx.user_id} ({ctx.username}) "
            f"-> {character} on {server}"
        )
        try:
            profile = await self.raiderio.get_character(server, character)
        except _LOOKUP_ERRORS:
            logger.exception(f"Raider.IO character lookup failed for {character} on {server}")
            return Reply("Something went wrong while calling Raider.IO. The error was logged.")

        if profile is None:
            return Reply(f"Could not find `{character}` on `{server}` in Raider.IO.")
        return Reply(embed=build_raiderio_character_embed(profile))

    async def raiderio_guild(self, ctx: CommandContext, server: str, guild: str) -> Reply:
        server, guild = (server or "").strip(), (guild or "").strip()
        if not server or not guild:
            return Reply("Please supply both a server and guild name.")

        logger.info(
            f"Raider.IO guild lookup requested by {ctx.user_id} ({ctx.username}) "
            f"-> {guild} on {server}"
        )
        try:
            profile = await self.raiderio.get_guild(
                server, guild, fields="raid_progression,members"
            )
        except _LOOKUP_ERRORS:
            logger.exception(f"Raider.IO guild lookup failed for {guild} on {server}")
            return Reply("Something went wrong while calling Raider.IO. The error was logged.")

        if profile is None:
            return Reply(f"Could not find guild `{guild}` on `{server}` in Raider.IO.")
        return Reply(embed=build_raiderio_guild_embed(profile))

    async def warcraft_character(self, ctx: CommandContext, realm: str, character: str) -> Reply:
        realm, character = (realm or "").strip(), (character or "").strip()
        if not realm or not character:
            logger.warning(f"Warcraft character lookup aborted: invalid input from {ctx.user_id}")
            return Reply("Please provide both a realm and character name.")
        if self.warcraft is None:
            return Reply("Warcraft lookups are not configured on this bot.")

        logger.info(
            f"Warcraft character lookup requested by {ctx.user_id} ({ctx.username}) "
            f"-> {character} on {realm}"
        )
        try:
            profile = await self.warcraft.get_character(realm, character)
        except _LOOKUP_ERRORS:
            logger.exception(f"Warcraft character lookup failed for {character} on {realm}")
            return Reply(
                "Something went wrong looking up that character. The error was logged."
            )

        if profile is None:
            return Reply(f"Could not find `{character}` on `{realm}`.")
        return Reply(format_warcraft_character(profile))
