"""
CLI runner for fusion-bot.

Usage:
    python -m fusion_bot.run [OPTIONS]

    # Connect to Discord and serve commands
    python -m fusion_bot.run --config fusion.yaml

    # Create or upgrade the quotes table and exit
    python -m fusion_bot.run --init-db

    # Print the effective configuration (secrets omitted)
    python -m fusion_bot.run --check-config
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .commands import GameDataCommands, QuoteCommands
from .config import DEFAULT_CONFIG_PATH, BotConfig
from .discord_bot import build_bot
from .migrations import run_migrations
from .models import QuoteStore, QuoteStoreError
from .raiderio import RaiderIoClient
from .warcraft import WarcraftClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("fusion-bot")


def build_game_data(config: BotConfig) -> GameDataCommands:
    """Create the API clients. Battle.net lookups need OAuth credentials."""
    raiderio = RaiderIoClient(
        base_url=config.raiderio.base_url,
        region=config.raiderio.region,
        default_fields=config.raiderio.default_fields,
        api_key=config.raiderio.get_api_key(),
        timeout_seconds=config.raiderio.timeout_seconds,
    )

    warcraft = None
    client_secret = config.warcraft.get_client_secret()
    if config.warcraft.client_id and client_secret:
        warcraft = WarcraftClient(
            client_id=config.warcraft.client_id,
            client_secret=client_secret,
            region=config.warcraft.region,
            locale=config.warcraft.locale,
            timeout_seconds=config.warcraft.timeout_seconds,
        )
    else:
        logger.warning("Battle.net credentials not configured; /warcraft lookups are disabled")

    return GameDataCommands(raiderio, warcraft)


async def run_bot(config: BotConfig, token: str) -> None:
    """Prepare the store and stay connected to Discord until stopped."""
    store = QuoteStore(config.store)
    applied = await store.ensure_schema()
    if applied:
        logger.info(f"Applied migration(s) {applied} to {config.store.collection}")

    bot = build_bot(config, QuoteCommands(store), build_game_data(config))
    async with bot:
        await bot.start(token)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="fusion-bot: Discord quote keeper with World of Warcraft lookups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run the bot
    python -m fusion_bot.run

    # Use a specific config file and database
    python -m fusion_bot.run --config prod.yaml --db /var/lib/fusion/fusion.db

    # Initialize the database only
    python -m fusion_bot.run --init-db
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Override database path from config",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Apply pending migrations and exit",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Print the effective configuration and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = BotConfig.from_yaml(args.config)
    if args.db:
        config.store.db_path = args.db

    logger.info(f"Config loaded from {args.config}")
    logger.info(f"Database: {config.store.db_path} (collection {config.store.collection})")

    if args.check_config:
        print(json.dumps(config.to_dict(), indent=2))
        return 0

    if args.init_db:
        if not config.store.db_path:
            logger.error("No database path configured")
            return 1
        applied = run_migrations(config.store.db_path, config.store.collection)
        logger.info(f"Applied {len(applied)} migration(s)")
        return 0

    token = config.discord.get_token()
    if not token:
        logger.error(
            f"Discord token not configured. Set discord.token in {args.config} "
            f"or the {config.discord.token_env} environment variable."
        )
        return 1

    try:
        asyncio.run(run_bot(config, token))
    except QuoteStoreError:
        logger.exception("Quote store is unavailable")
        return 1
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
