"""Shared pytest fixtures for fusion-bot tests."""

import pytest

from fusion_bot.config import StoreConfig
from fusion_bot.mentions import GuildMember, PlatformUser
from fusion_bot.migrations import run_migrations
from fusion_bot.models import Quote, QuoteStore


@pytest.fixture
def db_path(tmp_path):
    """Create a temporary database with full schema via migrations.

    This is the canonical way to get a test database - uses the same
    migration system as production.
    """
    db_file = tmp_path / "test_fusion.db"
    run_migrations(db_file)
    return db_file


@pytest.fixture
def store(db_path):
    """A quote store over the migrated test database."""
    return QuoteStore(StoreConfig(db_path=db_path))


@pytest.fixture
def make_quote():
    """Factory for valid, not-yet-stored quotes."""

    def _make(**overrides) -> Quote:
        values = {
            "person": "Ada Lovelace",
            "message": "The engine weaves algebraic patterns.",
            "guild_id": 1001,
            "channel_id": 2002,
            "added_by": 3003,
        }
        values.update(overrides)
        return Quote(**values)

    return _make


class FakeDirectory:
    """In-memory UserDirectory for tests."""

    def __init__(self, members=(), users=()):
        self.members = list(members)
        self.users = {u.id: u for u in users}
        self.users.update({m.id: m for m in self.members})

    def get_user(self, user_id):
        return self.users.get(user_id)

    def guild_members(self):
        return list(self.members)


@pytest.fixture
def directory():
    """A guild with two members plus one user outside the guild."""
    return FakeDirectory(
        members=[
            GuildMember(id=111, username="ada", global_name="Ada L", nick="Countess"),
            GuildMember(id=222, username="charles", global_name=None, discriminator="1842"),
        ],
        users=[PlatformUser(id=333, username="grace", global_name="Grace Hopper")],
    )
