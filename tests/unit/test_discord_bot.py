"""Tests for the Discord binding helpers that need no gateway connection."""

import discord
import pytest

from fusion_bot.discord_bot import has_moderation_permission


class TestModerationPermission:
    """Who may delete and restore quotes."""

    @pytest.mark.parametrize(
        "permissions",
        [
            discord.Permissions(manage_messages=True),
            discord.Permissions(manage_guild=True),
            discord.Permissions(administrator=True),
        ],
    )
    def test_moderators(self, permissions):
        """Manage Messages, Manage Server and Administrator each qualify."""
        assert has_moderation_permission(permissions) is True

    def test_regular_member(self):
        """Everyday permissions are not enough."""
        permissions = discord.Permissions(send_messages=True, view_channel=True)
        assert has_moderation_permission(permissions) is False

    def test_outside_a_guild(self):
        """Users without guild permissions (DMs) cannot moderate."""
        assert has_moderation_permission(None) is False
