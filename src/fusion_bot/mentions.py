"""
Mention and attribution resolution.

Turns raw command input into the attribution fields of a quote: who said it
(name plus optional platform id), which users the message mentions, and the
tag list. Platform lookups go through a ``UserDirectory`` so this module
stays independent of the chat library.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Protocol

from .models import MentionedUser

MENTION_PATTERN = re.compile(r"<@!?([0-9]+)>")
SINGLE_MENTION_PATTERN = re.compile(r"^\s*<@!?([0-9]+)>\s*$")

UNKNOWN_PERSON = "Unknown"


class Identity(Protocol):
    """Anything with a platform id and a name fit for display."""

    id: int

    @property
    def display_name(self) -> str: ...


@dataclass(frozen=True)
class PlatformUser:
    """A user known to the platform but not resolved inside a guild."""

    id: int
    username: str
    global_name: str | None = None
    discriminator: str = "0"

    @property
    def display_name(self) -> str:
        return self.global_name or self.username


@dataclass(frozen=True)
class GuildMember(PlatformUser):
    """A user resolved as a member of the current guild."""

    nick: str | None = None

    @property
    def display_name(self) -> str:
        return self.nick or self.global_name or self.username


class UserDirectory(Protocol):
    """Identity lookup injected by the calling layer."""

    def get_user(self, user_id: int) -> Identity | None: ...

    def guild_members(self) -> Iterable[GuildMember]: ...


def extract_mentioned_users(text: str | None, directory: UserDirectory) -> list[MentionedUser]:
    """
    Resolve ``<@id>`` / ``<@!id>`` mentions in a message.

    Unresolvable ids are skipped. Duplicates collapse onto the first
    occurrence, so the result keeps message order.
    """
    if not text or not text.strip():
        return []

    seen: set[int] = set()
    result = []
    for match in MENTION_PATTERN.finditer(text):
        user_id = int(match.group(1))
        if user_id in seen:
            continue

        user = directory.get_user(user_id)
        if user is None:
            continue

        seen.add(user_id)
        result.append(MentionedUser(user_id=user.id, display_name=user.display_name))

    return result


def _matches_member(member: GuildMember, name: str) -> bool:
    candidates = [
        member.display_name,
        member.username,
        member.global_name,
        f"{member.username}#{member.discriminator}",
    ]
    folded = name.casefold()
    return any(c is not None and c.casefold() == folded for c in candidates)


def resolve_person(raw: str | None, directory: UserDirectory) -> tuple[str, int | None]:
    """
    Resolve the "person" argument of a quote to (display name, user id).

    - A bare mention resolves through the directory; an unknown id keeps
      the raw text but still records the id
    - Otherwise a case-insensitive match against guild members' display
      name, username, global name or username#discriminator
    - Otherwise the trimmed text, with no id
    """
    if raw is None or not raw.strip():
        return UNKNOWN_PERSON, None

    trimmed = raw.strip()

    match = SINGLE_MENTION_PATTERN.match(trimmed)
    if match:
        user_id = int(match.group(1))
        user = directory.get_user(user_id)
        if user is not None:
            return user.display_name, user.id
        return trimmed, user_id

    for member in directory.guild_members():
        if _matches_member(member, trimmed):
            return member.display_name, member.id

    return trimmed, None


def parse_tags(raw: str | None) -> list[str]:
    """Split a comma-separated tag list, dropping blanks and repeats."""
    if not raw:
        return []

    tags = []
    for part in raw.split(","):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags
