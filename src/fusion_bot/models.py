"""
Data models and database operations for the quote store.

Every public store operation is a single SQL statement on its own
connection, run on a worker thread so callers can await, time out or cancel
it. SQLite's statement atomicity is the only concurrency control: counters
are bumped with ``SET x = x + 1`` and lifecycle changes are conditional
updates, never read-then-write.
"""

import asyncio
import json
import logging
import re
import sqlite3
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, TypeVar

from .config import StoreConfig
from .identifiers import (
    InvalidArgumentError,
    is_short_id,
    new_short_id,
    normalize_person_key,
    normalize_short_id,
)
from .migrations import run_migrations

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_LIMIT_MIN = 1
SEARCH_LIMIT_MAX = 25

_COLLECTION_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------


class QuoteStoreError(Exception):
    """Base class for quote store failures."""


class QuoteConflictError(QuoteStoreError):
    """A quote with the same short id already exists. Regenerate and retry."""

    def __init__(self, short_id: str):
        super().__init__(f"Short id {short_id} is already taken")
        self.short_id = short_id


class StoreUnavailableError(QuoteStoreError):
    """The backing database could not be reached or queried."""


class StoreConfigurationError(StoreUnavailableError):
    """The store is misconfigured. Fatal at startup, never retried."""


# -----------------------------------------------------------------------------
# Entities
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MentionedUser:
    """A platform user mentioned inside a quote's message."""

    user_id: int
    display_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "display_name": self.display_name}


@dataclass(frozen=True)
class Deletion:
    """Soft-delete marker: when and by whom. Absent on active quotes."""

    at: datetime
    by: int


@dataclass
class Quote:
    """An attributed quote."""

    person: str
    message: str
    guild_id: int
    channel_id: int
    added_by: int
    short_id: str = field(default_factory=new_short_id)
    person_key: str | None = None
    person_user_id: int | None = None
    tags: list[str] = field(default_factory=list)
    mentioned_users: list[MentionedUser] = field(default_factory=list)
    nsfw: bool = False

    # Assigned by the store
    id: int | None = None
    added_at: datetime | None = None
    uses: int = 0
    likes: int = 0
    deletion: Deletion | None = None

    def __post_init__(self) -> None:
        if not self.person_key:
            self.person_key = normalize_person_key(self.person)

    @property
    def is_deleted(self) -> bool:
        return self.deletion is not None

    @property
    def deleted_at(self) -> datetime | None:
        return self.deletion.at if self.deletion else None

    @property
    def deleted_by(self) -> int | None:
        return self.deletion.by if self.deletion else None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Quote":
        """Build a quote from a database row."""
        deletion = None
        if row["deleted_at"] is not None:
            deletion = Deletion(
                at=datetime.fromisoformat(row["deleted_at"]),
                by=row["deleted_by"],
            )

        return cls(
            id=row["id"],
            short_id=row["short_id"],
            person=row["person"],
            person_key=row["person_key"],
            person_user_id=row["person_user_id"],
            message=row["message"],
            tags=json.loads(row["tags_json"]),
            mentioned_users=[
                MentionedUser(user_id=m["user_id"], display_name=m["display_name"])
                for m in json.loads(row["mentioned_users_json"])
            ],
            nsfw=bool(row["nsfw"]),
            guild_id=row["guild_id"],
            channel_id=row["channel_id"],
            added_by=row["added_by"],
            added_at=datetime.fromisoformat(row["added_at"]),
            uses=row["uses"],
            likes=row["likes"],
            deletion=deletion,
        )


def validate_new_quote(quote: Quote) -> None:
    """Reject quotes missing required fields. Runs before any I/O."""
    if not is_short_id(quote.short_id):
        raise InvalidArgumentError(f"Malformed short id: {quote.short_id!r}")
    if not quote.person or not quote.person.strip():
        raise InvalidArgumentError("Quote person is required")
    if not quote.person_key:
        raise InvalidArgumentError("Quote person key is required")
    if not quote.message or not quote.message.strip():
        raise InvalidArgumentError("Quote message is required")
    for name in ("guild_id", "channel_id", "added_by"):
        if not getattr(quote, name):
            raise InvalidArgumentError(f"Quote {name} is required")


def _dedupe_mentions(users: list[MentionedUser]) -> list[MentionedUser]:
    seen: set[int] = set()
    result = []
    for user in users:
        if user.user_id in seen:
            continue
        seen.add(user.user_id)
        result.append(user)
    return result


def _dedupe_tags(tags: list[str]) -> list[str]:
    result = []
    for tag in tags:
        if tag not in result:
            result.append(tag)
    return result


def _fold(value: Any) -> Any:
    """Case-fold SQL text values (registered as the ``fold`` SQL function)."""
    if isinstance(value, str):
        return value.casefold()
    return value


def clamp_search_limit(limit: int) -> int:
    return max(SEARCH_LIMIT_MIN, min(SEARCH_LIMIT_MAX, limit))


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class QuoteStore:
    """Quote persistence and retrieval."""

    def __init__(self, config: StoreConfig):
        if config.db_path is None or not str(config.db_path).strip():
            raise StoreConfigurationError(
                "Quote store database path is missing. Set 'store.db_path' in configuration."
            )
        if not config.collection or not _COLLECTION_NAME.match(config.collection):
            raise StoreConfigurationError(
                f"Quote store collection name is not configured or invalid: {config.collection!r}"
            )

        self.db_path = Path(config.db_path)
        self.collection = config.collection
        self.busy_timeout = config.busy_timeout_seconds

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        conn.create_function("fold", 1, _fold, deterministic=True)
        return conn

    async def _run(self, operation: str, key: str, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._guarded, operation, key, func, *args)

    def _guarded(self, operation: str, key: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except QuoteStoreError:
            raise
        except sqlite3.Error as e:
            logger.error(f"Quote store {operation} failed for {key!r}: {e}")
            raise StoreUnavailableError(f"Quote store {operation} failed") from e

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    async def ensure_schema(self) -> list[int]:
        """Create the collection and its indexes if they are missing."""
        applied = await self._run(
            "ensure_schema", self.collection, run_migrations, self.db_path, self.collection
        )
        if applied:
            logger.info(f"Ensured quote store schema for {self.collection}: versions {applied}")
        return applied

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def insert(self, quote: Quote) -> Quote:
        """
        Persist a new quote.

        The quote must carry its short id already. Raises QuoteConflictError if
        the id is taken (by an active or a soft-deleted quote). The person key
        is always re-derived from ``person`` and repeated tags are dropped.

        Returns the stored quote with ``id`` and ``added_at`` filled in.
        """
        validate_new_quote(quote)
        stored = replace(
            quote,
            id=None,
            added_at=datetime.now(UTC),
            uses=0,
            likes=0,
            deletion=None,
            person_key=normalize_person_key(quote.person),
            tags=_dedupe_tags(quote.tags),
            mentioned_users=_dedupe_mentions(quote.mentioned_users),
        )
        row_id = await self._run("insert", stored.short_id, self._insert, stored)
        logger.info(f"Quote {stored.short_id} for {stored.person_key} persisted")
        return replace(stored, id=row_id)

    def _insert(self, quote: Quote) -> int:
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"""
                INSERT INTO {self.collection} (
                    short_id, person, person_key, person_user_id, message,
                    tags_json, mentioned_users_json, nsfw,
                    guild_id, channel_id, added_by, added_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    quote.short_id,
                    quote.person,
                    quote.person_key,
                    quote.person_user_id,
                    quote.message,
                    json.dumps(quote.tags),
                    json.dumps([m.to_dict() for m in quote.mentioned_users]),
                    1 if quote.nsfw else 0,
                    quote.guild_id,
                    quote.channel_id,
                    quote.added_by,
                    quote.added_at.isoformat(),
                ),
            )
            conn.commit()
            return cursor.lastrowid
        except sqlite3.IntegrityError as e:
            if "short_id" in str(e):
                raise QuoteConflictError(quote.short_id) from e
            raise
        finally:
            conn.close()

    async def insert_new(self, quote: Quote, attempts: int = 5) -> Quote:
        """Insert, minting a fresh short id after each conflict."""
        if attempts < 1:
            raise InvalidArgumentError("attempts must be at least 1")

        attempt = 1
        while True:
            try:
                return await self.insert(quote)
            except QuoteConflictError:
                if attempt >= attempts:
                    raise
                logger.warning(
                    f"Short id collision on {quote.short_id} (attempt {attempt}/{attempts})"
                )
                quote = replace(quote, short_id=new_short_id())
                attempt += 1

    async def increment_uses(self, short_id: str) -> None:
        """Bump the use counter. Unknown ids are ignored."""
        normalized = normalize_short_id(short_id)
        if not normalized:
            return
        await self._run("increment_uses", normalized, self._increment_uses, normalized)

    def _increment_uses(self, short_id: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                f"UPDATE {self.collection} SET uses = uses + 1 WHERE short_id = ?",
                (short_id,),
            )
            conn.commit()
        finally:
            conn.close()

    async def increment_likes(self, short_id: str) -> int | None:
        """Bump the like counter and return the new count, or None if unknown."""
        normalized = normalize_short_id(short_id)
        if not normalized:
            return None
        return await self._run("increment_likes", normalized, self._increment_likes, normalized)

    def _increment_likes(self, short_id: str) -> int | None:
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"UPDATE {self.collection} SET likes = likes + 1 WHERE short_id = ? RETURNING likes",
                (short_id,),
            )
            row = cursor.fetchone()
            conn.commit()
            return row["likes"] if row else None
        finally:
            conn.close()

    async def soft_delete(self, short_id: str, actor_id: int) -> bool:
        """
        Mark an active quote deleted.

        Returns False when nothing changed; "already deleted" and "never
        existed" are deliberately indistinguishable.
        """
        if actor_id is None:
            raise InvalidArgumentError("actor_id is required")
        normalized = normalize_short_id(short_id)
        if not normalized:
            return False

        changed = await self._run(
            "soft_delete", normalized, self._soft_delete, normalized, actor_id
        )
        if changed:
            logger.info(f"Quote {normalized} soft deleted by {actor_id}")
        return changed

    def _soft_delete(self, short_id: str, actor_id: int) -> bool:
        now = datetime.now(UTC).isoformat()
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"""
                UPDATE {self.collection}
                SET deleted_at = ?, deleted_by = ?
                WHERE short_id = ? AND deleted_at IS NULL
                """,
                (now, actor_id, short_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    async def restore(self, short_id: str, actor_id: int) -> bool:
        """Clear the deletion marker of a soft-deleted quote."""
        if actor_id is None:
            raise InvalidArgumentError("actor_id is required")
        normalized = normalize_short_id(short_id)
        if not normalized:
            return False

        changed = await self._run("restore", normalized, self._restore, normalized)
        if changed:
            logger.info(f"Quote {normalized} restored by {actor_id}")
        return changed

    def _restore(self, short_id: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"""
                UPDATE {self.collection}
                SET deleted_at = NULL, deleted_by = NULL
                WHERE short_id = ? AND deleted_at IS NOT NULL
                """,
                (short_id,),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Reads (active quotes only)
    # -------------------------------------------------------------------------

    def _select(self, where: str, params: tuple, suffix: str = "") -> list[Quote]:
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"SELECT * FROM {self.collection} WHERE deleted_at IS NULL AND ({where}) {suffix}",
                params,
            )
            return [Quote.from_row(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    async def get_by_short_id(self, short_id: str) -> Quote | None:
        """Exact, case-insensitive lookup."""
        normalized = normalize_short_id(short_id)
        if not normalized:
            return None
        quotes = await self._run(
            "get_by_short_id", normalized, self._select, "short_id = ?", (normalized,), "LIMIT 1"
        )
        return quotes[0] if quotes else None

    async def get_fuzzy_by_short_id_prefix(self, prefix: str) -> list[Quote]:
        """
        Quotes whose short id starts with the prefix, ascending by short id.

        The prefix is matched literally and anchored at the start. A blank
        prefix matches nothing.
        """
        normalized = normalize_short_id(prefix)
        if not normalized:
            return []
        return await self._run(
            "get_fuzzy_by_short_id_prefix",
            normalized,
            self._select,
            "substr(short_id, 1, ?) = ?",
            (len(normalized), normalized),
            "ORDER BY short_id ASC",
        )

    async def search(self, query: str, limit: int = 5) -> list[Quote]:
        """
        Case-insensitive substring search over message and tags.

        ``limit`` is clamped to [1, 25]. Results come back in insertion order.
        """
        if not query or not query.strip():
            return []

        needle = query.strip().casefold()
        clamped = clamp_search_limit(limit)
        where = f"""
            instr(fold(message), ?) > 0
            OR EXISTS (
                SELECT 1 FROM json_each({self.collection}.tags_json) AS tag
                WHERE instr(fold(tag.value), ?) > 0
            )
        """
        return await self._run(
            "search",
            f"limit={clamped}",
            self._select,
            where,
            (needle, needle, clamped),
            "ORDER BY id ASC LIMIT ?",
        )

    async def find_by_person_key(self, person_key: str) -> list[Quote]:
        """Active quotes attributed to a person key, oldest first."""
        if not person_key:
            return []
        return await self._run(
            "find_by_person_key",
            person_key,
            self._select,
            "person_key = ?",
            (person_key,),
            "ORDER BY added_at ASC, id ASC",
        )
