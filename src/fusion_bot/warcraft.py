"""
Blizzard World of Warcraft API client for fusion-bot.

Fetches character profiles from the Battle.net profile API. Access tokens
come from the OAuth client-credentials flow and are cached per region.

API Documentation: https://develop.battle.net/documentation/world-of-warcraft
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# =============================================================================
# Regions
# =============================================================================

US = "us"
EU = "eu"
KR = "kr"
TW = "tw"
CN = "cn"

SUPPORTED_REGIONS = frozenset({US, EU, KR, TW, CN})


def is_supported_region(region: str | None) -> bool:
    """Check a region code without raising."""
    if region is None or not region.strip():
        return False
    return region.strip().lower() in SUPPORTED_REGIONS


def normalize_region(region: str | None) -> str:
    """
    Canonicalize a region code (" EU " -> "eu").

    Raises ValueError for blank or unsupported regions.
    """
    if region is None or not region.strip():
        raise ValueError("Region is required")

    normalized = region.strip().lower()
    if normalized not in SUPPORTED_REGIONS:
        raise ValueError(f"Unsupported Blizzard API region: {region!r}")
    return normalized


_SLUG_DISALLOWED = re.compile(r"[^a-z0-9-]")


def slugify(value: str | None) -> str:
    """
    Build a Blizzard realm/character slug ("Area 52" -> "area-52").

    Raises ValueError for blank input.
    """
    if value is None or not value.strip():
        raise ValueError("Value cannot be empty")

    normalized = value.strip().lower().replace(" ", "-")
    return _SLUG_DISALLOWED.sub("", normalized)


# =============================================================================
# Models
# =============================================================================


@dataclass
class KeyedSummary:
    """A reference to another API resource (race, class, faction)."""

    id: int
    name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "KeyedSummary | None":
        if not data:
            return None
        return cls(id=data.get("id", 0), name=_localized(data.get("name")))


@dataclass
class RealmSummary:
    """Realm reference carried on a character profile."""

    id: int
    name: str | None = None
    slug: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RealmSummary | None":
        if not data:
            return None
        return cls(
            id=data.get("id", 0),
            name=_localized(data.get("name")),
            slug=data.get("slug"),
        )


@dataclass
class CharacterProfile:
    """Character profile summary from the profile API."""

    id: int
    name: str
    level: int = 0
    faction: KeyedSummary | None = None
    race: KeyedSummary | None = None
    character_class: KeyedSummary | None = None
    realm: RealmSummary | None = None
    last_login_timestamp: int | None = None
    item_level: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CharacterProfile":
        """Parse a profile API response body."""
        return cls(
            id=data.get("id", 0),
            name=data.get("name", ""),
            level=data.get("level", 0),
            faction=KeyedSummary.from_dict(data.get("faction")),
            race=KeyedSummary.from_dict(data.get("race")),
            character_class=KeyedSummary.from_dict(data.get("character_class")),
            realm=RealmSummary.from_dict(data.get("realm")),
            last_login_timestamp=data.get("last_login_timestamp"),
            item_level=data.get("equipped_item_level", data.get("item_level")),
        )


def _localized(value: Any) -> str | None:
    # Names are plain strings when a locale is requested, else a locale map
    if isinstance(value, dict):
        return value.get("en_US") or next(iter(value.values()), None)
    return value


# =============================================================================
# Client
# =============================================================================


class GameDataConfigError(RuntimeError):
    """Raised when an API client is missing required credentials."""


@dataclass
class AccessToken:
    """A cached OAuth access token."""

    token: str
    region: str
    expires_in: int
    created_at: float

    def is_expired(self, now: float | None = None) -> bool:
        # Refresh 30 seconds early
        now = time.monotonic() if now is None else now
        return now >= self.created_at + max(1, self.expires_in - 30)


class WarcraftClient:
    """
    Client for the Blizzard World of Warcraft profile API.

    Token refresh is double-checked under a lock so concurrent lookups
    against an expired token trigger exactly one OAuth request.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        region: str = US,
        locale: str = "en_US",
        timeout_seconds: float = 10.0,
    ):
        """
        Initialize the Warcraft client.

        Args:
            client_id: OAuth client id from https://develop.battle.net
            client_secret: OAuth client secret
            region: Default region for lookups
            locale: Locale for localized fields
            timeout_seconds: Request timeout in seconds
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.region = normalize_region(region)
        self.locale = locale.strip() if locale and locale.strip() else "en_US"
        self.timeout = timeout_seconds
        self._token_cache: dict[str, AccessToken] = {}
        self._token_lock = asyncio.Lock()

    async def get_character(
        self,
        realm: str,
        character: str,
        region: str | None = None,
    ) -> CharacterProfile | None:
        """
        Fetch a character profile.

        Returns None when Blizzard answers 404. Other HTTP errors raise
        httpx.HTTPStatusError.
        """
        region_code = normalize_region(region or self.region)
        realm_slug = slugify(realm)
        character_slug = slugify(character)
        token = await self._get_access_token(region_code)

        url = (
            f"https://{region_code}.api.blizzard.com/profile/wow/character/"
            f"{realm_slug}/{character_slug}"
        )
        params = {"namespace": f"profile-{region_code}", "locale": self.locale}

        logger.debug(f"Looking up character {character_slug} on {realm_slug} ({region_code})")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
            if response.status_code == 404:
                logger.info(f"Character {character} on {realm} ({region_code}) was not found")
                return None
            response.raise_for_status()
            return CharacterProfile.from_dict(response.json())

    async def _get_access_token(self, region: str) -> str:
        """Get a cached token for the region, fetching one if needed."""
        cached = self._token_cache.get(region)
        if cached and not cached.is_expired():
            return cached.token

        async with self._token_lock:
            cached = self._token_cache.get(region)
            if cached and not cached.is_expired():
                return cached.token

            if not self.client_id or not self.client_secret:
                raise GameDataConfigError(
                    "Warcraft client requires client_id and client_secret to request an access token"
                )

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"https://{region}.battle.net/oauth/token",
                    auth=(self.client_id, self.client_secret),
                    data={"grant_type": "client_credentials"},
                )
                response.raise_for_status()
                data = response.json()

            access_token = data.get("access_token") if data else None
            if not access_token:
                raise GameDataConfigError("Blizzard token response was empty")

            expires_in = int(data.get("expires_in", 0))
            self._token_cache[region] = AccessToken(
                token=access_token,
                region=region,
                expires_in=expires_in,
                created_at=time.monotonic(),
            )
            logger.info(f"Fetched Blizzard access token for {region}, expires in {expires_in}s")
            return access_token
