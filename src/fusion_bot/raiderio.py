"""
Raider.IO API client for fusion-bot.

Character and guild profiles: Mythic+ scores and ranks, gear, raid
progression.

API Documentation: https://raider.io/api
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from .warcraft import US, normalize_region, slugify

logger = logging.getLogger(__name__)

RAIDERIO_API_BASE = "https://raider.io/api/v1"
RAIDERIO_SITE = "https://raider.io"


@dataclass
class MythicPlusRank:
    """Overall Mythic+ rank at world, region and realm scope."""

    world: int | None = None
    region: int | None = None
    realm: int | None = None


@dataclass
class MythicPlusSeasonScores:
    """Scores for one season, keyed by role ("all", "dps", "healer", "tank")."""

    season: str
    scores: dict[str, float] = field(default_factory=dict)


@dataclass
class CharacterGear:
    """Item level summary."""

    item_level_equipped: float = 0.0
    item_level_total: float = 0.0


@dataclass
class RaiderIoCharacterProfile:
    """Character profile from Raider.IO."""

    name: str
    character_class: str = ""
    race: str = ""
    realm: str = ""
    region: str = ""
    active_spec_name: str | None = None
    gear: CharacterGear | None = None
    overall_rank: MythicPlusRank | None = None
    mythic_plus_scores_by_season: list[MythicPlusSeasonScores] = field(default_factory=list)
    profile_url: str | None = None
    last_crawled_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RaiderIoCharacterProfile":
        """Parse a characters/profile response body."""
        gear = None
        if data.get("gear"):
            gear = CharacterGear(
                item_level_equipped=float(data["gear"].get("item_level_equipped", 0)),
                item_level_total=float(data["gear"].get("item_level_total", 0)),
            )

        overall_rank = None
        overall = (data.get("mythic_plus_ranks") or {}).get("overall")
        if overall:
            overall_rank = MythicPlusRank(
                world=overall.get("world"),
                region=overall.get("region"),
                realm=overall.get("realm"),
            )

        seasons = [
            MythicPlusSeasonScores(
                season=s.get("season", ""),
                scores={k: float(v) for k, v in (s.get("scores") or {}).items()},
            )
            for s in data.get("mythic_plus_scores_by_season") or []
        ]

        return cls(
            name=data.get("name", ""),
            character_class=data.get("class", ""),
            race=data.get("race", ""),
            realm=data.get("realm", ""),
            region=data.get("region", ""),
            active_spec_name=data.get("active_spec_name"),
            gear=gear,
            overall_rank=overall_rank,
            mythic_plus_scores_by_season=seasons,
            profile_url=data.get("profile_url"),
            last_crawled_at=_parse_timestamp(data.get("last_crawled_at")),
        )

    @property
    def current_score(self) -> float | None:
        """Overall score of the first (current) season, if any."""
        if not self.mythic_plus_scores_by_season:
            return None
        scores = self.mythic_plus_scores_by_season[0].scores
        if not scores:
            return None
        return scores.get("all", 0.0)


@dataclass
class RaidProgression:
    """Progress through one raid."""

    summary: str
    total_bosses: int = 0
    normal_bosses_killed: int = 0
    heroic_bosses_killed: int = 0
    mythic_bosses_killed: int = 0


@dataclass
class RaiderIoGuildProfile:
    """Guild profile from Raider.IO."""

    name: str
    faction: str = ""
    realm: str = ""
    region: str = ""
    profile_url: str | None = None
    raid_progression: dict[str, RaidProgression] = field(default_factory=dict)
    member_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RaiderIoGuildProfile":
        """Parse a guilds/profile response body."""
        progression = {
            raid: RaidProgression(
                summary=p.get("summary", ""),
                total_bosses=p.get("total_bosses", 0),
                normal_bosses_killed=p.get("normal_bosses_killed", 0),
                heroic_bosses_killed=p.get("heroic_bosses_killed", 0),
                mythic_bosses_killed=p.get("mythic_bosses_killed", 0),
            )
            for raid, p in (data.get("raid_progression") or {}).items()
        }

        return cls(
            name=data.get("name", ""),
            faction=data.get("faction", ""),
            realm=data.get("realm", ""),
            region=data.get("region", ""),
            profile_url=data.get("profile_url"),
            raid_progression=progression,
            member_count=len(data.get("members") or []),
        )


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable Raider.IO timestamp: {value}")
        return None


class RaiderIoClient:
    """
    Client for the Raider.IO public API.

    Lookups return None when Raider.IO answers 404; other HTTP errors raise
    httpx.HTTPStatusError.
    """

    def __init__(
        self,
        base_url: str = RAIDERIO_API_BASE,
        region: str = US,
        default_fields: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
    ):
        self.base_url = (base_url or RAIDERIO_API_BASE).rstrip("/")
        self.region = normalize_region(region)
        self.default_fields = default_fields
        self.api_key = api_key
        self.timeout = timeout_seconds

    def _headers(self) -> dict[str, str]:
        if self.api_key:
            return {"x-api-key": self.api_key}
        return {}

    @staticmethod
    def _build_params(region: str, realm: str, name: str, fields: str | None) -> dict[str, str]:
        params = {"region": region, "realm": realm.strip(), "name": name.strip()}
        if fields and fields.strip():
            params["fields"] = fields.strip()
        return params

    async def _get_profile(self, path: str, params: dict[str, str], what: str) -> dict | None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/{path}",
                params=params,
                headers=self._headers(),
            )
            if response.status_code == 404:
                logger.info(
                    f"Raider.IO {what} {params['name']} on {params['realm']} "
                    f"({params['region']}) not found"
                )
                return None
            response.raise_for_status()
            return response.json()

    async def get_character(
        self,
        realm: str,
        character: str,
        region: str | None = None,
        fields: str | None = None,
    ) -> RaiderIoCharacterProfile | None:
        """
        Fetch a character profile.

        Args:
            realm: Realm name (e.g., "Area 52")
            character: Character name
            region: Region code, defaults to the client region
            fields: Comma-delimited extra fields, defaults to the configured ones
        """
        if not realm or not realm.strip():
            raise ValueError("Realm is required")
        if not character or not character.strip():
            raise ValueError("Character is required")

        params = self._build_params(
            normalize_region(region or self.region),
            realm,
            character,
            fields if fields is not None else self.default_fields,
        )
        data = await self._get_profile("characters/profile", params, "character")
        return RaiderIoCharacterProfile.from_dict(data) if data is not None else None

    async def get_guild(
        self,
        realm: str,
        guild: str,
        region: str | None = None,
        fields: str | None = None,
    ) -> RaiderIoGuildProfile | None:
        """Fetch a guild profile (pass fields="raid_progression,members" for detail)."""
        if not realm or not realm.strip():
            raise ValueError("Realm is required")
        if not guild or not guild.strip():
            raise ValueError("Guild is required")

        params = self._build_params(normalize_region(region or self.region), realm, guild, fields)
        data = await self._get_profile("guilds/profile", params, "guild")
        return RaiderIoGuildProfile.from_dict(data) if data is not None else None


def _site_slug(value: str | None) -> str:
    if not value or not value.strip():
        return ""
    return slugify(value)


def character_profile_url(profile: RaiderIoCharacterProfile) -> str:
    """Link to the character's Raider.IO page."""
    if profile.profile_url:
        return profile.profile_url
    region = (profile.region or US).strip().lower()
    return f"{RAIDERIO_SITE}/characters/{region}/{_site_slug(profile.realm)}/{_site_slug(profile.name)}"


def guild_profile_url(profile: RaiderIoGuildProfile) -> str:
    """Link to the guild's Raider.IO page."""
    if profile.profile_url:
        return profile.profile_url
    region = (profile.region or US).strip().lower()
    return f"{RAIDERIO_SITE}/guilds/{region}/{_site_slug(profile.realm)}/{_site_slug(profile.name)}"
