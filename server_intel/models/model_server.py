from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from server_intel.models.common import _utc_now


class Perspective(str, Enum):
    """Play perspective advertised by a server."""

    FIRST_PERSON = "1PP"
    THIRD_PERSON = "3PP"
    BOTH = "Both"


class Region(str, Enum):
    """Coarse geographic region buckets."""

    EU = "EU"
    NA_EAST = "NA-EAST"
    NA_WEST = "NA-WEST"
    ASIA = "ASIA"
    OCEANIA = "OCEANIA"
    SOUTH_AMERICA = "SA"
    OTHER = "Other"


class Mod(BaseModel):
    """A mod entry in a server's mod list."""

    id: str = Field(description="Mod identifier (workshop id or keyword token)")
    name: str = Field(description="Display name")
    workshop_id: str | None = Field(default=None, description="External workshop identifier")
    size: int = Field(default=0, ge=0, description="Size in bytes")
    required: bool = Field(default=True)
    installed: bool = Field(default=False)

    @property
    def key(self) -> str:
        """Identity used for set semantics across a mod list."""
        return self.workshop_id or self.id


class ServerRecord(BaseModel):
    """Per-server record reconciled from live and third-party signals."""

    address: str = Field(frozen=True, description="host:port, immutable after creation")
    name: str = Field(default="", description="Display name")
    map: str | None = Field(default=None)
    perspective: Perspective | None = Field(default=None)
    region: str | None = Field(default=None)
    version: str | None = Field(default=None)
    player_count: int = Field(default=0, ge=0, description="Live player count")
    max_players: int = Field(default=0, ge=0, description="Advertised capacity")
    ping: int | None = Field(default=None, ge=0, description="Round-trip time in ms")
    password_protected: bool = Field(default=False)
    verified: bool = Field(default=False)
    mods: list[Mod] = Field(default_factory=list)
    queue: int = Field(default=0, ge=0)
    uptime: int = Field(default=0, ge=0, le=100, description="Uptime percentage")
    last_wipe: datetime | None = Field(default=None)
    last_seen: datetime = Field(default_factory=_utc_now)
    tags: list[str] = Field(default_factory=list)


class ServerFilters(BaseModel):
    """Listing filters understood by storage backends."""

    map: str | None = None
    min_players: int | None = Field(default=None, ge=0)
    max_ping: int | None = Field(default=None, ge=0)
    perspective: Perspective | None = None
    regions: list[str] = Field(default_factory=list)
    show_full: bool = True
    show_password_protected: bool = True
    mod_count: str | None = Field(default=None, description="'vanilla', '1-10' or '10+'")


class ServerSummary(BaseModel):
    """Lightweight listing returned by ranking-service discovery and search."""

    address: str
    name: str
    ranking_id: str | None = None
    map: str | None = None
    player_count: int = 0
    max_players: int = 0
    rank: int | None = None
    status: str | None = None
    country: str | None = None
    region: str | None = None
    version: str | None = None
    password_protected: bool = False


class LiveServerInfo(BaseModel):
    """Result of a direct live query against a running server process."""

    address: str
    name: str
    map: str
    player_count: int = 0
    max_players: int = 0
    ping: int = Field(default=0, description="Round-trip time in ms measured by the caller")
    password_protected: bool = False
    perspective: Perspective | None = None
    region: str | None = None
    version: str = ""
    mods: list[Mod] = Field(default_factory=list)
    verified: bool = False


class AnalyticsEvent(BaseModel):
    """Observability event appended after a successful refresh."""

    server_address: str
    timestamp: datetime = Field(default_factory=_utc_now)
    player_count: int | None = None
    queue: int | None = None
    ping: int | None = None
    response_time_ms: int | None = None
    is_online: bool = True
