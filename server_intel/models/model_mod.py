from enum import Enum

from pydantic import BaseModel, Field


class ModCategory(str, Enum):
    """Coarse mod categories."""

    WEAPONS = "Weapons"
    VEHICLES = "Vehicles"
    GEAR = "Gear"
    BUILDING = "Building"
    MAP = "Map"
    UNKNOWN = "Unknown"


class WorkshopItem(BaseModel):
    """Mod metadata returned by the mod-metadata service."""

    workshop_id: str
    title: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    file_size: int = Field(default=0, ge=0)
    preview_url: str | None = None
    subscriber_count: int = Field(default=0, ge=0)
    time_created: int | None = None
    time_updated: int | None = None
    creator: str | None = None


class EnrichedMod(BaseModel):
    """Mod with derived classification. Never authoritative for identity."""

    workshop_id: str
    name: str
    is_map: bool = False
    category: ModCategory = ModCategory.UNKNOWN
    tags: list[str] = Field(default_factory=list)
    file_size: int = Field(default=0, ge=0)
    preview_url: str | None = None
    subscriber_count: int = Field(default=0, ge=0)
