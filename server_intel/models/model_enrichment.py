"""Models for the refresh orchestrator and the bulk enrichment job."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from server_intel.consts import (
    DETAIL_MAX_AGE_SECONDS,
    DISCOVERY_MAX_SERVERS,
    ENRICH_REQUEST_DELAY,
    ENRICH_TOP_N,
    POPULATION_FLOOR,
    REFRESH_BATCH_DELAY,
    REFRESH_BATCH_SIZE,
    REFRESH_INTERVAL_SECONDS,
    REFRESH_TOP_N,
    SNAPSHOT_MAX_AGE_SECONDS,
    STORAGE_LOAD_RETRIES,
    STORAGE_RETRY_INITIAL_DELAY,
    STORAGE_RETRY_MAX_DELAY,
)


class RefreshState(str, Enum):
    """Phases of one refresh cycle."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    REFRESHING_SUBSET = "refreshing_subset"
    CLEANING_STALE = "cleaning_stale"
    REDISCOVER_IF_LOW = "rediscover_if_low"
    ENRICHING = "enriching"


class RefreshSettings(BaseModel):
    """Configurable orchestrator tunables."""

    interval_seconds: float = Field(default=REFRESH_INTERVAL_SECONDS, gt=0)
    population_floor: int = Field(default=POPULATION_FLOOR, ge=0)
    discovery_max_servers: int = Field(default=DISCOVERY_MAX_SERVERS, ge=1)
    refresh_top_n: int = Field(default=REFRESH_TOP_N, ge=0)
    refresh_batch_size: int = Field(default=REFRESH_BATCH_SIZE, ge=1)
    refresh_batch_delay: float = Field(default=REFRESH_BATCH_DELAY, ge=0)
    enrich_top_n: int = Field(default=ENRICH_TOP_N, ge=0)
    enrich_request_delay: float = Field(default=ENRICH_REQUEST_DELAY, ge=0)
    snapshot_max_age_seconds: float = Field(default=SNAPSHOT_MAX_AGE_SECONDS, gt=0)
    detail_max_age_seconds: float = Field(default=DETAIL_MAX_AGE_SECONDS, gt=0)
    load_retries: int = Field(default=STORAGE_LOAD_RETRIES, ge=0)
    load_retry_initial_delay: float = Field(default=STORAGE_RETRY_INITIAL_DELAY, ge=0)
    load_retry_max_delay: float = Field(default=STORAGE_RETRY_MAX_DELAY, ge=0)


class RefreshStatus(BaseModel):
    """Point-in-time view of the orchestrator."""

    is_refreshing: bool
    state: RefreshState
    last_refresh_time: datetime | None
    server_count: int


class RefreshCycleResult(BaseModel):
    """Counters from one completed refresh cycle."""

    refreshed: int = 0
    attempted: int = 0
    removed_stale: int = 0
    rediscovered: bool = False
    enriched: int = 0
    duration_seconds: float = 0.0


class EnrichmentProgress(BaseModel):
    """Live progress of the bulk enrichment job."""

    total_servers: int = 0
    processed_servers: int = 0
    successful_enrichments: int = 0
    failed_enrichments: int = 0
    skipped_servers: int = 0
    is_running: bool = False
    start_time: datetime | None = None
    finished_at: datetime | None = None
    estimated_completion_time: datetime | None = None
    current_batch: int = 0
    total_batches: int = 0
    errors: list[str] = Field(default_factory=list)
