import os
from pathlib import Path

DEFAULT_DATA_DIR = Path(
    os.getenv("SERVER_INTEL_DATA_DIR", "")
    or (Path(__file__).parent.parent.resolve() / "data")
).absolute().resolve()

# Environment variables
BATTLEMETRICS_API_KEY_ENV = "BATTLEMETRICS_API_KEY"
STEAM_API_KEY_ENV = "STEAM_API_KEY"

# Ranking service (BattleMetrics) configuration
BATTLEMETRICS_BASE_URL = "https://api.battlemetrics.com"
BATTLEMETRICS_GAME = "dayz"
BATTLEMETRICS_TIMEOUT = 30.0
DISCOVERY_MAX_PAGES = 50
DISCOVERY_PAGE_SIZE = 100
DISCOVERY_PAGE_DELAY = 1.0  # seconds between page fetches
SEARCH_MAX_RESULTS = 50

# Listing names containing these markers point at an address that is no longer valid
STALE_LISTING_MARKERS = ("MOVED", "MIGRATED", "RELOCATED")

# Mod metadata service (Steam Workshop)
WORKSHOP_API_URL = "https://api.steampowered.com/ISteamRemoteStorage/GetPublishedFileDetails/v1/"
WORKSHOP_BATCH_SIZE = 100
WORKSHOP_TIMEOUT = 30.0

# Live query (A2S)
LIVE_QUERY_TIMEOUT = 8.0
LIVE_QUERY_CONCURRENCY = 5

# Snapshot staleness
SNAPSHOT_MAX_AGE_SECONDS = 24 * 60 * 60  # coarse summary freshness
DETAIL_MAX_AGE_SECONDS = 15 * 60  # detail freshness
SCORING_FRESH_SECONDS = 6 * 60 * 60  # older snapshots halve fraud penalties

# Refresh orchestrator defaults
REFRESH_INTERVAL_SECONDS = 60.0
POPULATION_FLOOR = 50
DISCOVERY_MAX_SERVERS = 100
REFRESH_TOP_N = 200
REFRESH_BATCH_SIZE = 5
REFRESH_BATCH_DELAY = 0.5
ENRICH_TOP_N = 50
ENRICH_REQUEST_DELAY = 1.5
STORAGE_LOAD_RETRIES = 3
STORAGE_RETRY_INITIAL_DELAY = 1.0
STORAGE_RETRY_MAX_DELAY = 30.0

# Bulk enrichment defaults
BULK_BATCH_SIZE = 10
BULK_REQUEST_DELAY = 1.5
BULK_BATCH_DELAY = 2.0
BULK_MAX_ERRORS = 100
BULK_MAX_ERROR_LENGTH = 300

# Map backfill
MAP_BACKFILL_LIMIT = 100

# Sentinels
UNKNOWN_MAP = "Unknown"
