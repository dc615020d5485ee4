"""Steam-side clients: live server queries and workshop metadata."""

from server_intel.clients.steam.live_query import LiveQueryClient, parse_mods_from_keywords
from server_intel.clients.steam.workshop_client import WorkshopClient, format_file_size

__all__ = [
    "LiveQueryClient",
    "WorkshopClient",
    "format_file_size",
    "parse_mods_from_keywords",
]
