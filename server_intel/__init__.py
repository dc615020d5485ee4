"""server-intel: game server discovery, enrichment and trust scoring."""

__version__ = "0.1.0"
