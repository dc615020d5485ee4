"""Storage backends for server records and ranking snapshots.

This module provides:
- ServerStorage: Abstract base class every backend implements
- InMemoryStorage: Lock-guarded in-process store
- JsonFileStorage: InMemoryStorage persisted as JSON files
"""

from server_intel.storage.base import ServerStorage, apply_filters
from server_intel.storage.file_storage import JsonFileStorage
from server_intel.storage.memory_storage import InMemoryStorage

__all__ = [
    "InMemoryStorage",
    "JsonFileStorage",
    "ServerStorage",
    "apply_filters",
]
