"""Mod enrichment: workshop metadata + classification for a server's mod list."""

import logging
from typing import Any

from server_intel.categorization.inference import canonical_map, coalesce_prefer_existing
from server_intel.categorization.mod_classifier import ModClassifier
from server_intel.clients.steam.workshop_client import WorkshopClient
from server_intel.models.model_mod import EnrichedMod
from server_intel.models.model_server import Mod, ServerRecord

logger = logging.getLogger(__name__)


class ModEnrichmentService:
    """Fetches workshop metadata for mods and classifies them."""

    def __init__(self, workshop_client: WorkshopClient, classifier: ModClassifier | None = None):
        self.workshop_client = workshop_client
        self.classifier = classifier or ModClassifier()

    async def enrich_mods(self, mods: list[Mod]) -> list[EnrichedMod]:
        """Classify every mod that has a workshop id, in received order.

        Metadata is fetched in one batched lookup. Mods without a workshop id
        or without metadata are left out.
        """
        workshop_ids = [m.workshop_id for m in mods if m.workshop_id]
        if not workshop_ids:
            return []

        items = {item.workshop_id: item for item in await self.workshop_client.get_items(workshop_ids)}
        ordered = [items[wid] for wid in dict.fromkeys(workshop_ids) if wid in items]
        return self.classifier.classify_many(ordered)

    def apply_to_server(self, server: ServerRecord, enriched: list[EnrichedMod]) -> dict[str, Any]:
        """Build record updates from enriched mods.

        Writes file sizes back into the mod list and, when the record's map is
        unknown, fills it from the first map mod.

        Returns:
            Field updates for `ServerStorage.update_server` (may be empty).
        """
        if not enriched:
            return {}

        by_id = {mod.workshop_id: mod for mod in enriched}
        updates: dict[str, Any] = {
            "mods": [
                mod.model_copy(update={"size": by_id[mod.workshop_id].file_size})
                if mod.workshop_id in by_id
                else mod
                for mod in server.mods
            ]
        }

        detected = self.classifier.detect_map_from_mods(enriched)
        if detected:
            resolved = coalesce_prefer_existing(server.map, canonical_map(detected))
            if resolved != server.map:
                logger.info(f"Map for {server.address} detected from mods: {resolved}")
                updates["map"] = resolved

        return updates

    async def enrich_server(self, server: ServerRecord) -> dict[str, Any]:
        """Enrich a server's mods and return the record updates."""
        enriched = await self.enrich_mods(server.mods)
        return self.apply_to_server(server, enriched)
