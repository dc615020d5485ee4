"""Mod classifier for workshop metadata.

Decides whether a mod ships a map and assigns a coarse category. The map check
runs in three tiers of decreasing confidence:
1. Tags (curator-controlled): fuzzy match against map keywords
2. Title: substring match against the same keywords
3. Description: exact word match against a stricter set only
"""

import logging
import re

from server_intel.categorization.keyword_taxonomy import (
    MAP_DESCRIPTION_WORDS,
    MAP_MOD_TAGS,
    MOD_CATEGORY_TAGS,
)
from server_intel.models.model_mod import EnrichedMod, ModCategory, WorkshopItem

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\w+")


class ModClassifier:
    """Classifies workshop items into map/non-map and coarse categories."""

    def is_map_mod(self, item: WorkshopItem) -> bool:
        """Check whether a workshop item is a map/terrain mod.

        Args:
            item: Workshop metadata for one mod.

        Returns:
            True if tags, title or description words indicate a map.
        """
        tags = [t.lower() for t in item.tags]
        if any(keyword in tag for tag in tags for keyword in MAP_MOD_TAGS):
            return True

        title = item.title.lower()
        if any(keyword in title for keyword in MAP_MOD_TAGS):
            return True

        # "roadmap" and "sitemap" must not count
        words = set(_WORD_RE.findall(item.description.lower()))
        return not words.isdisjoint(MAP_DESCRIPTION_WORDS)

    def _category_from_tags(self, tags: list[str]) -> ModCategory | None:
        lowered = {t.lower() for t in tags}
        for category, vocabulary in MOD_CATEGORY_TAGS.items():
            if not lowered.isdisjoint(vocabulary):
                return ModCategory(category)
        return None

    def classify(self, item: WorkshopItem) -> EnrichedMod:
        """Classify a single workshop item.

        Category comes from the first matching tag vocabulary; map mods
        without a more specific tag fall back to Map, everything else to
        Unknown.
        """
        is_map = self.is_map_mod(item)
        category = self._category_from_tags(item.tags)
        if category is None:
            category = ModCategory.MAP if is_map else ModCategory.UNKNOWN

        return EnrichedMod(
            workshop_id=item.workshop_id,
            name=item.title,
            is_map=is_map,
            category=category,
            tags=list(item.tags),
            file_size=item.file_size,
            preview_url=item.preview_url,
            subscriber_count=item.subscriber_count,
        )

    def classify_many(self, items: list[WorkshopItem]) -> list[EnrichedMod]:
        """Classify items, preserving input order."""
        return [self.classify(item) for item in items]

    def extract_map_mods(self, mods: list[EnrichedMod]) -> list[EnrichedMod]:
        return [mod for mod in mods if mod.is_map]

    def detect_map_from_mods(self, mods: list[EnrichedMod]) -> str | None:
        """Name of the first map mod, or None.

        A server is assumed to run one primary map mod.
        """
        map_mods = self.extract_map_mods(mods)
        if not map_mods:
            return None
        if len(map_mods) > 1:
            logger.debug(f"Multiple map mods found, using first: {[m.name for m in map_mods]}")
        return map_mods[0].name


def main() -> None:
    """Demonstrate mod classification with sample workshop items."""
    classifier = ModClassifier()

    samples = [
        WorkshopItem(workshop_id="1", title="Namalsk Island", tags=["Map", "Terrain"]),
        WorkshopItem(workshop_id="2", title="Livonia Expansion Terrain"),
        WorkshopItem(workshop_id="3", title="Base Building Plus", tags=["Building"]),
        WorkshopItem(workshop_id="4", title="Weapon Pack", tags=["Weapons"]),
        WorkshopItem(workshop_id="5", title="Trader", description="See the sitemap for details"),
    ]

    print("Mod Classifier Demo")
    print("=" * 50)
    enriched = classifier.classify_many(samples)
    for mod in enriched:
        print(f"  {mod.name:<30} is_map={mod.is_map!s:<5} category={mod.category.value}")

    print(f"\nDetected map: {classifier.detect_map_from_mods(enriched)}")


if __name__ == "__main__":
    main()
