"""Tests for the workshop mod classifier."""

import pytest

from server_intel.categorization.mod_classifier import ModClassifier
from server_intel.models.model_mod import EnrichedMod, ModCategory, WorkshopItem


@pytest.fixture
def classifier() -> ModClassifier:
    return ModClassifier()


class TestIsMapMod:
    """Tests for the three-tier map check."""

    def test_map_tag(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="1", title="Some Pack", tags=["Chernarus"])
        assert classifier.is_map_mod(item)

    def test_tag_fuzzy_match(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="1", title="Pack", tags=["Custom Terrains"])
        assert classifier.is_map_mod(item)

    def test_untagged_title(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="2", title="Livonia Expansion Terrain")
        assert classifier.is_map_mod(item)

    def test_description_word(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="3", title="Pack", description="A brand new island to explore.")
        assert classifier.is_map_mod(item)

    def test_description_substring_does_not_count(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(
            workshop_id="4",
            title="Trader",
            description="Check the sitemap and our roadmap for details",
        )
        assert not classifier.is_map_mod(item)

    def test_plain_mod(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="5", title="Community Framework", tags=["Scripts"])
        assert not classifier.is_map_mod(item)


class TestClassify:
    """Tests for category assignment."""

    def test_weapon_tag(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="1", title="Gun Pack", tags=["Weapons"], file_size=2048)
        result = classifier.classify(item)
        assert result.category == ModCategory.WEAPONS
        assert result.file_size == 2048
        assert not result.is_map

    def test_vehicle_tag_case_insensitive(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="1", title="Heli", tags=["HELICOPTER"])
        assert classifier.classify(item).category == ModCategory.VEHICLES

    def test_map_without_category_tag(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="2", title="Livonia Expansion Terrain")
        result = classifier.classify(item)
        assert result.is_map
        assert result.category == ModCategory.MAP

    def test_category_tag_wins_over_map(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="3", title="Island Bases", tags=["Building"])
        result = classifier.classify(item)
        assert result.is_map
        assert result.category == ModCategory.BUILDING

    def test_unknown(self, classifier: ModClassifier) -> None:
        item = WorkshopItem(workshop_id="4", title="Admin Tools")
        assert classifier.classify(item).category == ModCategory.UNKNOWN

    def test_classify_many_preserves_order(self, classifier: ModClassifier) -> None:
        items = [WorkshopItem(workshop_id=str(i), title=f"Mod {i}") for i in range(5)]
        assert [m.workshop_id for m in classifier.classify_many(items)] == ["0", "1", "2", "3", "4"]


class TestDetectMap:
    """Tests for map detection from enriched mods."""

    def test_first_map_mod(self, classifier: ModClassifier) -> None:
        mods = [
            EnrichedMod(workshop_id="1", name="CF"),
            EnrichedMod(workshop_id="2", name="Namalsk Island", is_map=True),
            EnrichedMod(workshop_id="3", name="Deer Isle", is_map=True),
        ]
        assert classifier.detect_map_from_mods(mods) == "Namalsk Island"
        assert len(classifier.extract_map_mods(mods)) == 2

    def test_no_map_mod(self, classifier: ModClassifier) -> None:
        assert classifier.detect_map_from_mods([EnrichedMod(workshop_id="1", name="CF")]) is None
        assert classifier.detect_map_from_mods([]) is None
