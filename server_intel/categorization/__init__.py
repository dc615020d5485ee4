"""Categorization module for region, perspective, map and mod classification."""

from server_intel.categorization.inference import (
    canonical_map,
    coalesce_prefer_existing,
    infer_map,
    infer_perspective,
    infer_region,
    is_unknown,
    is_stale_listing,
    region_from_country,
    resolve_region,
)
from server_intel.categorization.mod_classifier import ModClassifier

__all__ = [
    # Inference
    "canonical_map",
    "coalesce_prefer_existing",
    "infer_map",
    "infer_perspective",
    "infer_region",
    "is_unknown",
    "is_stale_listing",
    "region_from_country",
    "resolve_region",
    # Mods
    "ModClassifier",
]
