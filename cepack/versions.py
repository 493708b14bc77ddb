"""Host version range resolution over the product registry."""
from __future__ import annotations

from typing import Sequence

from .hosts import ProductRecord, VersionRange, earliest_family, lookup

# Products whose installer entries must list every architecture alias.
_LEGACY_ALIASES = {
    "Illustrator": "Illustrator,Illustrator32,Illustrator64",
    "InCopy": "InCopy,InCopy32,InCopy64",
    "InDesign": "InDesign,InDesign32,InDesign64",
    "Photoshop": "Photoshop,Photoshop32,Photoshop64",
}


def resolve_single(product: str, family: str) -> ProductRecord:
    return lookup(product, family)


def resolve_range(product: str, families: Sequence[str]) -> VersionRange:
    """Merge the version ranges of *product* across every family in *families*.

    Any family that cannot be resolved aborts the whole computation.
    """

    if not families:
        raise ValueError(f"Cannot resolve a version range for '{product}' without families")

    lowest: float | None = None
    highest: float | None = None
    for family in families:
        record = lookup(product, family)
        if lowest is None or record.version_range.min < lowest:
            lowest = record.version_range.min
        if highest is None or record.version_range.max > highest:
            highest = record.version_range.max
    return VersionRange(min=lowest, max=highest)


def map_to_legacy_family_name(product: str, family: str | None = None) -> str:
    """Return the installer product name, expanding legacy architecture aliases."""

    record = lookup(product, family or earliest_family())
    name = record.family_display_name
    return _LEGACY_ALIASES.get(name, name)


def format_version(value: float) -> str:
    return f"{value:.1f}"
