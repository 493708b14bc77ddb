"""Static registry of supported host products grouped by family."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping


class UnknownFamily(KeyError):
    """Raised when a family name is not present in the registry."""

    def __init__(self, family: str) -> None:
        super().__init__(family)
        self.family = family

    def __str__(self) -> str:
        return f'Unknown product family "{self.family}"'


class UnknownProduct(KeyError):
    """Raised when a product is not available within a family."""

    def __init__(self, product: str, family: str) -> None:
        super().__init__(product)
        self.product = product
        self.family = family

    def __str__(self) -> str:
        return f'Unknown product "{self.product}" ({self.family})'


@dataclass(frozen=True, slots=True)
class VersionRange:
    min: float
    max: float


@dataclass(frozen=True, slots=True)
class Executables:
    windows: str
    mac: str

    def for_os(self, os_name: str) -> str:
        return self.windows if os_name == "windows" else self.mac


@dataclass(frozen=True, slots=True)
class ProductRecord:
    key: str
    family_display_name: str
    display_name: str
    host_identifiers: tuple[str, ...]
    version_range: VersionRange
    executables: Executables
    install_folder: str | None = None
    supports_64bit: bool = True
    debug_port_offset: int = 0


@dataclass(frozen=True, slots=True)
class FamilyRecord:
    name: str
    epoch: int
    csxs_version: int
    products: Mapping[str, ProductRecord] = field(default_factory=dict)


# Family-wide product traits that never change between releases.
_PRODUCT_TRAITS: Dict[str, dict] = {
    "photoshop": {"family_display_name": "Photoshop", "display_name": "Photoshop", "ids": ("PHXS", "PHSP"), "win": "Photoshop.exe", "port": 0},
    "illustrator": {"family_display_name": "Illustrator", "display_name": "Illustrator", "ids": ("ILST",), "win": "Support Files/Contents/Windows/Illustrator.exe", "port": 1},
    "indesign": {"family_display_name": "InDesign", "display_name": "InDesign", "ids": ("IDSN",), "win": "InDesign.exe", "port": 2},
    "incopy": {"family_display_name": "InCopy", "display_name": "InCopy", "ids": ("AICY",), "win": "InCopy.exe", "port": 3},
    "premiere": {"family_display_name": "Premiere", "display_name": "Premiere Pro", "ids": ("PPRO",), "win": "Adobe Premiere Pro.exe", "port": 4},
    "prelude": {"family_display_name": "Prelude", "display_name": "Prelude", "ids": ("PRLD",), "win": "Prelude.exe", "port": 5, "x64": False},
    "aftereffects": {"family_display_name": "AfterEffects", "display_name": "After Effects", "ids": ("AEFT",), "win": "Support Files/AfterFX.exe", "port": 6},
    "flash": {"family_display_name": "Flash", "display_name": "Flash", "ids": ("FLPR",), "win": "Flash.exe", "port": 7},
    "dreamweaver": {"family_display_name": "Dreamweaver", "display_name": "Dreamweaver", "ids": ("DRWV",), "win": "Dreamweaver.exe", "port": 8, "x64": False},
}

# name -> (epoch, csxs version, {product: (min, max, mac bundle, install folder)})
_FAMILY_TABLE: Dict[str, tuple[int, int, Dict[str, tuple]]] = {
    "cc": (0, 4, {
        "photoshop": (14.0, 14.9, "Adobe Photoshop CC.app", None),
        "illustrator": (17.0, 17.9, "Adobe Illustrator CC.app", None),
        "indesign": (9.0, 9.9, "Adobe InDesign CC.app", None),
        "flash": (13.0, 13.9, "Adobe Flash CC.app", None),
        "aftereffects": (12.0, 12.9, "Adobe After Effects CC.app", None),
        "premiere": (7.0, 7.9, "Adobe Premiere Pro CC.app", None),
        "prelude": (2.0, 2.9, "Adobe Prelude CC.app", None),
        "dreamweaver": (13.0, 13.9, "Adobe Dreamweaver CC.app", None),
        "incopy": (9.0, 9.9, "Adobe InCopy CC.app", None),
    }),
    "cc2014": (1, 5, {
        "photoshop": (15.0, 15.9, "Adobe Photoshop CC 2014.app", None),
        "illustrator": (18.0, 18.9, "Adobe Illustrator CC 2014.app", None),
        "indesign": (10.0, 10.9, "Adobe InDesign CC 2014.app", None),
        "flash": (14.0, 14.9, "Adobe Flash CC 2014.app", None),
        "aftereffects": (13.0, 13.4, "Adobe After Effects CC 2014.app", None),
        "premiere": (8.0, 8.9, "Adobe Premiere Pro CC 2014.app", None),
        "prelude": (3.0, 3.9, "Adobe Prelude CC 2014.app", None),
        "dreamweaver": (14.0, 14.9, "Adobe Dreamweaver CC 2014.app", None),
        "incopy": (10.0, 10.9, "Adobe InCopy CC 2014.app", None),
    }),
    "cc2015": (2, 6, {
        "photoshop": (16.0, 16.9, "Adobe Photoshop CC 2015.app", None),
        "illustrator": (19.0, 19.9, "Adobe Illustrator CC 2015.app", None),
        "indesign": (11.0, 11.9, "Adobe InDesign CC 2015.app", None),
        "flash": (15.0, 15.9, "Adobe Flash CC 2015.app", None),
        "aftereffects": (13.5, 13.9, "Adobe After Effects CC 2015.app", None),
        "premiere": (9.0, 9.9, "Adobe Premiere Pro CC 2015.app", None),
        "prelude": (4.0, 4.9, "Adobe Prelude CC 2015.app", None),
        "dreamweaver": (15.0, 15.9, "Adobe Dreamweaver CC 2015.app", None),
        "incopy": (11.0, 11.9, "Adobe InCopy CC 2015.app", None),
    }),
    "cc2015.5": (3, 7, {
        "photoshop": (17.0, 17.9, "Adobe Photoshop CC 2015.5.app", None),
        "illustrator": (20.0, 20.9, "Adobe Illustrator CC 2015.3.app", "Adobe Illustrator CC 2015.3"),
        "indesign": (11.0, 11.9, "Adobe InDesign CC 2015.app", None),
        "flash": (15.0, 15.9, "Adobe Flash CC 2015.app", "Adobe Flash CC 2015.2"),
        "aftereffects": (13.5, 13.9, "Adobe After Effects CC 2015.3.app", "Adobe After Effects CC 2015.3"),
        "premiere": (10.0, 10.9, "Adobe Premiere Pro CC 2015.app", "Adobe Premiere Pro CC 2015.3"),
        "prelude": (5.0, 5.9, "Adobe Prelude CC 2015.app", "Adobe Prelude CC 2015.4"),
        "dreamweaver": (15.0, 15.9, "Adobe Dreamweaver CC 2015.app", None),
        "incopy": (11.0, 11.9, "Adobe InCopy CC 2015.app", None),
    }),
}


def _build_registry() -> Mapping[str, FamilyRecord]:
    families: Dict[str, FamilyRecord] = {}
    for family_name, (epoch, csxs_version, entries) in _FAMILY_TABLE.items():
        products: Dict[str, ProductRecord] = {}
        for key, (min_version, max_version, mac_bundle, folder) in entries.items():
            traits = _PRODUCT_TRAITS[key]
            if min_version > max_version:
                raise ValueError(f"Invalid version range for {key} ({family_name})")
            products[key] = ProductRecord(
                key=key,
                family_display_name=traits["family_display_name"],
                display_name=traits["display_name"],
                host_identifiers=tuple(traits["ids"]),
                version_range=VersionRange(min=min_version, max=max_version),
                executables=Executables(windows=traits["win"], mac=mac_bundle),
                install_folder=folder,
                supports_64bit=traits.get("x64", True),
                debug_port_offset=traits["port"],
            )
        families[family_name] = FamilyRecord(
            name=family_name,
            epoch=epoch,
            csxs_version=csxs_version,
            products=MappingProxyType(products),
        )
    return MappingProxyType(families)


REGISTRY: Mapping[str, FamilyRecord] = _build_registry()
"""Read-only ``family -> FamilyRecord`` table, loaded once at import."""


def get_family(family: str) -> FamilyRecord:
    try:
        return REGISTRY[family]
    except KeyError:
        raise UnknownFamily(family) from None


def lookup(product: str, family: str) -> ProductRecord:
    """Return the registry record for *product* within *family*."""

    record = get_family(family)
    try:
        return record.products[product]
    except KeyError:
        raise UnknownProduct(product, family) from None


def known_families() -> List[str]:
    return sort_families(REGISTRY.keys())


def earliest_family() -> str:
    return known_families()[0]


def family_epoch(family: str) -> int:
    return get_family(family).epoch


def sort_families(names: Iterable[str]) -> List[str]:
    """Order family names chronologically.

    Known families sort by their registry epoch; unknown names follow in
    alphabetical order so lookups on them still fail with :class:`UnknownFamily`.
    """

    def key(name: str) -> tuple[int, int, str]:
        record = REGISTRY.get(name)
        if record is None:
            return (1, 0, name)
        return (0, record.epoch, name)

    return sorted(names, key=key)


def families_from(minimum: str) -> List[str]:
    """Return *minimum* and every known family released after it."""

    start = family_epoch(minimum)
    return [name for name in known_families() if REGISTRY[name].epoch >= start]
