"""Build model: normalization, validation and install-target resolution."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence
import re
import uuid

from .environment import HostSystem
from .hosts import ProductRecord, VersionRange, families_from, get_family, lookup, sort_families
from .versions import resolve_range

BUNDLE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
BUNDLE_VERSION_PATTERN = re.compile(r"^\d{1,9}(\.\d{1,9}(\.\d{1,9}(\.(\w|_|-)+)?)?)?$")

DEBUG_ID_SUFFIX = ".debug"
DEBUG_NAME_SUFFIX = " (debug)"

# The first CC release installs into its own service manager folder and, on
# 64-bit Windows, into a " (64 Bit)" application folder.
_LEGACY_FAMILY = "cc"


class ConfigValidationError(ValueError):
    """Raised when a build configuration is incomplete or malformed."""


class ProductNotInBuild(LookupError):
    """Raised when a launch targets a product or family the build does not declare."""


class ExecutableNotFound(FileNotFoundError):
    """Raised when the host application executable is missing."""


class FamilyMode(str, Enum):
    MINIMUM = "minimum"
    RANGE = "range"


@dataclass(frozen=True, slots=True)
class FamilySet:
    """Targeted families: a single minimum family or a closed, ordered range."""

    mode: FamilyMode
    names: tuple[str, ...] = ()

    @classmethod
    def minimum(cls, name: str) -> "FamilySet":
        return cls(FamilyMode.MINIMUM, (name,) if name else ())

    @classmethod
    def range(cls, names: Sequence[str]) -> "FamilySet":
        return cls(FamilyMode.RANGE, tuple(sort_families(names)))

    @property
    def is_range(self) -> bool:
        return self.mode is FamilyMode.RANGE

    @property
    def lowest(self) -> str:
        return self.names[0]

    def __bool__(self) -> bool:
        return bool(self.names)

    def version_bounds(self, product: str) -> tuple[float, float | None]:
        """Return ``(min, max)`` for *product*; ``max`` is ``None`` in minimum mode."""

        if self.is_range:
            merged: VersionRange = resolve_range(product, self.names)
            return merged.min, merged.max
        return lookup(product, self.lowest).version_range.min, None

    def includes(self, family: str) -> bool:
        if self.is_range:
            return family in self.names
        get_family(family)
        return family in families_from(self.lowest)

    def to_mapping(self) -> Dict[str, Any]:
        return {"mode": self.mode.value, "names": list(self.names)}


def _clean_names(value: Any) -> List[str]:
    if isinstance(value, str):
        text = value.strip().lower()
        return [text] if text else []
    if isinstance(value, (list, tuple)):
        result: List[str] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                result.append(item.strip().lower())
        return result
    return []


def parse_products(value: Any) -> tuple[str, ...]:
    """Normalize a product name or list of names into lower-cased unique keys."""

    return tuple(dict.fromkeys(_clean_names(value)))


def parse_families(value: Any) -> FamilySet:
    """A string selects minimum mode, a list selects range mode."""

    if isinstance(value, str):
        return FamilySet.minimum(value.strip().lower())
    return FamilySet.range(list(dict.fromkeys(_clean_names(value))))


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _optional_path(value: Any, base_dir: Path | None) -> Path | None:
    if not isinstance(value, str) or not value:
        return None
    path = Path(value).expanduser()
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    return path


def _section(data: Mapping[str, Any], key: str, *, owner: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigValidationError(f"{owner}.{key} must be a table")
    return value


@dataclass(slots=True)
class DebugSettings:
    port: Any = 8000
    template: Path | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path | None = None) -> "DebugSettings":
        return cls(
            port=data.get("port", 8000),
            template=_optional_path(data.get("template"), base_dir),
        )


@dataclass(slots=True)
class BundleInfo:
    id: str | None = None
    version: str | None = None
    name: str | None = None
    author: str | None = ""
    manifest: Path | None = None
    debug: DebugSettings = field(default_factory=DebugSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path | None = None) -> "BundleInfo":
        return cls(
            id=_optional_str(data.get("id")),
            version=data.get("version"),
            name=_optional_str(data.get("name")),
            author=_optional_str(data.get("author", "")),
            manifest=_optional_path(data.get("manifest"), base_dir),
            debug=DebugSettings.from_mapping(_section(data, "debug", owner="bundle"), base_dir=base_dir),
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "name": self.name,
            "author": self.author,
            "debug": {"port": self.debug.port},
        }


@dataclass(slots=True)
class Dimensions:
    width: int
    height: int

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default: "Dimensions") -> "Dimensions":
        return cls(
            width=int(data.get("width", default.width)),
            height=int(data.get("height", default.height)),
        )


@dataclass(slots=True)
class PanelSize:
    base: Dimensions = field(default_factory=lambda: Dimensions(320, 400))
    min: Dimensions = field(default_factory=lambda: Dimensions(320, 300))
    max: Dimensions = field(default_factory=lambda: Dimensions(800, 2400))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PanelSize":
        defaults = cls()
        return cls(
            base=Dimensions.from_mapping(_section(data, "base", owner="size"), defaults.base),
            min=Dimensions.from_mapping(_section(data, "min", owner="size"), defaults.min),
            max=Dimensions.from_mapping(_section(data, "max", owner="size"), defaults.max),
        )


@dataclass(slots=True)
class IconSet:
    normal: str = ""
    hover: str = ""
    disabled: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IconSet":
        return cls(
            normal=str(data.get("normal", "")),
            hover=str(data.get("hover", "")),
            disabled=str(data.get("disabled", "")),
        )


@dataclass(slots=True)
class Lifecycle:
    auto_visible: bool = True
    events: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ExtensionInfo:
    id: str = ""
    name: str = ""
    version: str = "0.1.0"
    author: str | None = None
    main_path: str = ""
    script_path: str = ""
    cef_parameters: List[str] = field(default_factory=list)
    type: str = "Panel"
    lifecycle: Lifecycle = field(default_factory=Lifecycle)
    light_icons: IconSet = field(default_factory=IconSet)
    dark_icons: IconSet = field(default_factory=IconSet)
    size: PanelSize = field(default_factory=PanelSize)
    manifest: Path | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path | None = None) -> "ExtensionInfo":
        lifecycle_section = _section(data, "lifecycle", owner="extension")
        icons = _section(data, "icons", owner="extension")
        events = lifecycle_section.get("events", [])
        if isinstance(events, str):
            events = [events]
        cef_parameters = data.get("cef_parameters", [])
        if isinstance(cef_parameters, str):
            cef_parameters = [cef_parameters]
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            version=str(data.get("version") or "0.1.0"),
            author=_optional_str(data.get("author")),
            main_path=str(data.get("main_path", "")),
            script_path=str(data.get("script_path", "")),
            cef_parameters=[str(item) for item in cef_parameters],
            type=str(data.get("type") or "Panel"),
            lifecycle=Lifecycle(
                auto_visible=bool(lifecycle_section.get("auto_visible", True)),
                events=[str(event) for event in events],
            ),
            light_icons=IconSet.from_mapping(_section(icons, "light", owner="icons")),
            dark_icons=IconSet.from_mapping(_section(icons, "dark", owner="icons")),
            size=PanelSize.from_mapping(_section(data, "size", owner="extension")),
            manifest=_optional_path(data.get("manifest"), base_dir),
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "main_path": self.main_path,
            "script_path": self.script_path,
            "cef_parameters": list(self.cef_parameters),
            "type": self.type,
            "lifecycle": {
                "auto_visible": self.lifecycle.auto_visible,
                "events": list(self.lifecycle.events),
            },
            "icons": {
                "light": _icon_mapping(self.light_icons),
                "dark": _icon_mapping(self.dark_icons),
            },
            "size": {
                label: {"width": dims.width, "height": dims.height}
                for label, dims in (("base", self.size.base), ("min", self.size.min), ("max", self.size.max))
            },
        }


def _icon_mapping(icons: IconSet) -> Dict[str, str]:
    return {"normal": icons.normal, "hover": icons.hover, "disabled": icons.disabled}


@dataclass(frozen=True, slots=True)
class InstallTarget:
    product: str
    family: str
    host: ProductRecord
    extensions_dir: Path
    install_dir: Path
    executable: Path


def _backfill(current: Any, fallback: Any) -> Any:
    if isinstance(current, str) and current:
        return current
    return fallback


class Build:
    """One packaging unit: a bundle of extensions targeting a set of hosts."""

    def __init__(
        self,
        name: str,
        *,
        source: Path,
        bundle: BundleInfo,
        extensions: Sequence[ExtensionInfo],
        products: Sequence[str],
        families: FamilySet,
    ) -> None:
        self.name = name
        self.source = source
        self.bundle = bundle
        self.extensions: List[ExtensionInfo] = list(extensions)
        self.products: tuple[str, ...] = tuple(products)
        self.families = families
        self.base_name = ""
        self.output_archive_name = f"{uuid.uuid4()}.zxp"
        self._initialized = False
        self._debug = False

    def __repr__(self) -> str:
        return f"Build(name={self.name!r}, products={self.products!r}, families={self.families.names!r})"

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any], *, base_dir: Path | None = None) -> "Build":
        if not isinstance(data, Mapping):
            raise ConfigValidationError(f'Build "{name}" must be a table')
        owner = f"builds.{name}"

        raw_extensions = data.get("extensions", [])
        if isinstance(raw_extensions, Mapping):
            raw_extensions = [raw_extensions]
        elif not isinstance(raw_extensions, (list, tuple)):
            raw_extensions = []
        extensions: List[ExtensionInfo] = []
        for index, entry in enumerate(raw_extensions):
            if not isinstance(entry, Mapping):
                raise ConfigValidationError(f"{owner}.extensions[{index}] must be a table")
            extensions.append(ExtensionInfo.from_mapping(entry, base_dir=base_dir))

        source = Path(str(data.get("source", "") or "")).expanduser()
        if base_dir is not None and not source.is_absolute():
            source = base_dir / source

        return cls(
            name,
            source=source,
            bundle=BundleInfo.from_mapping(_section(data, "bundle", owner=owner), base_dir=base_dir),
            extensions=extensions,
            products=parse_products(data.get("products", [])),
            families=parse_families(data.get("families", [])),
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def debug(self) -> bool:
        return self._debug

    def initialize(self) -> None:
        """Validate the build once; later calls return immediately."""

        if self._initialized:
            return

        if not self.extensions:
            raise ConfigValidationError(f'No extensions specified in build "{self.name}".')

        first = self.extensions[0]
        bundle_id = _backfill(self.bundle.id, first.id)
        version = _backfill(self.bundle.version, first.version)
        bundle_name = _backfill(self.bundle.name, first.name)
        author = _backfill(self.bundle.author, first.author)

        if not isinstance(bundle_id, str) or not BUNDLE_ID_PATTERN.fullmatch(bundle_id):
            raise ConfigValidationError(f'Invalid bundle id "{bundle_id}" in build "{self.name}"')
        if not isinstance(version, str) or not BUNDLE_VERSION_PATTERN.fullmatch(version):
            raise ConfigValidationError(f'Invalid bundle version "{version}" in build "{self.name}"')
        if not isinstance(bundle_name, str) or not bundle_name:
            raise ConfigValidationError(f'Invalid bundle name "{bundle_name}" in build "{self.name}"')
        if not isinstance(author, str) or not author:
            raise ConfigValidationError(f'Invalid bundle author "{author}" in build "{self.name}"')
        if not self.products:
            raise ConfigValidationError(f'No products specified in build "{self.name}".')
        if not self.families:
            raise ConfigValidationError(f'No families specified in build "{self.name}".')
        if not self.source.exists():
            raise ConfigValidationError(
                f'Invalid source folder {self.source.resolve()} in build "{self.name}".'
            )

        self.bundle.id = bundle_id
        self.bundle.version = version
        self.bundle.name = bundle_name
        self.bundle.author = author
        self.base_name = re.sub(r"\s+", "_", bundle_id).lower()
        self._initialized = True

    def apply_debug_transform(self) -> None:
        """Suffix bundle and extension identity with the debug markers, once."""

        self.initialize()
        if self._debug:
            return
        self.bundle.id = f"{self.bundle.id}{DEBUG_ID_SUFFIX}"
        self.bundle.name = f"{self.bundle.name}{DEBUG_NAME_SUFFIX}"
        for extension in self.extensions:
            extension.id = f"{extension.id}{DEBUG_ID_SUFFIX}"
            if extension.name:
                extension.name = f"{extension.name}{DEBUG_NAME_SUFFIX}"
        self._debug = True

    def version_bounds(self, product: str) -> tuple[float, float | None]:
        return self.families.version_bounds(product)

    def resolve_install_target(
        self,
        product: str | None = None,
        family: str | None = None,
        *,
        debug: bool = False,
        system: HostSystem,
    ) -> InstallTarget:
        """Locate the extension install folder and host executable for a launch."""

        self.initialize()

        if product:
            product = product.lower()
            if product not in self.products:
                raise ProductNotInBuild(f'Could not find product "{product}" in build "{self.name}".')
        else:
            product = self.products[0]

        if family:
            family = family.lower()
            get_family(family)
            if not self.families.includes(family):
                raise ProductNotInBuild(f'Could not find family "{family}" in build "{self.name}".')
        else:
            family = self.families.lowest

        host = lookup(product, family)
        extensions_dir = self._extensions_dir(family, system)
        folder_name = f"{self.base_name}{DEBUG_ID_SUFFIX}" if debug else self.base_name
        executable = self._executable_path(host, family, system)
        if not executable.exists():
            raise ExecutableNotFound(
                f'Unable to find "Adobe {host.display_name}" executable at "{executable}" '
                f'for build "{self.name}".'
            )
        return InstallTarget(
            product=product,
            family=family,
            host=host,
            extensions_dir=extensions_dir,
            install_dir=extensions_dir / folder_name,
            executable=executable,
        )

    @staticmethod
    def _extensions_dir(family: str, system: HostSystem) -> Path:
        folder = "CEPServiceManager4" if family == _LEGACY_FAMILY else "CEP"
        if system.is_windows:
            appdata = system.env.get("APPDATA") or str(system.home() / "AppData" / "Roaming")
            return Path(appdata) / "Adobe" / folder / "extensions"
        user_dir = system.home() / "Library" / "Application Support" / "Adobe" / folder / "extensions"
        if user_dir.exists():
            return user_dir
        return Path("/Library/Application Support/Adobe") / folder / "extensions"

    @staticmethod
    def _executable_path(host: ProductRecord, family: str, system: HostSystem) -> Path:
        if system.is_windows:
            root = Path(system.env.get("PROGRAMFILES") or "C:/Program Files") / "Adobe"
        else:
            root = Path("/Applications")

        if host.install_folder:
            folder_name = host.install_folder
        else:
            family_folder = "CC" if family == _LEGACY_FAMILY else f"CC {family[2:]}"
            folder_name = f"Adobe {host.display_name} {family_folder}"
        if family == _LEGACY_FAMILY and host.supports_64bit and system.is_windows and system.is_64bit:
            folder_name += " (64 Bit)"
        return root / folder_name / host.executables.for_os(system.os_name)

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "source": str(self.source),
            "base_name": self.base_name,
            "debug": self._debug,
            "bundle": self.bundle.to_mapping(),
            "extensions": [extension.to_mapping() for extension in self.extensions],
            "products": list(self.products),
            "families": self.families.to_mapping(),
        }
