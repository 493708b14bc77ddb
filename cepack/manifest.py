"""Rendering of debug descriptors, bundle manifests and package descriptors."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence
from xml.sax.saxutils import quoteattr, escape

from .build import Build, ExtensionInfo
from .hosts import get_family, lookup, sort_families
from .template import DocumentTemplate
from .versions import format_version, map_to_legacy_family_name

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"

_LIST_SEPARATOR = "\n\t\t\t"

# Installer products that are addressed by family name rather than by name.
FAMILYNAME_PRODUCTS = frozenset({"illustrator", "incopy", "indesign", "photoshop"})


class ManifestError(RuntimeError):
    """Base class for rendering failures."""


class ManifestTemplateUnreadable(ManifestError):
    """Raised when a manifest template cannot be read."""


class InvalidDebugPort(ManifestError):
    """Raised when the bundle debug port is not a non-negative number."""


def default_template(name: str) -> Path:
    return RESOURCES_DIR / name


def load_template(path: Path, *, what: str) -> DocumentTemplate:
    try:
        return DocumentTemplate.from_file(path)
    except OSError as exc:
        raise ManifestTemplateUnreadable(f"Unable to read {what} template '{path}': {exc}") from exc


def _attr(value: Any) -> str:
    return quoteattr("" if value is None else str(value))


def render_debug_descriptor(build: Build) -> str:
    """Render the host ``.debug`` file that opens remote debugging ports."""

    build.initialize()
    port = build.bundle.debug.port
    if isinstance(port, bool) or not isinstance(port, (int, float)) or port < 0:
        raise InvalidDebugPort(f'Invalid host debug port "{port}" in build "{build.name}".')

    template_path = build.bundle.debug.template or default_template("debug.xml")
    template = load_template(template_path, what="debug")

    entries: List[str] = []
    for index, extension in enumerate(build.extensions):
        hosts: List[str] = []
        for product in build.products:
            record = lookup(product, build.families.lowest)
            host_port = int(port) + record.debug_port_offset + index * 100
            for host_id in record.host_identifiers:
                hosts.append(f"<Host Name={_attr(host_id)} Port=\"{host_port}\"/>")
        entries.append(
            f"<Extension Id={_attr(extension.id)}>\n"
            "\t\t<HostList>\n\t\t\t"
            + "\n\t\t\t".join(hosts)
            + "\n\t\t</HostList>\n\t</Extension>"
        )

    context = build.to_mapping()
    context["debug_extension_list"] = "\n\t".join(entries)
    return template.render(context)


def _extension_context(extension: ExtensionInfo) -> Dict[str, Any]:
    context = extension.to_mapping()
    context["menu"] = f"<Menu>{escape(extension.name)}</Menu>" if extension.name else ""
    context["cef_command_line"] = "".join(
        f"<Parameter>{escape(parameter)}</Parameter>" for parameter in extension.cef_parameters
    )
    context["start_on"] = "".join(
        f"<Event>{escape(event)}</Event>" for event in extension.lifecycle.events
    )
    icons: List[str] = []
    for prefix, icon_set in (("", extension.light_icons), ("Dark", extension.dark_icons)):
        for kind, path in (("Normal", icon_set.normal), ("RollOver", icon_set.hover), ("Disabled", icon_set.disabled)):
            if path:
                icons.append(f"<Icon Type=\"{prefix}{kind}\">{escape(path)}</Icon>")
    context["icon_list"] = "".join(icons)
    return context


def render_extension_manifest(extension: ExtensionInfo) -> str:
    template_path = extension.manifest or default_template("manifest.extension.xml")
    template = load_template(template_path, what=f'extension "{extension.id}" manifest')
    return template.render(_extension_context(extension))


def host_entries(build: Build) -> List[str]:
    """``<Host>`` elements for every host identifier of every targeted product."""

    entries: List[str] = []
    for product in build.products:
        record = lookup(product, build.families.lowest)
        low, high = build.version_bounds(product)
        if high is None:
            version = format_version(low)
        else:
            version = f"[{format_version(low)},{format_version(high)}]"
        for host_id in record.host_identifiers:
            entries.append(f"<Host Name={_attr(host_id)} Version=\"{version}\" />")
    return entries


def render_bundle_manifest(build: Build) -> str:
    """Render ``CSXS/manifest.xml`` for *build*."""

    build.initialize()
    # Unknown families and products must fail before a template path is derived from them.
    get_family(build.families.lowest)
    hosts = host_entries(build)
    extension_list = [
        f"<Extension Id={_attr(extension.id)} Version={_attr(extension.version)} />"
        for extension in build.extensions
    ]
    dispatch_info_list = [render_extension_manifest(extension) for extension in build.extensions]

    template_path = build.bundle.manifest or default_template(
        f"manifest.bundle.{build.families.lowest}.xml"
    )
    template = load_template(template_path, what="bundle manifest")
    context = build.to_mapping()
    context.update(
        {
            "host_list": _LIST_SEPARATOR.join(hosts),
            "extension_list": _LIST_SEPARATOR.join(extension_list),
            "dispatch_info_list": _LIST_SEPARATOR.join(dispatch_info_list),
        }
    )
    return template.render(context)


@dataclass(slots=True)
class ProductVersions:
    """Version range accumulated for one product across every build."""

    family: str
    min: float
    max: float | None = None

    def merge(self, family: str, low: float, high: float | None) -> None:
        if sort_families([family, self.family])[0] == family:
            self.family = family
        self.min = min(self.min, low)
        if high is not None:
            self.max = high if self.max is None else max(self.max, high)


def collect_product_versions(builds: Sequence[Build]) -> Dict[str, ProductVersions]:
    versions: Dict[str, ProductVersions] = {}
    for build in builds:
        build.initialize()
        for product in build.products:
            low, high = build.version_bounds(product)
            family = build.families.lowest
            entry = versions.get(product)
            if entry is None:
                versions[product] = ProductVersions(family=family, min=low, max=high)
            else:
                entry.merge(family, low, high)
    return versions


def package_descriptor_name(builds: Sequence[Build]) -> str:
    builds[0].initialize()
    return f"{builds[0].base_name}.mxi"


def render_package_descriptor(
    builds: Sequence[Build],
    *,
    template: Path | None = None,
    description: str = "",
    license: str = "",
) -> str:
    """Render the installer descriptor covering every build of a package.

    Must only run once every build has been validated; bundle identity is taken
    from the first build.
    """

    if not builds:
        raise ValueError("At least one build is required to render a package descriptor")

    versions = collect_product_versions(builds)

    file_list: List[str] = []
    for build in builds:
        for product in build.products:
            entry = versions[product]
            products = map_to_legacy_family_name(product, entry.family)
            max_attr = f" maxVersion=\"{format_version(entry.max)}\"" if entry.max is not None else ""
            file_list.append(
                f"<file products={_attr(products)} minVersion=\"{format_version(entry.min)}\"{max_attr} "
                f"source={_attr(build.output_archive_name)} destination=\"\" file-type=\"CSXS\" />"
            )

    product_list: List[str] = []
    for product, entry in versions.items():
        display_name = lookup(product, entry.family).family_display_name
        attribute = "familyname" if product in FAMILYNAME_PRODUCTS else "name"
        max_attr = f" maxversion=\"{format_version(entry.max)}\"" if entry.max is not None else ""
        product_list.append(
            f"<product {attribute}={_attr(display_name)} version=\"{format_version(entry.min)}\"{max_attr} primary=\"true\" />"
        )

    document = load_template(template or default_template("manifest.mxi.xml"), what="package descriptor")
    context = {
        "bundle": builds[0].bundle.to_mapping(),
        "description": description,
        "license": license,
        "product_list": "\n\t\t".join(product_list),
        "file_list": "\n\t\t".join(file_list),
    }
    return document.render(context)
