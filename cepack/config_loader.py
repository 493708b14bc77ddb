"""Configuration loading and validation logic."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping
import json
import tomllib

import yaml

from .build import Build, ConfigValidationError
from .environment import ContextBuilder
from .template import TemplateResolver


class BuildNotFound(LookupError):
    """Raised when a command names a build the configuration does not declare."""

    def __init__(self, name: str, available: Iterable[str]) -> None:
        super().__init__(name)
        self.name = name
        self.available = sorted(available)

    def __str__(self) -> str:
        listing = ", ".join(self.available) or "<none>"
        return f'Build "{self.name}" not found. Available builds: {listing}'


ConfigLoader = Callable[[Any], Mapping[str, Any]]

DEFAULT_CONFIG_NAMES = ("cepack.toml", "cepack.json", "cepack.yaml", "cepack.yml")


_FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}


def load_config_file(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    loader = _FILE_LOADERS.get(suffix)
    if loader is None:
        raise ValueError(f"Unsupported configuration file extension: {suffix}")
    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"
    with path.open(mode, **kwargs) as handle:
        data = loader(handle)
    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")
    return data


def find_config_file(directory: Path) -> Path:
    for name in DEFAULT_CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(
        f"No configuration file found in {directory} (looked for {', '.join(DEFAULT_CONFIG_NAMES)})"
    )


def _resolve_path(value: Any, base_dir: Path, *, field_name: str) -> Path | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigValidationError(f"{field_name} must be a string path")
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


@dataclass(slots=True)
class CertificateConfig:
    owner: str = ""
    file: Path | None = None
    password: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path) -> "CertificateConfig":
        return cls(
            owner=str(data.get("owner") or ""),
            file=_resolve_path(data.get("file"), base_dir, field_name="packaging.certificate.file"),
            password=str(data.get("password") or ""),
        )


@dataclass(slots=True)
class PackagingConfig:
    output: Path | None
    staging: Path | None
    timestamp_url: str = ""
    description: str = ""
    license: str = ""
    mxi: Path | None = None
    signer: str = "ZXPSignCmd"
    sign_timeout: float | None = None
    certificate: CertificateConfig = field(default_factory=CertificateConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path) -> "PackagingConfig":
        certificate_section = data.get("certificate", {})
        if not isinstance(certificate_section, Mapping):
            raise ConfigValidationError("packaging.certificate must be a table")
        timeout = data.get("sign_timeout")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
            raise ConfigValidationError("packaging.sign_timeout must be a number of seconds")
        return cls(
            output=_resolve_path(data.get("output", "output.zxp"), base_dir, field_name="packaging.output"),
            staging=_resolve_path(data.get("staging", ".staging"), base_dir, field_name="packaging.staging"),
            timestamp_url=str(data.get("timestamp_url") or ""),
            description=str(data.get("description") or ""),
            license=str(data.get("license") or ""),
            mxi=_resolve_path(data.get("mxi"), base_dir, field_name="packaging.mxi"),
            signer=str(data.get("signer") or "ZXPSignCmd"),
            sign_timeout=float(timeout) if timeout is not None else None,
            certificate=CertificateConfig.from_mapping(certificate_section, base_dir=base_dir),
        )


@dataclass(slots=True)
class ProjectConfiguration:
    path: Path | None
    packaging: PackagingConfig
    builds: Dict[str, Build] = field(default_factory=dict)

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        base_dir: Path,
        path: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "ProjectConfiguration":
        context = ContextBuilder(base_dir, env=env).combined_context()
        resolved = TemplateResolver(context).resolve(_plain(data))

        packaging_section = resolved.get("packaging", {})
        if not isinstance(packaging_section, Mapping):
            raise ConfigValidationError("[packaging] must be a table")
        packaging = PackagingConfig.from_mapping(packaging_section, base_dir=base_dir)

        builds_section = resolved.get("builds", {})
        if not isinstance(builds_section, Mapping):
            raise ConfigValidationError("[builds] must be a table of named builds")
        builds: Dict[str, Build] = {}
        for name, build_data in builds_section.items():
            builds[str(name)] = Build.from_mapping(str(name), build_data, base_dir=base_dir)

        return cls(path=path, packaging=packaging, builds=builds)

    @classmethod
    def from_file(cls, path: Path, *, env: Mapping[str, str] | None = None) -> "ProjectConfiguration":
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        data = load_config_file(path)
        return cls.from_mapping(data, base_dir=path.resolve().parent, path=path, env=env)

    def list_builds(self) -> Iterable[str]:
        return self.builds.keys()

    def get_build(self, name: str) -> Build:
        if name not in self.builds:
            raise BuildNotFound(name, self.builds)
        return self.builds[name]


def _plain(value: Any) -> Any:
    """Copy loader output into plain dicts and lists."""

    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
