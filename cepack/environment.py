"""Host system description and placeholder context for configuration strings."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping
import os
import platform


@dataclass(slots=True)
class HostSystem:
    os_name: str
    architecture: str
    env: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def current(cls, env: Mapping[str, str] | None = None) -> "HostSystem":
        return cls(
            os_name=platform.system().lower(),
            architecture=platform.machine(),
            env=dict(env) if env is not None else dict(os.environ),
        )

    @property
    def is_windows(self) -> bool:
        return self.os_name == "windows"

    @property
    def is_64bit(self) -> bool:
        return self.architecture.lower() in {"amd64", "x86_64", "arm64", "aarch64"}

    def home(self) -> Path:
        return Path(self.env.get("HOME") or self.env.get("USERPROFILE") or Path.home())

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "os": self.os_name,
            "architecture": self.architecture,
        }


class ContextBuilder:
    """Builds the variable context for configuration placeholders."""

    def __init__(self, config_dir: Path, env: Mapping[str, str] | None = None) -> None:
        self._config_dir = config_dir
        self._env = dict(env) if env is not None else dict(os.environ)

    def system(self) -> HostSystem:
        return HostSystem.current(self._env)

    def combined_context(self, *, system: HostSystem | None = None) -> Dict[str, Any]:
        system = system or self.system()
        return {
            "system": system.to_mapping(),
            "env": dict(self._env),
            "config": {"dir": str(self._config_dir)},
        }
