"""
Leveled console output shared by the packaging steps.
"""
from __future__ import annotations

import sys
import threading


class Console:
    """Console output handler with a configurable log level.

    Levels: none < error < info < debug. Builds are processed on worker
    threads, so every console derived through :meth:`child` shares one lock
    and tags its lines with the build name.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(
        self,
        level: str = "info",
        dry_run: bool = False,
        *,
        label: str = "",
        lock: threading.Lock | None = None,
    ):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown console level '{level}'. Expected one of: {', '.join(self.LEVELS)}")
        self.level_name = level
        self.level = self.LEVELS[level]
        self.dry_run = dry_run
        self.label = label
        self._lock = lock or threading.Lock()

    @classmethod
    def from_flags(cls, *, verbose: bool = False, dry_run: bool = False) -> "Console":
        return cls("debug" if verbose else "info", dry_run=dry_run)

    def child(self, label: str) -> "Console":
        """Return a console that prefixes every line with ``[label]``."""

        return Console(self.level_name, self.dry_run, label=label, lock=self._lock)

    def _emit(self, tag: str, message: str, *, stream=None) -> None:
        prefix = f"[{tag}] [{self.label}]" if self.label else f"[{tag}]"
        with self._lock:
            print(f"{prefix} {message}", file=stream or sys.stdout)

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            self._emit("INFO", message)

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            self._emit("ERROR", message, stream=sys.stderr)

    def dry(self, message: str) -> None:
        if self.dry_run:
            self._emit("DRY", message)

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            self._emit("DEBUG", message)
