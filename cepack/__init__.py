"""Packaging, signing and launch tooling for CEP extension bundles."""
from __future__ import annotations

from .cli import main

__all__ = ["main"]
