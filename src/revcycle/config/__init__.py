"""Configuration: settings and reference catalogs."""

from __future__ import annotations

from revcycle.config.catalogs import CodeEntry, ReferenceCatalog, default_catalog
from revcycle.config.settings import (
    GenerationSettings,
    ScenarioWeights,
    Settings,
    StorageSettings,
)


__all__ = [
    "CodeEntry",
    "GenerationSettings",
    "ReferenceCatalog",
    "ScenarioWeights",
    "Settings",
    "StorageSettings",
    "default_catalog",
]
