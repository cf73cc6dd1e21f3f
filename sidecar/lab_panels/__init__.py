"""Lab test catalog and selection engine.

The catalog comes from LAB_CATALOG_PATH when set, otherwise from the
built-in data in _catalog_data.py.
"""

from __future__ import annotations

import logging
import os

from .catalog import Catalog, CatalogError, MalformedCatalog, load_catalog_file
from .definitions import (
    SENTINEL_DEPENDENCIES,
    CategoryStatus,
    SelectedTest,
    Selection,
    TestDefinition,
)
from .selection import SelectionEngine

logger = logging.getLogger(__name__)

_catalog_instance: Catalog | None = None
_engine_instance: SelectionEngine | None = None


def get_catalog() -> Catalog:
    """Return the module-level Catalog singleton, loading it on first use."""
    global _catalog_instance
    if _catalog_instance is None:
        path = os.getenv("LAB_CATALOG_PATH", "")
        if path:
            _catalog_instance = load_catalog_file(path)
        else:
            from ._catalog_data import DEFAULT_CATALOG_DATA
            _catalog_instance = Catalog.from_mapping(DEFAULT_CATALOG_DATA)
            logger.info(
                "Loaded built-in lab catalog: %d categories, %d tests",
                len(_catalog_instance.all_categories()), len(_catalog_instance),
            )
    return _catalog_instance


def get_engine() -> SelectionEngine:
    """Return a SelectionEngine bound to the active catalog."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = SelectionEngine(get_catalog())
    return _engine_instance


def reset_catalog_cache() -> None:
    global _catalog_instance, _engine_instance
    _catalog_instance = None
    _engine_instance = None


__all__ = [
    "Catalog",
    "CatalogError",
    "CategoryStatus",
    "MalformedCatalog",
    "SENTINEL_DEPENDENCIES",
    "SelectedTest",
    "Selection",
    "SelectionEngine",
    "TestDefinition",
    "get_catalog",
    "get_engine",
    "load_catalog_file",
    "reset_catalog_cache",
]
