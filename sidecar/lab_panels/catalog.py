"""
Read-only lab test catalog.

The catalog maps a category name to an ordered list of test definitions.
It is loaded once (from the built-in data or a JSON file in the same shape)
and never mutated afterwards.  Every lookup the selection engine performs
goes through this accessor.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from .definitions import SENTINEL_DEPENDENCIES, SelectedTest, TestDefinition

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Base class for catalog problems."""


class MalformedCatalog(CatalogError):
    """The catalog source cannot be turned into a usable catalog."""


class Catalog:
    """Ordered, immutable collection of test definitions grouped by category."""

    def __init__(self, categories: Mapping[str, Iterable[TestDefinition]]):
        self._categories: dict[str, tuple[TestDefinition, ...]] = {}
        self._by_key: dict[tuple[str, str], TestDefinition] = {}
        # Dependency name -> every definition carrying that name, catalog order
        self._by_name: dict[str, list[TestDefinition]] = {}

        for category, tests in categories.items():
            ordered = tuple(tests)
            for test in ordered:
                key = (category, test.name)
                if key in self._by_key:
                    raise MalformedCatalog(
                        f"Duplicate test '{test.name}' in category '{category}'"
                    )
                self._by_key[key] = test
                self._by_name.setdefault(test.name, []).append(test)
            self._categories[category] = ordered

        self._derived = tuple(
            t for tests in self._categories.values() for t in tests if t.is_derived
        )
        self._check_cycles()
        self._warn_unresolved()

    # --- Loading ---

    @classmethod
    def from_mapping(cls, raw: Any) -> Catalog:
        """Build a catalog from the JSON shape used by the lab UI.

        Expected: ``{category: [{"Test Name": ..., "Unit": ..., "Depends On":
        [...], "Formula": ..., "Reference Range": ...}, ...]}``.
        """
        if not isinstance(raw, Mapping):
            raise MalformedCatalog(
                f"Catalog must be a mapping of category to tests, got {type(raw).__name__}"
            )
        categories: dict[str, list[TestDefinition]] = {}
        for category, entries in raw.items():
            if not isinstance(category, str) or not category.strip():
                raise MalformedCatalog(f"Invalid category name: {category!r}")
            if not isinstance(entries, list):
                raise MalformedCatalog(f"Category '{category}' must be a list of tests")
            categories[category] = [_parse_entry(category, e) for e in entries]
        return cls(categories)

    # --- Accessor ---

    def all_categories(self) -> list[str]:
        return list(self._categories)

    def tests_in_category(self, category: str) -> list[TestDefinition]:
        return list(self._categories.get(category, ()))

    def has_category(self, category: str) -> bool:
        return category in self._categories

    def has_test(self, category: str, name: str) -> bool:
        return (category, name) in self._by_key

    def get_test(self, category: str, name: str) -> Optional[TestDefinition]:
        return self._by_key.get((category, name))

    def find_test(self, name: str) -> Optional[TestDefinition]:
        """Return the first definition named *name*, scanning categories in order."""
        matches = self._by_name.get(name)
        return matches[0] if matches else None

    def dependencies_of(self, category: str, name: str) -> list[str]:
        test = self._by_key.get((category, name))
        return list(test.dependencies) if test else []

    def is_derived(self, category: str, name: str) -> bool:
        test = self._by_key.get((category, name))
        return test.is_derived if test else False

    def derived_tests(self) -> tuple[TestDefinition, ...]:
        return self._derived

    def dependents_of(self, name: str) -> list[TestDefinition]:
        """Definitions (any category) that list *name* as a dependency."""
        return [
            t for tests in self._categories.values() for t in tests
            if name in t.dependencies
        ]

    @staticmethod
    def dependency_key(entry: SelectedTest | TestDefinition) -> str:
        """Key under which a selected entry satisfies dependencies.

        Dependencies are matched on test name only, across categories.
        """
        return entry.name

    def __len__(self) -> int:
        return len(self._by_key)

    def __iter__(self):
        for tests in self._categories.values():
            yield from tests

    # --- Validation ---

    def _check_cycles(self) -> None:
        # Edges go from a test name to the names it depends on. Name-level
        # granularity matches how dependencies are resolved.
        graph: dict[str, set[str]] = {}
        for name, defs in self._by_name.items():
            deps: set[str] = set()
            for d in defs:
                deps.update(x for x in d.test_dependencies if x in self._by_name)
            graph[name] = deps

        done: set[str] = set()
        for root in graph:
            if root in done:
                continue
            # Explicit stack so long chains cannot exhaust the interpreter stack
            path: list[str] = [root]
            on_path: set[str] = {root}
            stack = [iter(sorted(graph[root]))]
            while stack:
                dep = next(stack[-1], None)
                if dep is None:
                    stack.pop()
                    node = path.pop()
                    on_path.discard(node)
                    done.add(node)
                    continue
                if dep in done:
                    continue
                if dep in on_path:
                    cycle = " -> ".join(path[path.index(dep):] + [dep])
                    raise MalformedCatalog(f"Cyclic test dependencies: {cycle}")
                path.append(dep)
                on_path.add(dep)
                stack.append(iter(sorted(graph[dep])))

    def _warn_unresolved(self) -> None:
        for test in self:
            for dep in test.test_dependencies:
                if dep not in self._by_name:
                    logger.warning(
                        "Test '%s' (%s) depends on unknown test '%s'; it can never be satisfied",
                        test.name, test.category, dep,
                    )


def _parse_entry(category: str, entry: Any) -> TestDefinition:
    if not isinstance(entry, Mapping):
        raise MalformedCatalog(f"Test entry in '{category}' must be an object")
    name = entry.get("Test Name")
    if not isinstance(name, str) or not name.strip():
        raise MalformedCatalog(f"Test entry in '{category}' is missing 'Test Name'")

    depends_on = entry.get("Depends On") or []
    if isinstance(depends_on, str):
        depends_on = [depends_on]
    if not isinstance(depends_on, list) or not all(isinstance(d, str) for d in depends_on):
        raise MalformedCatalog(f"'Depends On' for '{name}' must be a list of test names")
    # Ordered set: keep first occurrence
    dependencies = tuple(dict.fromkeys(d.strip() for d in depends_on if d.strip()))

    formula = entry.get("Formula")
    return TestDefinition(
        category=category,
        name=name.strip(),
        unit=str(entry.get("Unit") or ""),
        dependencies=dependencies,
        formula=str(formula) if formula else None,
        reference_range=entry.get("Reference Range"),
    )


def load_catalog_file(path: str) -> Catalog:
    """Load a catalog from a JSON file on disk."""
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise MalformedCatalog(f"Could not read catalog file {path}: {e}") from e
    catalog = Catalog.from_mapping(raw)
    logger.info(
        "Loaded lab catalog from %s: %d categories, %d tests",
        path, len(catalog.all_categories()), len(catalog),
    )
    return catalog


__all__ = [
    "Catalog",
    "CatalogError",
    "MalformedCatalog",
    "SENTINEL_DEPENDENCIES",
    "load_catalog_file",
]
