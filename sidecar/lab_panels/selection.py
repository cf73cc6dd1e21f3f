"""
Lab test selection engine.

Keeps a selection of lab tests consistent with the dependency structure of
the catalog: selecting a calculated test pulls in its direct prerequisites,
removing a test removes whatever was calculated from it, and calculated
tests whose inputs are all present switch on automatically.

Every operation takes the current selection and returns a new one; the
engine itself holds nothing but the (immutable) catalog.  Enablement and
disablement sweeps make exactly one pass per operation.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from .catalog import Catalog
from .definitions import (
    SENTINEL_DEPENDENCIES,
    CategoryStatus,
    SelectedTest,
    Selection,
    TestDefinition,
)

logger = logging.getLogger(__name__)


def _merge(*groups: Iterable[SelectedTest]) -> Selection:
    """Concatenate groups, keeping the first occurrence of each entry."""
    merged: dict[SelectedTest, None] = {}
    for group in groups:
        for entry in group:
            merged.setdefault(entry, None)
    return tuple(merged)


class SelectionEngine:
    """Pure operations over a selection, bound to one catalog."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    # --- Queries ---

    def is_selected(self, selection: Selection, category: str, name: str) -> bool:
        return SelectedTest(category, name) in selection

    def dependencies_satisfied(self, selection: Selection, category: str, name: str) -> bool:
        """True when every non-sentinel dependency is provided by a selected test."""
        return self._satisfied(
            self.catalog.dependencies_of(category, name), self._keys(selection)
        )

    def category_status(self, selection: Selection, category: str) -> CategoryStatus:
        total = len(self.catalog.tests_in_category(category))
        count = sum(
            1 for s in selection
            if s.category == category and self.catalog.has_test(s.category, s.name)
        )
        if count == 0:
            return CategoryStatus.NONE
        if count >= total:
            return CategoryStatus.ALL
        return CategoryStatus.PARTIAL

    # --- Mutations ---

    def toggle(self, selection: Selection, category: str, name: str) -> Selection:
        if self.is_selected(selection, category, name):
            return self.remove(selection, category, name)
        return self.add(selection, category, name)

    def add(self, selection: Selection, category: str, name: str) -> Selection:
        selection = tuple(selection)
        test = self.catalog.get_test(category, name)
        if test is None:
            logger.warning("Ignoring add of unknown test '%s' in '%s'", name, category)
            return selection
        target = test.to_selected()
        if target in selection:
            return selection

        present = self._keys(selection)
        to_add: list[SelectedTest] = []
        # Direct dependencies only; prerequisites of prerequisites are not expanded.
        for dep in test.test_dependencies:
            if dep in present:
                continue
            provider = self.catalog.find_test(dep)
            if provider is None:
                if test.is_derived:
                    logger.warning(
                        "Cannot add '%s': dependency '%s' is not in the catalog", name, dep
                    )
                    return selection
                logger.warning("Skipping unknown dependency '%s' of '%s'", dep, name)
                continue
            to_add.append(provider.to_selected())
            present[dep] += 1

        candidate = _merge(selection, to_add, [target])
        return _merge(candidate, self.enablement_sweep(candidate))

    def remove(self, selection: Selection, category: str, name: str) -> Selection:
        selection = tuple(selection)
        if not self.catalog.has_test(category, name):
            logger.warning("Ignoring removal of unknown test '%s' in '%s'", name, category)
            return selection
        target = SelectedTest(category, name)
        if target not in selection:
            return selection

        key = self.catalog.dependency_key(target)
        dependents = {
            t.to_selected() for t in self.catalog.dependents_of(key)
        }.intersection(selection)
        filtered = tuple(s for s in selection if s != target and s not in dependents)
        return self.disablement_sweep(filtered)

    def enablement_sweep(self, selection: Selection) -> Selection:
        """Calculated tests not yet selected whose dependencies *selection* satisfies.

        Satisfaction is judged against *selection* as given, so a test that
        only qualifies because of another test enabled by this same sweep is
        left for a later operation.
        """
        present = set(selection)
        keys = self._keys(selection)
        enabled = []
        for test in self.catalog.derived_tests():
            entry = test.to_selected()
            if entry in present:
                continue
            if self._satisfied(test.dependencies, keys):
                enabled.append(entry)
        return tuple(enabled)

    def disablement_sweep(self, selection: Selection) -> Selection:
        """Drop selected calculated tests whose dependencies are no longer met.

        Single pass in selection order; each drop is visible to the entries
        checked after it.
        """
        kept = list(selection)
        keys = self._keys(kept)
        for entry in selection:
            test = self.catalog.get_test(entry.category, entry.name)
            if test is None or not test.is_derived:
                continue
            if not self._satisfied(test.dependencies, keys):
                logger.debug("Dropping '%s': dependencies no longer selected", entry.name)
                kept.remove(entry)
                keys[self.catalog.dependency_key(entry)] -= 1
        return tuple(kept)

    # --- Bulk category operations ---

    def select_all_in_category(self, selection: Selection, category: str) -> Selection:
        selection = tuple(selection)
        if not self.catalog.has_category(category):
            logger.warning("Ignoring select-all for unknown category '%s'", category)
            return selection
        working = selection
        for test in self.catalog.tests_in_category(category):
            working = self.add(working, category, test.name)
        return _merge(working, self.enablement_sweep(working))

    def unselect_all_in_category(self, selection: Selection, category: str) -> Selection:
        selection = tuple(selection)
        if not self.catalog.has_category(category):
            logger.warning("Ignoring unselect-all for unknown category '%s'", category)
            return selection
        working = selection
        for entry in [s for s in selection if s.category == category]:
            # May already be gone through an earlier cascade
            if entry in working:
                working = self.remove(working, entry.category, entry.name)
        return self.disablement_sweep(working)

    # --- Input hygiene ---

    def unknown_entries(self, entries: Iterable[SelectedTest]) -> list[SelectedTest]:
        return [e for e in entries if not self.catalog.has_test(e.category, e.name)]

    def normalize(self, entries: Iterable[SelectedTest]) -> Selection:
        """Turn an externally supplied list into a valid selection.

        Unknown tests and duplicates are dropped (and logged).  Dependency
        consistency is not repaired here.
        """
        kept: list[SelectedTest] = []
        seen: set[SelectedTest] = set()
        for entry in entries:
            if entry in seen:
                continue
            seen.add(entry)
            if not self.catalog.has_test(entry.category, entry.name):
                logger.warning(
                    "Dropping unknown test '%s' in '%s' from selection",
                    entry.name, entry.category,
                )
                continue
            kept.append(entry)
        return tuple(kept)

    # --- Helpers ---

    def _keys(self, selection: Iterable[SelectedTest]) -> Counter:
        return Counter(self.catalog.dependency_key(s) for s in selection)

    @staticmethod
    def _satisfied(dependencies: Iterable[str], keys: Counter) -> bool:
        return all(
            dep in SENTINEL_DEPENDENCIES or keys[dep] > 0
            for dep in dependencies
        )


def definitions_for(selection: Selection, catalog: Catalog) -> list[TestDefinition]:
    """Resolve selected entries to their catalog definitions, skipping unknowns."""
    resolved = []
    for entry in selection:
        test = catalog.get_test(entry.category, entry.name)
        if test is not None:
            resolved.append(test)
    return resolved
