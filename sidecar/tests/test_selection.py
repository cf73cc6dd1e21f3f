"""Tests for the lab test selection engine."""

import logging

import pytest

from lab_panels.catalog import Catalog
from lab_panels.definitions import CategoryStatus, SelectedTest
from lab_panels.selection import SelectionEngine


def _sel(*pairs: tuple[str, str]) -> tuple[SelectedTest, ...]:
    return tuple(SelectedTest(c, n) for c, n in pairs)


GLUCOSE = ("Glucose Panel", "Glucose")
A1C = ("Glucose Panel", "Estimated A1C")
WEIGHT = ("Anthro", "Weight")


@pytest.fixture
def engine() -> SelectionEngine:
    catalog = Catalog.from_mapping({
        "Glucose Panel": [
            {"Test Name": "Glucose", "Unit": "mg/dL"},
            {"Test Name": "Estimated A1C", "Unit": "%",
             "Depends On": ["Glucose"], "Formula": "A1C = (Glucose + 46.7) / 28.7"},
        ],
        "Anthro": [
            {"Test Name": "Weight", "Unit": "kg"},
        ],
    })
    return SelectionEngine(catalog)


@pytest.fixture
def liver_engine() -> SelectionEngine:
    """Cross-category dependency plus patient-attribute sentinels."""
    catalog = Catalog.from_mapping({
        "CBC": [
            {"Test Name": "Hb", "Unit": "g/dL"},
            {"Test Name": "PLT", "Unit": "x10^3/uL"},
        ],
        "Liver": [
            {"Test Name": "AST", "Unit": "U/L"},
            {"Test Name": "ALT", "Unit": "U/L"},
            {"Test Name": "FIB-4", "Unit": "",
             "Depends On": ["Age", "AST", "ALT", "PLT"],
             "Formula": "(Age x AST) / (PLT x sqrt(ALT))"},
        ],
        "Kidney": [
            {"Test Name": "Creatinine", "Unit": "mg/dL"},
            {"Test Name": "eGFR", "Unit": "mL/min",
             "Depends On": ["Creatinine", "Age", "Gender"], "Formula": "MDRD"},
        ],
    })
    return SelectionEngine(catalog)


@pytest.fixture
def chain_engine() -> SelectionEngine:
    """A is calculated from B, which is calculated from C."""
    catalog = Catalog.from_mapping({
        "Chain": [
            {"Test Name": "C"},
            {"Test Name": "B", "Depends On": ["C"], "Formula": "B = f(C)"},
            {"Test Name": "A", "Depends On": ["B"], "Formula": "A = g(B)"},
        ],
        "Other": [
            {"Test Name": "X"},
        ],
    })
    return SelectionEngine(catalog)


class TestQueries:
    def test_is_selected(self, engine):
        s = _sel(GLUCOSE)
        assert engine.is_selected(s, *GLUCOSE)
        assert not engine.is_selected(s, *A1C)

    def test_dependencies_satisfied(self, engine):
        assert not engine.dependencies_satisfied((), *A1C)
        assert engine.dependencies_satisfied(_sel(GLUCOSE), *A1C)

    def test_no_dependencies_is_vacuously_satisfied(self, engine):
        assert engine.dependencies_satisfied((), *WEIGHT)

    def test_sentinels_always_satisfied(self, liver_engine):
        assert liver_engine.dependencies_satisfied(_sel(("Kidney", "Creatinine")), "Kidney", "eGFR")

    def test_name_only_matching_across_categories(self):
        catalog = Catalog.from_mapping({
            "Chemistry": [{"Test Name": "Glucose"}],
            "Urine": [{"Test Name": "Glucose"}],
            "Derived": [{"Test Name": "Ratio", "Depends On": ["Glucose"], "Formula": "r"}],
        })
        eng = SelectionEngine(catalog)
        assert eng.dependencies_satisfied(_sel(("Urine", "Glucose")), "Derived", "Ratio")


class TestAdd:
    def test_leaf_enables_derived(self, engine):
        result = engine.toggle((), *GLUCOSE)
        assert result == _sel(GLUCOSE, A1C)

    def test_derived_pulls_in_prerequisite(self, engine):
        result = engine.toggle((), *A1C)
        assert result == _sel(GLUCOSE, A1C)

    def test_unrelated_leaf_triggers_nothing(self, engine):
        assert engine.select_all_in_category((), "Anthro") == _sel(WEIGHT)

    def test_idempotent(self, engine):
        once = engine.add((), *GLUCOSE)
        assert engine.add(once, *GLUCOSE) == once

    def test_existing_entries_keep_their_order(self, engine):
        result = engine.add(_sel(WEIGHT), *GLUCOSE)
        assert result == _sel(WEIGHT, GLUCOSE, A1C)

    def test_cross_category_prerequisite(self, liver_engine):
        result = liver_engine.add(_sel(("Liver", "AST"), ("Liver", "ALT")), "Liver", "FIB-4")
        assert ("CBC", "PLT") in [(s.category, s.name) for s in result]
        assert SelectedTest("Liver", "FIB-4") in result

    def test_sentinel_dependencies_are_not_added(self, liver_engine):
        result = liver_engine.add((), "Kidney", "eGFR")
        assert result == _sel(("Kidney", "Creatinine"), ("Kidney", "eGFR"))

    def test_only_direct_prerequisites_are_added(self, chain_engine):
        result = chain_engine.add((), "Chain", "A")
        assert result == _sel(("Chain", "B"), ("Chain", "A"))

    def test_enablement_is_single_pass(self, chain_engine):
        result = chain_engine.add((), "Chain", "C")
        assert result == _sel(("Chain", "C"), ("Chain", "B"))
        # A becomes eligible only on the next operation
        result = chain_engine.add(result, "Other", "X")
        assert SelectedTest("Chain", "A") in result

    def test_unknown_test_is_noop(self, engine, caplog):
        start = _sel(WEIGHT)
        with caplog.at_level(logging.WARNING):
            assert engine.toggle(start, "Glucose Panel", "Insulin") == start
        assert "unknown test" in caplog.text

    def test_derived_with_missing_prerequisite_is_refused(self, caplog):
        catalog = Catalog.from_mapping({
            "Panel": [{"Test Name": "Orphan", "Depends On": ["Ghost"], "Formula": "x"}],
        })
        eng = SelectionEngine(catalog)
        with caplog.at_level(logging.WARNING):
            assert eng.add((), "Panel", "Orphan") == ()
        assert "Ghost" in caplog.text


class TestRemove:
    def test_prerequisite_cascades(self, engine):
        start = _sel(GLUCOSE, A1C)
        assert engine.toggle(start, *GLUCOSE) == ()

    def test_remove_derived_only(self, engine):
        start = _sel(GLUCOSE, A1C)
        assert engine.toggle(start, *A1C) == _sel(GLUCOSE)

    def test_add_then_remove_restores(self, engine):
        start = _sel(GLUCOSE, A1C)
        assert engine.remove(engine.add(start, *WEIGHT), *WEIGHT) == start

    def test_remove_not_selected_is_noop(self, engine):
        start = _sel(WEIGHT)
        assert engine.remove(start, *GLUCOSE) == start

    def test_unselected_dependents_stay_out(self, liver_engine):
        # FIB-4 depends on AST but was never selected
        start = _sel(("Liver", "AST"), ("CBC", "Hb"))
        assert liver_engine.remove(start, "Liver", "AST") == _sel(("CBC", "Hb"))

    def test_chain_cascade(self, chain_engine):
        start = _sel(("Chain", "C"), ("Chain", "B"), ("Chain", "A"))
        assert chain_engine.remove(start, "Chain", "C") == ()

    def test_cross_category_dependent_removed(self, liver_engine):
        start = liver_engine.select_all_in_category((), "Liver")
        assert SelectedTest("Liver", "FIB-4") in start
        result = liver_engine.remove(start, "CBC", "PLT")
        assert SelectedTest("Liver", "FIB-4") not in result
        assert SelectedTest("Liver", "AST") in result

    def test_disablement_sweep_drops_unsatisfied(self, engine):
        # Externally supplied, inconsistent selection
        assert engine.disablement_sweep(_sel(A1C, WEIGHT)) == _sel(WEIGHT)


class TestCategoryOperations:
    def test_select_all_status(self, liver_engine):
        result = liver_engine.select_all_in_category((), "Liver")
        assert liver_engine.category_status(result, "Liver") == CategoryStatus.ALL
        assert liver_engine.category_status(result, "CBC") == CategoryStatus.PARTIAL
        assert liver_engine.category_status(result, "Kidney") == CategoryStatus.NONE

    def test_select_all_is_additive(self, engine):
        start = _sel(GLUCOSE, A1C)
        result = engine.select_all_in_category(start, "Anthro")
        assert result == _sel(GLUCOSE, A1C, WEIGHT)

    def test_unselect_all_status(self, liver_engine):
        start = liver_engine.select_all_in_category((), "Liver")
        result = liver_engine.unselect_all_in_category(start, "Liver")
        assert liver_engine.category_status(result, "Liver") == CategoryStatus.NONE
        assert result == _sel(("CBC", "PLT"))

    def test_unselect_all_cascades_into_other_categories(self, liver_engine):
        start = liver_engine.select_all_in_category((), "Liver")
        result = liver_engine.unselect_all_in_category(start, "CBC")
        assert liver_engine.category_status(result, "CBC") == CategoryStatus.NONE
        assert SelectedTest("Liver", "FIB-4") not in result

    def test_unknown_category_is_noop(self, engine):
        start = _sel(WEIGHT)
        assert engine.select_all_in_category(start, "Nope") == start
        assert engine.unselect_all_in_category(start, "Nope") == start

    def test_partial_status(self, engine):
        assert engine.category_status(_sel(GLUCOSE), "Glucose Panel") == CategoryStatus.PARTIAL


class TestNormalize:
    def test_drops_unknown_and_duplicates(self, engine):
        entries = [
            SelectedTest(*GLUCOSE),
            SelectedTest("Glucose Panel", "Insulin"),
            SelectedTest(*GLUCOSE),
        ]
        assert engine.normalize(entries) == _sel(GLUCOSE)
        assert engine.unknown_entries(entries) == [SelectedTest("Glucose Panel", "Insulin")]


class TestInvariants:
    """Walk the built-in catalog through many operations and check consistency."""

    @staticmethod
    def _assert_consistent(eng: SelectionEngine, selection):
        assert len(set(selection)) == len(selection)
        for entry in selection:
            assert eng.catalog.has_test(entry.category, entry.name)
            if eng.catalog.is_derived(entry.category, entry.name):
                assert eng.dependencies_satisfied(selection, entry.category, entry.name)

    def test_toggle_every_test(self):
        from lab_panels import get_engine

        eng = get_engine()
        tests = list(eng.catalog)
        selection = ()
        for test in tests + tests[::-1]:
            selection = eng.toggle(selection, test.category, test.name)
            self._assert_consistent(eng, selection)

    def test_bulk_operations(self):
        from lab_panels import get_engine

        eng = get_engine()
        selection = ()
        for category in eng.catalog.all_categories():
            selection = eng.select_all_in_category(selection, category)
            self._assert_consistent(eng, selection)
            assert eng.category_status(selection, category) == CategoryStatus.ALL
        for category in eng.catalog.all_categories():
            selection = eng.unselect_all_in_category(selection, category)
            self._assert_consistent(eng, selection)
            assert eng.category_status(selection, category) == CategoryStatus.NONE
        assert selection == ()
