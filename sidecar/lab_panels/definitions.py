from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Patient attributes supplied outside the catalog; always satisfied.
SENTINEL_DEPENDENCIES = frozenset({"Age", "Gender"})


class CategoryStatus(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    ALL = "all"


@dataclass(frozen=True)
class TestDefinition:
    """A single orderable lab test as described by the catalog."""

    __test__ = False  # not a pytest test class

    category: str
    name: str
    unit: str = ""
    dependencies: tuple[str, ...] = ()
    formula: Optional[str] = None
    reference_range: Any = field(default=None, compare=False, hash=False)

    @property
    def is_derived(self) -> bool:
        """Calculated tests carry both a formula and at least one dependency."""
        return bool(self.dependencies) and bool(self.formula)

    @property
    def test_dependencies(self) -> tuple[str, ...]:
        """Dependencies that must be satisfied by another selected test."""
        return tuple(d for d in self.dependencies if d not in SENTINEL_DEPENDENCIES)

    def to_selected(self) -> SelectedTest:
        return SelectedTest(self.category, self.name)


@dataclass(frozen=True)
class SelectedTest:
    category: str
    name: str


# Ordered, duplicate-free tuple of SelectedTest
Selection = tuple[SelectedTest, ...]
