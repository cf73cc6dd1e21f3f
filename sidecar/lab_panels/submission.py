"""Build the lab order payload from a finished selection."""

from __future__ import annotations

from typing import Optional

from api.models import SubmissionCategory, SubmissionPayload, SubmissionTestItem

from .catalog import Catalog
from .definitions import Selection
from .selection import definitions_for


def build_submission(
    selection: Selection,
    catalog: Catalog,
    patient: str,
    branch: Optional[str] = None,
    lab_technician: Optional[str] = None,
    warnings: Optional[list[str]] = None,
) -> SubmissionPayload:
    """Group the selected tests by category, both in catalog order."""
    selected = {(t.category, t.name) for t in definitions_for(selection, catalog)}

    groups: list[SubmissionCategory] = []
    for category in catalog.all_categories():
        items = [
            SubmissionTestItem(test_name=t.name, unit=t.unit, is_derived=t.is_derived)
            for t in catalog.tests_in_category(category)
            if (category, t.name) in selected
        ]
        if items:
            groups.append(SubmissionCategory(category=category, tests=items))

    return SubmissionPayload(
        patient=patient,
        branch=branch,
        lab_technician=lab_technician,
        test_results=groups,
        warnings=list(warnings or []),
    )
