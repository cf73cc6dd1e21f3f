from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from lab_panels.definitions import CategoryStatus, SelectedTest


class SelectedTestModel(BaseModel):
    category: str = Field(min_length=1)
    name: str = Field(min_length=1)

    def to_entry(self) -> SelectedTest:
        return SelectedTest(self.category, self.name)

    @classmethod
    def from_entry(cls, entry: SelectedTest) -> SelectedTestModel:
        return cls(category=entry.category, name=entry.name)


class CatalogTest(BaseModel):
    name: str
    unit: str = ""
    dependencies: list[str] = Field(default_factory=list)
    is_derived: bool = False
    formula: Optional[str] = None
    reference_range: Any = None


class CatalogCategory(BaseModel):
    category: str
    tests: list[CatalogTest] = Field(default_factory=list)


class CatalogResponse(BaseModel):
    categories: list[CatalogCategory] = Field(default_factory=list)


class SelectionRequest(BaseModel):
    selection: list[SelectedTestModel] = Field(default_factory=list)


class ToggleRequest(SelectionRequest):
    category: str
    name: str


class CategoryRequest(SelectionRequest):
    category: str


class SelectionResponse(BaseModel):
    selection: list[SelectedTestModel] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class CategoryStatusResponse(BaseModel):
    category: str
    status: CategoryStatus
    selected_count: int = 0
    total_count: int = 0


class SubmissionRequest(SelectionRequest):
    patient: str = Field(min_length=1)
    branch: Optional[str] = None
    lab_technician: Optional[str] = None


class SubmissionTestItem(BaseModel):
    test_name: str
    unit: str = ""
    is_derived: bool = False


class SubmissionCategory(BaseModel):
    category: str
    tests: list[SubmissionTestItem] = Field(default_factory=list)


class SubmissionPayload(BaseModel):
    patient: str
    branch: Optional[str] = None
    lab_technician: Optional[str] = None
    test_results: list[SubmissionCategory] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def flatten(self) -> list[dict[str, str]]:
        """Ordered ``{category, name}`` pairs, as forwarded to ordering services."""
        return [
            {"category": group.category, "name": item.test_name}
            for group in self.test_results
            for item in group.tests
        ]
