import logging

from fastapi import APIRouter, HTTPException

from api.models import (
    CatalogCategory,
    CatalogResponse,
    CatalogTest,
    CategoryRequest,
    CategoryStatusResponse,
    SelectedTestModel,
    SelectionRequest,
    SelectionResponse,
    SubmissionPayload,
    SubmissionRequest,
    ToggleRequest,
)
from lab_panels import Selection, SelectionEngine, TestDefinition, get_catalog, get_engine
from lab_panels.submission import build_submission

_logger = logging.getLogger(__name__)

router = APIRouter()


def _catalog_test(test: TestDefinition) -> CatalogTest:
    return CatalogTest(
        name=test.name,
        unit=test.unit,
        dependencies=list(test.dependencies),
        is_derived=test.is_derived,
        formula=test.formula,
        reference_range=test.reference_range,
    )


def _load_selection(body: SelectionRequest) -> tuple[SelectionEngine, Selection, list[str]]:
    """Validate the client's selection against the catalog.

    Unknown entries are dropped and reported as warnings, never as errors.
    """
    engine = get_engine()
    entries = [item.to_entry() for item in body.selection]
    warnings = [
        f"Unknown test '{e.name}' in category '{e.category}' was removed from the selection."
        for e in dict.fromkeys(engine.unknown_entries(entries))
    ]
    return engine, engine.normalize(entries), warnings


def _response(selection: Selection, warnings: list[str]) -> SelectionResponse:
    return SelectionResponse(
        selection=[SelectedTestModel.from_entry(s) for s in selection],
        warnings=warnings,
    )


@router.get("/health")
async def health_check():
    try:
        get_catalog()
        return {"status": "ok"}
    except Exception:
        _logger.debug("Catalog not available for health check", exc_info=True)
        return {"status": "starting"}


@router.get("/catalog", response_model=CatalogResponse)
async def get_full_catalog():
    """Return every category with its tests, in catalog order."""
    catalog = get_catalog()
    return CatalogResponse(categories=[
        CatalogCategory(
            category=category,
            tests=[_catalog_test(t) for t in catalog.tests_in_category(category)],
        )
        for category in catalog.all_categories()
    ])


@router.get("/catalog/{category}", response_model=CatalogCategory)
async def get_catalog_category(category: str):
    catalog = get_catalog()
    if not catalog.has_category(category):
        raise HTTPException(status_code=404, detail="Category not found.")
    return CatalogCategory(
        category=category,
        tests=[_catalog_test(t) for t in catalog.tests_in_category(category)],
    )


# --- Selection Endpoints ---


@router.post("/selection/toggle", response_model=SelectionResponse)
async def toggle_test(body: ToggleRequest):
    """Select or deselect one test, cascading through its dependencies."""
    engine, selection, warnings = _load_selection(body)
    if not engine.catalog.has_test(body.category, body.name):
        warnings.append(f"Unknown test '{body.name}' in category '{body.category}'.")
        return _response(selection, warnings)
    return _response(engine.toggle(selection, body.category, body.name), warnings)


@router.post("/selection/select-all", response_model=SelectionResponse)
async def select_all_in_category(body: CategoryRequest):
    engine, selection, warnings = _load_selection(body)
    if not engine.catalog.has_category(body.category):
        warnings.append(f"Unknown category '{body.category}'.")
        return _response(selection, warnings)
    return _response(engine.select_all_in_category(selection, body.category), warnings)


@router.post("/selection/unselect-all", response_model=SelectionResponse)
async def unselect_all_in_category(body: CategoryRequest):
    engine, selection, warnings = _load_selection(body)
    if not engine.catalog.has_category(body.category):
        warnings.append(f"Unknown category '{body.category}'.")
        return _response(selection, warnings)
    return _response(engine.unselect_all_in_category(selection, body.category), warnings)


@router.post("/selection/status", response_model=CategoryStatusResponse)
async def category_status(body: CategoryRequest):
    """Report whether none, some, or all tests of a category are selected."""
    engine, selection, _ = _load_selection(body)
    return CategoryStatusResponse(
        category=body.category,
        status=engine.category_status(selection, body.category),
        selected_count=sum(1 for s in selection if s.category == body.category),
        total_count=len(engine.catalog.tests_in_category(body.category)),
    )


@router.post("/selection/submission", response_model=SubmissionPayload)
async def build_submission_payload(body: SubmissionRequest):
    """Turn the final selection into the lab order payload."""
    engine, selection, warnings = _load_selection(body)
    return build_submission(
        selection,
        engine.catalog,
        patient=body.patient,
        branch=body.branch,
        lab_technician=body.lab_technician,
        warnings=warnings,
    )
