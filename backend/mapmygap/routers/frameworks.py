"""Framework catalog browsing router."""

from fastapi import APIRouter, Depends, HTTPException

from mapmygap.dependencies import get_catalog
from mapmygap.errors import UnsupportedFrameworkError
from mapmygap.models.framework import (
    CategorySummary,
    ControlSummary,
    Framework,
    FrameworkDetail,
    FrameworkListResponse,
    FrameworkSummary,
)
from mapmygap.services.framework_catalog import FrameworkCatalog

router = APIRouter(prefix="/frameworks", tags=["frameworks"])


def _summary_fields(framework: Framework) -> dict:
    return {
        "id": framework.id,
        "name": framework.name,
        "description": framework.description,
        "category_count": len(framework.categories),
        "total_controls": framework.control_count,
    }


@router.get("", response_model=FrameworkListResponse)
async def list_frameworks(
    catalog: FrameworkCatalog = Depends(get_catalog),
) -> FrameworkListResponse:
    """List supported frameworks with category and control counts."""
    return FrameworkListResponse(
        frameworks=[FrameworkSummary(**_summary_fields(f)) for f in catalog]
    )


@router.get("/{framework_id}", response_model=FrameworkDetail)
async def get_framework(
    framework_id: str,
    catalog: FrameworkCatalog = Depends(get_catalog),
) -> FrameworkDetail:
    """Return one framework with all categories and controls."""
    try:
        framework = catalog.get(framework_id)
    except UnsupportedFrameworkError as e:
        raise HTTPException(status_code=404, detail=e.details)

    return FrameworkDetail(
        **_summary_fields(framework),
        categories=[
            CategorySummary(
                name=category.name,
                description=category.description,
                control_count=len(category.controls),
                controls=[
                    ControlSummary(
                        id=c.id, control=c.control, recommendation=c.recommendation
                    )
                    for c in category.controls
                ],
            )
            for category in framework.categories
        ],
    )
