# trashcan/routers/admin_trashcan.py
"""
Admin endpoints for the trashcan cleaner.

GET  /v1/admin/trashcan/status  - Pending count and active configuration
POST /v1/admin/trashcan/clean   - Run one cleanup cycle
POST /v1/admin/trashcan/dry-run - Preview what a cycle would delete
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from trashcan.auth import require_admin_key
from trashcan.errors import CycleFailedError, StoreError
from trashcan.services.cleaner import CycleResult, TrashcanCleaner
from trashcan.services.job import build_cleaner, run_cleaner_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/trashcan", tags=["admin-trashcan"])


def get_cleaner() -> TrashcanCleaner:
    """Cleaner configured from settings. Overridden in tests."""
    return build_cleaner()


# -----------------------------------------------------------------------------
# Response Models
# -----------------------------------------------------------------------------


class StatusResponse(BaseModel):
    """Trashcan status."""

    pending: int
    config: dict[str, Any]


class CycleResponse(BaseModel):
    """Result of a cleanup cycle or preview."""

    state: str
    dry_run: bool
    observed: int
    selected: int
    deleted: int
    not_found: int
    remaining: int | None = None
    chunks: int
    duration_seconds: float
    error: str | None = None
    victims: list[str] = Field(default_factory=list)
    trace_id: str | None = None


class CleanRequest(BaseModel):
    """Request to run a cleanup cycle."""

    dry_run: bool = Field(False, description="Preview only, don't delete")
    confirm: bool = Field(False, description="Required confirmation for non-dry-run")
    max_items: int | None = Field(None, ge=1, le=100_000, description="Override max nodes deleted this cycle")


def _to_response(result: CycleResult, trace_id: str | None = None) -> CycleResponse:
    return CycleResponse(**result.to_dict(), trace_id=trace_id)


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.get("/status", response_model=StatusResponse)
def get_trashcan_status(
    cleaner: TrashcanCleaner = Depends(get_cleaner),
    _: None = Depends(require_admin_key),
) -> StatusResponse:
    """Number of nodes in the trashcan and the cleaner's configuration."""
    try:
        pending = cleaner.count_pending()
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Node store unavailable: {e}")

    return StatusResponse(pending=pending, config=cleaner.describe())


@router.post("/clean", response_model=CycleResponse)
def trigger_clean(
    request: CleanRequest,
    cleaner: TrashcanCleaner = Depends(get_cleaner),
    _: None = Depends(require_admin_key),
) -> CycleResponse:
    """
    Run one cleanup cycle.

    **WARNING**: This permanently deletes archived nodes.

    Requires `confirm: true` unless `dry_run` is set.
    """
    if not request.dry_run and not request.confirm:
        raise HTTPException(
            status_code=400,
            detail="Clean requires 'confirm: true' for non-dry-run operations",
        )

    if request.max_items is not None:
        cleaner = cleaner.replace(max_items_per_cycle=request.max_items)

    if request.dry_run:
        return _preview(cleaner)

    try:
        summary = run_cleaner_job(cleaner)
    except CycleFailedError as e:
        raise HTTPException(
            status_code=500,
            detail={"message": str(e), "result": e.result.to_dict()},
        )
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Node store unavailable: {e}")

    return CycleResponse(**summary)


@router.post("/dry-run", response_model=CycleResponse)
def preview_clean(
    max_items: int | None = Query(None, ge=1, le=100_000, description="Override max nodes per cycle"),
    cleaner: TrashcanCleaner = Depends(get_cleaner),
    _: None = Depends(require_admin_key),
) -> CycleResponse:
    """Preview which nodes a cycle would delete, without deleting anything."""
    if max_items is not None:
        cleaner = cleaner.replace(max_items_per_cycle=max_items)
    return _preview(cleaner)


def _preview(cleaner: TrashcanCleaner) -> CycleResponse:
    try:
        result = cleaner.preview()
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Node store unavailable: {e}")
    return _to_response(result)
