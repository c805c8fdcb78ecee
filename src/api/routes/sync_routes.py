"""
Sync trigger routes - run every auto-sync integration or a single one.
Protected by the shared-secret Bearer token (SYNC_SECRET).
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from api.auth.dependencies import verify_sync_token
from api.helpers import get_batch_runner
from order_sync.errors import IntegrationSyncError, StoreError

router = APIRouter(dependencies=[Depends(verify_sync_token)])

# ── Pydantic models ──────────────────────────────────────────────

class InvalidRowResponse(BaseModel):
    row: int
    reason: str
    data: Dict[str, Any] = {}


class SyncStatsResponse(BaseModel):
    """Result of one sync pass."""
    integration_id: Any
    total: int
    new: int
    likely_duplicates: int = 0
    skipped: int
    skipped_skus: List[str] = []
    skipped_existing_orders: int = 0
    invalid_data: List[InvalidRowResponse] = []
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    last_sync_at: Optional[str] = None


class BatchReportResponse(BaseModel):
    """Aggregate result of a run over all auto-sync integrations."""
    total: int
    successful: int
    failed: int
    details: List[Dict[str, Any]] = []


# ── Routes ───────────────────────────────────────────────────────

@router.post(
    "/run-all",
    response_model=BatchReportResponse,
    summary="Sync every auto-sync integration",
)
async def run_all(runner=Depends(get_batch_runner)):
    """
    Run one sync pass for each integration with auto sync enabled.

    A failing integration is reported in `details` and does not stop the others.
    """
    try:
        report = await runner.run_all()
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not load integrations: {e}",
        )
    return report.to_dict()


@router.post(
    "/integrations/{integration_id}",
    response_model=SyncStatsResponse,
    summary="Sync one integration",
)
async def run_integration(integration_id: str, runner=Depends(get_batch_runner)):
    """Run one sync pass for a single integration, regardless of its auto-sync flag."""
    try:
        stats = await runner.run_one(integration_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Integration {integration_id} not found",
        )
    except (IntegrationSyncError, StoreError) as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return stats.to_dict()
