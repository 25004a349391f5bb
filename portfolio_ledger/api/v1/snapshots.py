# portfolio_ledger/api/v1/snapshots.py

from fastapi import APIRouter, Depends, HTTPException, Query, status

from portfolio_ledger.api.v1.dependencies import get_snapshot_service
from portfolio_ledger.core.models.request import SnapshotRequest
from portfolio_ledger.core.models.snapshot import Snapshot, SnapshotHistory
from portfolio_ledger.services.snapshot_service import SnapshotService

router = APIRouter()


@router.post(
    "/snapshots",
    response_model=Snapshot,
    status_code=status.HTTP_201_CREATED,
    summary="Value the portfolio and append a snapshot",
    description="Values the supplied balances at the supplied prices against the reconciled "
                "ledger, then appends the snapshot to the bounded history."
)
async def capture_snapshot(
    request: SnapshotRequest,
    service: SnapshotService = Depends(get_snapshot_service),
) -> Snapshot:
    return service.capture(
        request.balances,
        request.prices,
        always_include=request.always_include,
        min_usd_ignore=request.min_usd_ignore,
    )


@router.get("/snapshots/latest", response_model=Snapshot, summary="Most recent snapshot")
async def latest_snapshot(service: SnapshotService = Depends(get_snapshot_service)) -> Snapshot:
    latest = service.latest()
    if latest is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No snapshots recorded yet.")
    return latest


@router.get("/snapshots/history", response_model=SnapshotHistory, summary="Recent snapshots, oldest first")
async def snapshot_history(
    n: int = Query(50, ge=1, le=1000),
    service: SnapshotService = Depends(get_snapshot_service),
) -> SnapshotHistory:
    return SnapshotHistory(history=service.history(n))
