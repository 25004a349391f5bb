# portfolio_ledger/api/v1/router.py

from fastapi import APIRouter
from portfolio_ledger.api.v1.lots import router as lots_router
from portfolio_ledger.api.v1.snapshots import router as snapshots_router

# Create a main router for API version 1
router = APIRouter()

# Include individual routers for v1 endpoints, applying tags here for clarity
router.include_router(lots_router, tags=["Lots"])
router.include_router(snapshots_router, tags=["Snapshots"])


@router.get("/health", tags=["Health"])
async def health() -> dict:
    return {"ok": True}
