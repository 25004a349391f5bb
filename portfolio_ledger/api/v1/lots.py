# portfolio_ledger/api/v1/lots.py

import json
import logging
from typing import Literal

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from portfolio_ledger.api.v1.dependencies import get_history_store, get_ledger_repository
from portfolio_ledger.core.exceptions import LotValidationError
from portfolio_ledger.core.models.request import LotImportRequest, LotUpdateRequest, TradeMergeRequest
from portfolio_ledger.core.models.response import (
    ImportResult,
    LotMutationResponse,
    LotsView,
    TradeMergeResult,
)
from portfolio_ledger.services.ledger_repository import LedgerRepository
from portfolio_ledger.storage.history_store import SnapshotHistoryStore
from portfolio_ledger.storage.lot_codecs import csv_to_raw_lots

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/lots",
    response_model=LotsView,
    summary="Reconciled cost-basis ledger",
    description="Returns every asset with its LOFO summary and lots. Unrealized P/L is valued "
                "at the prices of the most recent snapshot."
)
async def list_lots(
    repository: LedgerRepository = Depends(get_ledger_repository),
    history_store: SnapshotHistoryStore = Depends(get_history_store),
) -> LotsView:
    latest = history_store.latest()
    return repository.build_view(latest.price_map() if latest is not None else None)


@router.post(
    "/lots",
    response_model=LotMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a lot",
)
async def create_lot(
    raw_lot: dict = Body(..., examples=[{"action": "buy", "asset": "BTC", "qty": "0.5", "unit_cost_usd": "30000", "date": "2024-01-02"}]),
    repository: LedgerRepository = Depends(get_ledger_repository),
) -> LotMutationResponse:
    lot, summary = repository.create_lot(raw_lot)
    return LotMutationResponse(lot=lot, summary=summary)


@router.post(
    "/lots/import",
    response_model=ImportResult,
    summary="Import lots from CSV or JSON",
    description="Accepts a text/csv body (header id,date,asset,action,qty,unit_cost_usd,note) "
                "or a JSON body {\"lots\": [...]}. The batch is committed all or nothing."
)
async def import_lots(
    request: Request,
    skip_on_conflict: bool = Query(False, description="Skip lots whose id already exists instead of refusing the import."),
    repository: LedgerRepository = Depends(get_ledger_repository),
) -> ImportResult:
    content_type = request.headers.get("content-type", "").lower()
    body = await request.body()
    text = body.decode("utf-8-sig", errors="replace")

    if "csv" in content_type or content_type.startswith("text/plain"):
        raw_lots = csv_to_raw_lots(text)
    else:
        try:
            raw_lots = LotImportRequest.model_validate(json.loads(text or "null")).lots
        except (ValueError, ValidationError):
            raise LotValidationError(['body: expected text/csv or JSON {"lots": [...]}'])

    logger.info(f"Import request with {len(raw_lots)} lot(s) (skip_on_conflict={skip_on_conflict}).")
    return repository.import_lots(raw_lots, skip_on_conflict=skip_on_conflict)


@router.get(
    "/lots/export",
    summary="Export the ledger",
    response_class=Response,
)
async def export_lots(
    format: Literal["csv", "json"] = Query("csv"),
    repository: LedgerRepository = Depends(get_ledger_repository),
) -> Response:
    if format == "json":
        return JSONResponse(
            content=repository.export_json(),
            headers={"Content-Disposition": 'attachment; filename="cost_basis_lots.json"'},
        )
    return Response(
        content=repository.export_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="cost_basis_lots.csv"'},
    )


@router.post(
    "/lots/sync-trades",
    response_model=TradeMergeResult,
    summary="Merge fetched exchange trades",
    description="Appends trades not yet recorded as buy/sell lots. Never rejected for "
                "reconciliation; check `saved` and `warnings`."
)
async def sync_trades(
    request: TradeMergeRequest,
    repository: LedgerRepository = Depends(get_ledger_repository),
) -> TradeMergeResult:
    return repository.merge_trades(request.trades)


@router.put(
    "/lots/{lot_id}",
    response_model=LotMutationResponse,
    summary="Edit an unconsumed lot",
)
async def update_lot(
    lot_id: str,
    request: LotUpdateRequest,
    repository: LedgerRepository = Depends(get_ledger_repository),
) -> LotMutationResponse:
    lot, summary = repository.update_lot(lot_id, request.changes())
    return LotMutationResponse(lot=lot, summary=summary)


@router.delete(
    "/lots/{lot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an unconsumed lot",
)
async def delete_lot(
    lot_id: str,
    repository: LedgerRepository = Depends(get_ledger_repository),
) -> Response:
    repository.delete_lot(lot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
