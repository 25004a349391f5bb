# portfolio_ledger/storage/lot_codecs.py

import csv
import io
import logging
from typing import Any, Iterable

from portfolio_ledger.core.models.ledger import Ledger
from portfolio_ledger.core.models.lot import Lot
from portfolio_ledger.logic.lot_sorter import lot_sort_key

logger = logging.getLogger(__name__)

LOT_CSV_COLUMNS = ["id", "date", "asset", "action", "qty", "unit_cost_usd", "note"]


def lot_to_csv_row(lot: Lot) -> dict[str, str]:
    return {
        "id": lot.id,
        "date": lot.ts,
        "asset": lot.asset,
        "action": lot.action,
        "qty": str(lot.qty),
        "unit_cost_usd": "" if lot.unit_cost_usd is None else str(lot.unit_cost_usd),
        "note": lot.note,
    }


def lots_to_csv(lots: Iterable[Lot]) -> str:
    """
    Renders lots as CSV text with the fixed column order, rows sorted
    chronologically (date, then id). A null cost is written as an empty cell.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=LOT_CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for lot in sorted(lots, key=lot_sort_key):
        writer.writerow(lot_to_csv_row(lot))
    return buffer.getvalue()


def csv_to_raw_lots(text: str) -> list[dict[str, Any]]:
    """
    Reads CSV text (header row required) into raw lot dictionaries.
    Blank lines and rows with only empty cells are skipped; values stay strings.
    """
    text = text.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(text))
    rows: list[dict[str, Any]] = []
    for row in reader:
        cleaned = {
            (key or "").strip(): (value.strip() if isinstance(value, str) else value)
            for key, value in row.items()
            if key is not None
        }
        if not any(cleaned.values()):
            continue
        rows.append(cleaned)
    logger.debug(f"Read {len(rows)} lot row(s) from CSV text.")
    return rows


def lot_to_json_row(lot: Lot) -> dict[str, Any]:
    """JSON-safe lot row; Decimals are rendered as strings so no precision is lost."""
    return lot.model_dump(mode="json", include=set(Lot.model_fields))


def ledger_to_json(ledger: Ledger) -> dict[str, Any]:
    return {
        "meta": ledger.meta.model_dump(mode="json"),
        "byAsset": {
            asset: [lot_to_json_row(lot) for lot in ledger.lots_by_asset[asset]]
            for asset in sorted(ledger.lots_by_asset)
            if ledger.lots_by_asset[asset]
        },
    }


def json_to_raw_ledger(data: Any) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """
    Splits a persisted JSON ledger into its meta block and raw lot rows.

    Two layouts are accepted:
    - current: {"meta": {...}, "byAsset": {"BTC": [lot, ...]}}
    - legacy:  {"meta": {...}, "BTC": {"lots": [{"unit_cost": ..., "ts": ...}]}}

    The partition key becomes each row's asset.
    """
    if not isinstance(data, dict):
        return {}, []
    meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}
    raw_lots: list[dict[str, Any]] = []

    if "byAsset" in data:
        for asset, rows in (data.get("byAsset") or {}).items():
            for row in rows or []:
                raw_lots.append({**row, "asset": asset})
        return meta, raw_lots

    for asset, record in data.items():
        if asset == "meta" or not isinstance(record, dict):
            continue
        for row in record.get("lots") or []:
            raw_lots.append({**row, "asset": asset})
    logger.info(f"Loaded legacy ledger layout with {len(raw_lots)} lot(s).")
    return meta, raw_lots
