# portfolio_ledger/logic/lot_parser.py

import logging
from typing import Any, Optional
from pydantic import ValidationError, TypeAdapter

from portfolio_ledger.core.models.lot import Lot
from portfolio_ledger.logic.error_reporter import ErrorReporter

logger = logging.getLogger(__name__)

class LotParser:
    """
    Coerces raw lot dictionaries (JSON bodies, CSV rows, legacy files) into Lot objects.
    Handles data type conversions and initial validation using Pydantic.
    All parsing errors are reported to the shared ErrorReporter.
    """
    def __init__(self, error_reporter: ErrorReporter):
        self._single_lot_adapter = TypeAdapter(Lot)
        self._error_reporter = error_reporter

    @staticmethod
    def normalize_raw(raw_lot: dict[str, Any], default_asset: Optional[str] = None) -> dict[str, Any]:
        """
        Maps the accepted input spellings onto the canonical field names:
        `date` or `ts` for the timestamp, `unit_cost` (legacy) or `unit_cost_usd` for the cost.
        Missing text fields become empty strings so validation can name them.
        """
        ts = raw_lot.get("ts")
        if ts is None or ts == "":
            ts = raw_lot.get("date")
        unit_cost = raw_lot.get("unit_cost_usd")
        if unit_cost is None and "unit_cost" in raw_lot:
            unit_cost = raw_lot.get("unit_cost")
        asset = raw_lot.get("asset") or default_asset or ""
        return {
            "id": raw_lot.get("id") or "",
            "action": raw_lot.get("action") or "",
            "asset": asset,
            "qty": raw_lot.get("qty"),
            "unit_cost_usd": unit_cost,
            "ts": "" if ts is None else ts,
            "note": raw_lot.get("note") or "",
        }

    def parse_lot(self, raw_lot: dict[str, Any], default_asset: Optional[str] = None) -> Optional[Lot]:
        """
        Parses one raw lot. Returns None and reports the failure when it cannot be coerced.
        """
        normalized = self.normalize_raw(raw_lot, default_asset)
        lot_id = str(normalized["id"]) or "(new)"
        asset = str(normalized["asset"]) or "?"
        try:
            return self._single_lot_adapter.validate_python(normalized)
        except ValidationError as e:
            for err in e.errors():
                field = err["loc"][0] if err["loc"] else "lot"
                if field == "date":
                    field = "ts"
                self._error_reporter.add_error(asset, lot_id, f"{field}: {err['msg']}")
            logger.debug(f"LotParser: Rejected raw lot {lot_id} for {asset}: {e.error_count()} error(s).")
            return None

    def parse_lots(
        self, raw_lots: list[dict[str, Any]], default_asset: Optional[str] = None
    ) -> list[Lot]:
        """
        Parses a list of raw lot dictionaries into validated Lot objects.
        Lots that fail parsing are left out of the result and reported to the central ErrorReporter.
        """
        parsed_lots: list[Lot] = []
        for raw_lot in raw_lots:
            if not isinstance(raw_lot, dict):
                self._error_reporter.add_error("?", "(new)", f"expected an object, got {type(raw_lot).__name__}")
                continue
            lot = self.parse_lot(raw_lot, default_asset)
            if lot is not None:
                parsed_lots.append(lot)
        logger.debug(f"LotParser: Parsed {len(parsed_lots)} of {len(raw_lots)} raw lots.")
        return parsed_lots
