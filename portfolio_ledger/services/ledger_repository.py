# portfolio_ledger/services/ledger_repository.py

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from portfolio_ledger.core.enums.lot_action import LotAction
from portfolio_ledger.core.exceptions import (
    ConsumedLotError,
    LotConflictError,
    LotNotFoundError,
    LotValidationError,
    ReconciliationError,
)
from portfolio_ledger.core.models.ledger import Ledger, LedgerMeta
from portfolio_ledger.core.models.lot import Lot, ReconciledLot, format_lot_id
from portfolio_ledger.core.models.reconciliation import AssetSummary, ReconciliationResult
from portfolio_ledger.core.models.response import (
    AssetView,
    ImportResult,
    LotsView,
    LotsViewMeta,
    TradeMergeResult,
)
from portfolio_ledger.core.models.trade import TradeRecord
from portfolio_ledger.core.timestamps import now_iso
from portfolio_ledger.logic.disposition_engine import DispositionEngine, QTY_TOLERANCE
from portfolio_ledger.logic.error_reporter import ErrorReporter
from portfolio_ledger.logic.lot_parser import LotParser
from portfolio_ledger.logic.lot_sorter import LotSorter
from portfolio_ledger.logic.lot_validator import LotValidator
from portfolio_ledger.storage.atomic_file import write_lock
from portfolio_ledger.storage.lot_codecs import ledger_to_json, lot_to_json_row, lots_to_csv
from portfolio_ledger.storage.lots_storage import LotsStorage

logger = logging.getLogger(__name__)


class LedgerRepository:
    """
    The only writer of the ledger.

    Every mutation holds the process-wide write lock for the whole
    load -> change a working copy -> validate -> reconcile -> save sequence, and
    both checks run against the *entire* resulting ledger. A rejected mutation
    raises a LedgerError subclass and leaves the stored ledger untouched.
    """
    def __init__(
        self,
        storage: LotsStorage,
        disposition_engine: Optional[DispositionEngine] = None,
        sorter: Optional[LotSorter] = None,
    ):
        self._storage = storage
        self._sorter = sorter or LotSorter()
        self._disposition_engine = disposition_engine or DispositionEngine(sorter=self._sorter)

    @property
    def backend(self) -> str:
        return self._storage.backend

    # --- Reads ---

    def load_all(self) -> Ledger:
        return self._storage.load_all()

    def reconcile(self, prices: Optional[Mapping[str, Any]] = None) -> ReconciliationResult:
        """Dry-run LOFO pass over the stored ledger."""
        return self._disposition_engine.reconcile(self.load_all().lots_by_asset, prices)

    def summaries(self) -> dict[str, AssetSummary]:
        return self.reconcile().summaries()

    def build_view(self, prices: Optional[Mapping[str, Any]] = None) -> LotsView:
        """
        Reconciled ledger for display: every asset in symbol order with its
        summary and lots. `prices` ({symbol: price}) feed `unrealized_pl_usd`.
        """
        ledger = self.load_all()
        sorted_lots = self._sorter.sort_lots(ledger.lots_by_asset)
        result = self._disposition_engine.reconcile(sorted_lots, prices)

        assets: list[AssetView] = []
        for asset, lots in sorted_lots.items():
            reconciled = result.assets.get(asset)
            if reconciled is not None:
                assets.append(AssetView(asset=asset, summary=reconciled.summary, lots=reconciled.lots))
            else:
                assets.append(AssetView(
                    asset=asset,
                    summary=AssetSummary(),
                    lots=[ReconciledLot(**lot.model_dump()) for lot in lots],
                ))
        if result.errors:
            logger.warning(f"Stored ledger does not reconcile: {[f.message for f in result.errors]}")

        return LotsView(
            meta=LotsViewMeta(
                strategy=ledger.meta.strategy,
                last_id=ledger.meta.last_id,
                updated_at=ledger.meta.updated_at,
                backend=self.backend,
            ),
            assets=assets,
            errors=[f.message for f in result.errors],
        )

    def export_csv(self) -> str:
        return lots_to_csv(self.load_all().all_lots())

    def export_json(self) -> dict[str, Any]:
        return ledger_to_json(self.load_all())

    # --- Mutations ---

    def create_lot(self, raw_lot: Mapping[str, Any]) -> tuple[Lot, Optional[AssetSummary]]:
        """
        Adds one lot with a freshly assigned id. Any id in the input is ignored.
        Returns the committed lot and its asset's summary.
        """
        with write_lock():
            working = self.load_all().model_copy(deep=True)
            error_reporter = ErrorReporter()
            lot = LotParser(error_reporter).parse_lot({**raw_lot, "id": ""})
            if lot is None:
                raise LotValidationError(error_reporter.get_errors())

            lot = lot.model_copy(update={"id": self.next_id(working.meta)})
            working.lots_by_asset.setdefault(lot.asset, []).append(lot)
            _, result = self._commit(working, error_reporter)

        logger.info(f"Created lot {lot.id} ({lot.action} {lot.qty} {lot.asset}).")
        return lot, self._summary_for(result, lot.asset)

    def update_lot(self, lot_id: str, changes: Mapping[str, Any]) -> tuple[Lot, Optional[AssetSummary]]:
        """
        Edits date, qty, unit_cost_usd and/or note of an existing lot.
        Supply lots that a later sell/withdraw has already drawn from are immutable.
        """
        allowed = {"date", "ts", "qty", "unit_cost_usd", "note"}
        with write_lock():
            ledger = self.load_all()
            original = self._find_unconsumed(ledger, lot_id)

            raw = lot_to_json_row(original)
            for field, value in changes.items():
                if field not in allowed:
                    continue
                raw["ts" if field == "date" else field] = value

            error_reporter = ErrorReporter()
            updated = LotParser(error_reporter).parse_lot(raw)
            if updated is None:
                raise LotValidationError(error_reporter.get_errors())

            working = ledger.model_copy(deep=True)
            working.lots_by_asset[original.asset] = [
                updated if lot.id == lot_id else lot
                for lot in working.lots_by_asset[original.asset]
            ]
            _, result = self._commit(working, error_reporter)

        logger.info(f"Updated lot {lot_id} ({sorted(changes)}).")
        return updated, self._summary_for(result, updated.asset)

    def delete_lot(self, lot_id: str) -> None:
        with write_lock():
            ledger = self.load_all()
            original = self._find_unconsumed(ledger, lot_id)

            working = ledger.model_copy(deep=True)
            working.lots_by_asset[original.asset] = [
                lot for lot in working.lots_by_asset[original.asset] if lot.id != lot_id
            ]
            self._commit(working, ErrorReporter())

        logger.info(f"Deleted lot {lot_id}.")

    def import_lots(self, raw_lots: Iterable[Any], skip_on_conflict: bool = False) -> ImportResult:
        """
        Merges a batch of raw lots into the ledger, all or nothing.

        Lots without an id get the next ledger id. A lot whose id is already taken
        (by the ledger or earlier in the same batch) is skipped when
        `skip_on_conflict` is set; otherwise the whole import is refused.
        All-digit imported ids are zero-padded (42 and 000042 are the same lot id)
        and move `last_id` forward so later ids never collide.
        """
        with write_lock():
            working = self.load_all().model_copy(deep=True)
            taken_ids = working.lot_ids()
            error_reporter = ErrorReporter()
            parser = LotParser(error_reporter)
            imported, skipped = 0, 0
            warnings: list[str] = []

            for raw in raw_lots:
                if not isinstance(raw, Mapping):
                    error_reporter.add_error("?", "(new)", f"expected an object, got {type(raw).__name__}")
                    continue
                raw_id = raw.get("id")
                lot_id = "" if raw_id is None else str(raw_id).strip()
                if lot_id.isdigit():
                    lot_id = format_lot_id(int(lot_id))
                if lot_id and lot_id in taken_ids:
                    if not skip_on_conflict:
                        logger.warning(f"Import refused: lot id {lot_id} already exists.")
                        raise LotConflictError(lot_id)
                    skipped += 1
                    warnings.append(f"skipped lot {lot_id}: id already exists")
                    continue

                lot = parser.parse_lot({**raw, "id": lot_id})
                if lot is None:
                    continue
                if not lot.id:
                    lot = lot.model_copy(update={"id": self.next_id(working.meta)})
                elif lot.id.isdigit():
                    working.meta.last_id = max(working.meta.last_id, int(lot.id))

                working.lots_by_asset.setdefault(lot.asset, []).append(lot)
                taken_ids.add(lot.id)
                imported += 1

            saved, _ = self._commit(working, error_reporter)

        logger.info(f"Imported {imported} lot(s), skipped {skipped}; last_id is now {saved.meta.last_id}.")
        return ImportResult(
            imported=imported,
            skipped=skipped,
            new_last_id=saved.meta.last_id,
            warnings=warnings,
        )

    def merge_trades(self, trades: Iterable[TradeRecord]) -> TradeMergeResult:
        """
        Appends fetched exchange trades as buy/sell lots.

        Trades already recorded (by their `trade#<id>` note) are ignored. Trades
        without a price and sells larger than the running inventory are skipped
        with a warning. The merged ledger is committed only if it validates and
        reconciles as a whole; otherwise nothing is written and the reasons are
        returned as warnings.
        """
        with write_lock():
            ledger = self.load_all()
            working = ledger.model_copy(deep=True)
            seen_notes = {lot.note for lot in ledger.all_lots() if "trade#" in lot.note}
            inventory = {
                asset: summary.total_qty
                for asset, summary in self._disposition_engine.reconcile(ledger.lots_by_asset).summaries().items()
            }
            created, skipped = 0, 0
            warnings: list[str] = []

            for trade in sorted(trades, key=lambda t: t.created_at or 0):
                if trade.note and trade.note in seen_notes:
                    continue
                side = trade.side
                if side is None or trade.amount <= 0:
                    continue
                if trade.price is None:
                    warnings.append(f"skip {trade.asset} trade {trade.trade_id}: missing price")
                    continue
                available = inventory.get(trade.asset, Decimal(0))
                if side == LotAction.SELL.value and available < trade.amount - QTY_TOLERANCE:
                    skipped += 1
                    warnings.append(f"skip sell {trade.asset} {trade.note or 'trade'} (insufficient inventory)")
                    continue

                ts = (
                    datetime.fromtimestamp(trade.created_at / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")
                    if trade.created_at else now_iso()
                )
                lot = Lot(
                    id=self.next_id(working.meta),
                    action=side,
                    asset=trade.asset,
                    qty=trade.amount if side == LotAction.BUY.value else -trade.amount,
                    unit_cost_usd=trade.price,
                    ts=ts,
                    note=trade.note,
                )
                working.lots_by_asset.setdefault(lot.asset, []).append(lot)
                if lot.note:
                    seen_notes.add(lot.note)
                inventory[trade.asset] = available + lot.qty
                created += 1

            if created == 0:
                return TradeMergeResult(created=0, skipped=skipped, warnings=warnings, saved=False)
            try:
                self._commit(working, ErrorReporter())
            except LotValidationError as e:
                return TradeMergeResult(created=created, skipped=skipped, warnings=warnings + e.violations, saved=False)
            except ReconciliationError as e:
                return TradeMergeResult(
                    created=created, skipped=skipped,
                    warnings=warnings + [f.message for f in e.failures], saved=False,
                )

        logger.info(f"Merged {created} trade(s) into the ledger, skipped {skipped}.")
        return TradeMergeResult(created=created, skipped=skipped, warnings=warnings, saved=True)

    # --- Helpers ---

    @staticmethod
    def next_id(meta: LedgerMeta) -> str:
        """Advances the monotonic counter and returns the new zero-padded id."""
        meta.last_id += 1
        return format_lot_id(meta.last_id)

    def _find_unconsumed(self, ledger: Ledger, lot_id: str) -> Lot:
        lot = ledger.find_lot(lot_id)
        if lot is None:
            raise LotNotFoundError(lot_id)
        remaining = self._disposition_engine.reconcile(ledger.lots_by_asset).remaining_by_lot_id()
        if self._disposition_engine.is_consumed(lot, remaining):
            logger.warning(f"Refusing to change consumed lot {lot_id}.")
            raise ConsumedLotError(lot_id)
        return lot

    def _commit(self, working: Ledger, error_reporter: ErrorReporter) -> tuple[Ledger, ReconciliationResult]:
        """
        Validates and reconciles the whole working ledger, then saves it.
        Violations already collected in `error_reporter` (e.g. parse failures) are reported together.
        """
        lots_by_asset = self._sorter.sort_lots(working.lots_by_asset)
        violations = LotValidator(error_reporter).validate_lots(lots_by_asset)
        if violations:
            raise LotValidationError(violations)

        result = self._disposition_engine.reconcile(lots_by_asset)
        if not result.ok:
            raise ReconciliationError(result.errors)

        saved = self._storage.save_all(Ledger(meta=working.meta, lots_by_asset=lots_by_asset))
        return saved, result

    @staticmethod
    def _summary_for(result: ReconciliationResult, asset: str) -> Optional[AssetSummary]:
        reconciled = result.assets.get(asset)
        return reconciled.summary if reconciled is not None else None
