# portfolio_ledger/storage/lots_storage.py

import json
import logging
from pathlib import Path
from typing import Any, Protocol, Union

from portfolio_ledger.core.enums.storage_backend import StorageBackend
from portfolio_ledger.core.exceptions import StorageError
from portfolio_ledger.core.models.ledger import Ledger, LedgerMeta
from portfolio_ledger.core.timestamps import now_iso
from portfolio_ledger.logic.error_reporter import ErrorReporter
from portfolio_ledger.logic.lot_parser import LotParser
from portfolio_ledger.logic.lot_sorter import LotSorter
from portfolio_ledger.storage.atomic_file import (
    atomic_write_json,
    atomic_write_text,
    read_json_safe,
    write_lock,
)
from portfolio_ledger.storage.lot_codecs import (
    csv_to_raw_lots,
    json_to_raw_ledger,
    ledger_to_json,
    lots_to_csv,
)

logger = logging.getLogger(__name__)

JSON_LOTS_FILE = "cost_basis_lots.json"
CSV_LOTS_FILE = "cost_basis_lots.csv"
CSV_META_FILE = "cost_basis_meta.json"


class LotsStorage(Protocol):
    """Persists the whole ledger; loads return a fresh Ledger every time."""
    backend: str

    def load_all(self) -> Ledger:
        ...

    def save_all(self, ledger: Ledger) -> Ledger:
        ...


def _build_ledger(raw_meta: dict[str, Any], raw_lots: list[dict[str, Any]], source: Path) -> Ledger:
    """
    Turns persisted rows back into a Ledger. A row that no longer parses aborts
    the load with StorageError; it is never dropped. `last_id` never trails the
    highest numeric lot id on disk, whatever the stored header says.
    """
    error_reporter = ErrorReporter()
    lots = LotParser(error_reporter).parse_lots(raw_lots)
    if error_reporter.has_errors():
        errors = error_reporter.get_errors()
        logger.error(f"{source} holds {len(errors)} unreadable lot row(s): {errors}")
        raise StorageError(f"{source.name} holds unreadable lot rows: " + "; ".join(errors))

    try:
        last_id = int(raw_meta.get("last_id") or 0)
    except (TypeError, ValueError):
        raise StorageError(f"{source.name} holds an invalid last_id: {raw_meta.get('last_id')!r}")
    highest_id = max((int(lot.id) for lot in lots if lot.id.isdigit()), default=0)
    if highest_id > last_id:
        logger.warning(f"{source.name}: stored last_id {last_id} is behind lot id {highest_id}; resuming from {highest_id}.")
        last_id = highest_id
    meta = LedgerMeta(last_id=max(last_id, 0), updated_at=raw_meta.get("updated_at") or now_iso())
    return Ledger(meta=meta, lots_by_asset=LotSorter().group_by_asset(lots))


def _stamped(ledger: Ledger) -> Ledger:
    meta = ledger.meta.model_copy(update={"updated_at": now_iso()})
    return ledger.model_copy(update={"meta": meta})


class JSONLotsBackend:
    """Ledger as one JSON document: {"meta": {...}, "byAsset": {...}}."""
    backend = StorageBackend.JSON.value

    def __init__(self, data_dir: Union[str, Path], keep_backup: bool = True):
        self.lots_file = Path(data_dir) / JSON_LOTS_FILE
        self._keep_backup = keep_backup

    def load_all(self) -> Ledger:
        if not self.lots_file.exists():
            return Ledger()
        try:
            data = json.loads(self.lots_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not read {self.lots_file.name}: {e}") from e
        raw_meta, raw_lots = json_to_raw_ledger(data)
        return _build_ledger(raw_meta, raw_lots, self.lots_file)

    def save_all(self, ledger: Ledger) -> Ledger:
        stamped = _stamped(ledger)
        atomic_write_json(self.lots_file, ledger_to_json(stamped), keep_backup=self._keep_backup)
        logger.info(f"Saved {len(stamped.all_lots())} lot(s) to {self.lots_file}.")
        return stamped


class CSVLotsBackend:
    """
    Ledger as a flat CSV of lots plus a small JSON file for the header.
    Both files are rewritten under one hold of the write lock, header first:
    a failed header write leaves the lots untouched, and a failed lots write
    only leaves the counter ahead.
    """
    backend = StorageBackend.CSV.value

    def __init__(self, data_dir: Union[str, Path], keep_backup: bool = True):
        self.lots_file = Path(data_dir) / CSV_LOTS_FILE
        self.meta_file = Path(data_dir) / CSV_META_FILE
        self._keep_backup = keep_backup

    def load_all(self) -> Ledger:
        raw_meta = read_json_safe(self.meta_file, {}) or {}
        if not isinstance(raw_meta, dict):
            raw_meta = {}
        raw_lots: list[dict[str, Any]] = []
        if self.lots_file.exists():
            try:
                raw_lots = csv_to_raw_lots(self.lots_file.read_text(encoding="utf-8"))
            except OSError as e:
                raise StorageError(f"Could not read {self.lots_file.name}: {e}") from e
        return _build_ledger(raw_meta, raw_lots, self.lots_file)

    def save_all(self, ledger: Ledger) -> Ledger:
        stamped = _stamped(ledger)
        with write_lock():
            atomic_write_json(self.meta_file, stamped.meta.model_dump(mode="json"), keep_backup=self._keep_backup)
            atomic_write_text(self.lots_file, lots_to_csv(stamped.all_lots()), keep_backup=self._keep_backup)
        logger.info(f"Saved {len(stamped.all_lots())} lot(s) to {self.lots_file}.")
        return stamped


def create_lots_storage(
    data_dir: Union[str, Path],
    backend: Union[StorageBackend, str] = StorageBackend.JSON,
    keep_backup: bool = True,
) -> LotsStorage:
    """Picks the ledger encoding; anything other than CSV falls back to JSON."""
    backend_name = backend.value if isinstance(backend, StorageBackend) else str(backend).upper()
    if backend_name == StorageBackend.CSV.value:
        return CSVLotsBackend(data_dir, keep_backup=keep_backup)
    return JSONLotsBackend(data_dir, keep_backup=keep_backup)
