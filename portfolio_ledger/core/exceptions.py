# portfolio_ledger/core/exceptions.py

from typing import Optional

from portfolio_ledger.core.models.reconciliation import ReconciliationFailure


class LedgerError(Exception):
    """Base class for every rejected ledger operation."""
    error_code = "ledger_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def details(self) -> Optional[list]:
        return None


class LotValidationError(LedgerError):
    """
    One or more lots carry malformed fields (bad date, wrong sign, missing or forbidden cost).
    Carries every violation found, not just the first.
    """
    error_code = "invalid"

    def __init__(self, violations: list[str]):
        super().__init__(f"{len(violations)} lot validation error(s): " + "; ".join(violations))
        self.violations = list(violations)

    @property
    def details(self) -> list[str]:
        return self.violations


class ReconciliationError(LedgerError):
    """A sell or withdraw exceeds the inventory available at its point in time."""
    error_code = "reconciliation_failed"

    def __init__(self, failures: list[ReconciliationFailure]):
        super().__init__("; ".join(f.message for f in failures))
        self.failures = list(failures)

    @property
    def asset(self) -> str:
        return self.failures[0].asset

    @property
    def lot_id(self) -> str:
        return self.failures[0].lot_id

    @property
    def details(self) -> list[dict]:
        return [{"asset": f.asset, "lot_id": f.lot_id, "message": f.message} for f in self.failures]


class ConsumedLotError(LedgerError):
    """An edit or delete targets a supply lot that a later sell/withdraw already drew from."""
    error_code = "consumed_lot"

    def __init__(self, lot_id: str):
        super().__init__(f"Lot {lot_id} has been (partially) consumed and can no longer be changed.")
        self.lot_id = lot_id


class LotConflictError(LedgerError):
    """An imported lot carries an id that already exists in the ledger."""
    error_code = "id_conflict"

    def __init__(self, lot_id: str):
        super().__init__(f"Lot id {lot_id} already exists.")
        self.lot_id = lot_id


class LotNotFoundError(LedgerError):
    error_code = "not_found"

    def __init__(self, lot_id: str):
        super().__init__(f"Lot {lot_id} not found.")
        self.lot_id = lot_id


class StorageError(LedgerError):
    """
    The underlying write failed (disk full, permissions).
    The last successfully committed file is still intact.
    """
    error_code = "storage_error"
