# portfolio_ledger/core/enums/storage_backend.py

from enum import Enum

class StorageBackend(str, Enum):
    """
    Defines the available on-disk encodings for the lot ledger.
    """
    JSON = "JSON"
    CSV = "CSV"
