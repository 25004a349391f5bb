# portfolio_ledger/storage/history_store.py

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from portfolio_ledger.core.exceptions import StorageError
from portfolio_ledger.core.models.snapshot import Snapshot, SnapshotHistory
from portfolio_ledger.storage.atomic_file import atomic_write_json, write_lock

logger = logging.getLogger(__name__)

HISTORY_FILE = "state.json"
DEFAULT_MAX_HISTORY = 400


class SnapshotHistoryStore:
    """
    Bounded, append-only snapshot history persisted as {"history": [...]}.
    When the bound is exceeded the oldest snapshots are evicted first.
    """
    def __init__(
        self,
        data_dir: Union[str, Path],
        max_history: int = DEFAULT_MAX_HISTORY,
        keep_backup: bool = True,
    ):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.history_file = Path(data_dir) / HISTORY_FILE
        self.max_history = max_history
        self._keep_backup = keep_backup

    def load(self) -> SnapshotHistory:
        """
        A missing file is an empty history. A file that exists but does not hold
        {"history": [...]} raises StorageError, so the next append cannot replace it.
        """
        if not self.history_file.exists():
            return SnapshotHistory()
        try:
            raw = json.loads(self.history_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Could not read snapshot history {self.history_file}: {e}")
            raise StorageError(f"Could not read {self.history_file.name}: {e}") from e
        if not isinstance(raw, dict) or not isinstance(raw.get("history"), list):
            raise StorageError(f"{self.history_file.name} does not hold a snapshot history.")
        snapshots: list[Snapshot] = []
        for entry in raw["history"]:
            try:
                snapshots.append(Snapshot.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed snapshot in {self.history_file.name}: {e.error_count()} error(s).")
        return SnapshotHistory(history=snapshots)

    def append(self, snapshot: Snapshot) -> SnapshotHistory:
        return self.extend([snapshot])

    def extend(self, snapshots: list[Snapshot]) -> SnapshotHistory:
        """Appends in order, evicts overflow from the front and commits once."""
        with write_lock():
            history = self.load().history + list(snapshots)
            evicted = max(len(history) - self.max_history, 0)
            if evicted:
                history = history[evicted:]
                logger.debug(f"Evicted {evicted} oldest snapshot(s) from history.")
            updated = SnapshotHistory(history=history)
            atomic_write_json(self.history_file, updated.model_dump(mode="json"), keep_backup=self._keep_backup)
        logger.info(f"Appended {len(snapshots)} snapshot(s); history holds {len(history)}.")
        return updated

    def latest(self) -> Optional[Snapshot]:
        history = self.load().history
        return history[-1] if history else None

    def tail(self, n: int) -> list[Snapshot]:
        """Most recent `n` snapshots, oldest first."""
        if n <= 0:
            return []
        return self.load().history[-n:]
