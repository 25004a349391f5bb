# portfolio_ledger/storage/atomic_file.py
"""
Crash-safe file replacement.

Every write goes to a uniquely named temp file in the target's directory, is
flushed and fsynced, and then renamed over the target with `os.replace`. A
reader therefore always sees either the previous file or the new one, never a
torn write. Readers take no lock: a reader racing a writer may get the stale
pre-write version (last writer wins).

Writers inside one process are serialized by a single re-entrant lock
(`write_lock`). Nothing here protects against other processes writing the same
files.
"""

import json
import logging
import os
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Union

from portfolio_ledger.core.exceptions import StorageError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_WRITE_LOCK = threading.RLock()


@contextmanager
def write_lock() -> Iterator[None]:
    """Holds the process-wide write lock for a whole load-validate-persist sequence."""
    with _WRITE_LOCK:
        yield


def _backup(path: Path) -> None:
    bak = path.with_name(path.name + ".bak")
    try:
        shutil.copyfile(path, bak)
    except OSError as e:
        logger.warning(f"Could not refresh backup {bak}: {e}")


def atomic_write_text(path: PathLike, text: str, keep_backup: bool = True) -> None:
    """
    Replaces `path` with `text` atomically. When `keep_backup` is set and the
    file already exists, its current content is copied to `<name>.bak` first;
    a failed backup is logged and does not stop the write.

    Raises StorageError if the new content could not be written; the
    previously committed file is left untouched in that case.
    """
    path = Path(path)
    with _WRITE_LOCK:
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".tmp-{path.name}-")
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            if keep_backup and path.exists():
                _backup(path)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            logger.error(f"Atomic write of {path} failed: {e}")
            raise StorageError(f"Could not write {path.name}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug(f"Temp file {tmp_name} already gone.")
    logger.debug(f"Wrote {path} ({len(text)} chars).")


def atomic_write_json(path: PathLike, data: Any, keep_backup: bool = True) -> None:
    atomic_write_text(path, json.dumps(data, indent=2, default=str), keep_backup=keep_backup)


def read_json_safe(path: PathLike, fallback: Any = None) -> Any:
    """Reads a JSON file, returning `fallback` if it is missing or unreadable."""
    path = Path(path)
    if not path.exists():
        return fallback
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable JSON file {path}: {e}")
        return fallback
