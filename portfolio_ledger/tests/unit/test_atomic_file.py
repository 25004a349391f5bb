# portfolio_ledger/tests/unit/test_atomic_file.py

import json
import os
import pytest

from portfolio_ledger.core.exceptions import StorageError
from portfolio_ledger.storage import atomic_file
from portfolio_ledger.storage.atomic_file import atomic_write_json, atomic_write_text, read_json_safe, write_lock

def test_write_creates_directory_and_file(tmp_path):
    target = tmp_path / "nested" / "data.json"

    atomic_write_json(target, {"a": 1})

    assert json.loads(target.read_text(encoding="utf-8")) == {"a": 1}

def test_rewrite_keeps_single_backup_of_previous_content(tmp_path):
    target = tmp_path / "lots.csv"
    atomic_write_text(target, "v1")
    atomic_write_text(target, "v2")
    atomic_write_text(target, "v3")

    assert target.read_text(encoding="utf-8") == "v3"
    assert (tmp_path / "lots.csv.bak").read_text(encoding="utf-8") == "v2"

def test_no_backup_when_disabled(tmp_path):
    target = tmp_path / "lots.csv"
    atomic_write_text(target, "v1", keep_backup=False)
    atomic_write_text(target, "v2", keep_backup=False)

    assert not (tmp_path / "lots.csv.bak").exists()

def test_no_temp_files_left_behind(tmp_path):
    atomic_write_text(tmp_path / "a.txt", "hello")

    assert sorted(os.listdir(tmp_path)) == ["a.txt"]

def test_failed_backup_does_not_block_write(tmp_path, mocker):
    target = tmp_path / "state.json"
    atomic_write_json(target, {"v": 1})
    mocker.patch.object(atomic_file.shutil, "copyfile", side_effect=OSError("disk full"))

    atomic_write_json(target, {"v": 2})

    assert json.loads(target.read_text(encoding="utf-8")) == {"v": 2}

def test_failed_replace_raises_storage_error_and_keeps_old_file(tmp_path, mocker):
    target = tmp_path / "state.json"
    atomic_write_json(target, {"v": 1})
    mocker.patch.object(atomic_file.os, "replace", side_effect=OSError("read-only file system"))

    with pytest.raises(StorageError):
        atomic_write_json(target, {"v": 2})

    assert json.loads(target.read_text(encoding="utf-8")) == {"v": 1}
    assert not [name for name in os.listdir(tmp_path) if name.startswith(".tmp-")]

def test_write_lock_is_reentrant(tmp_path):
    with write_lock():
        with write_lock():
            atomic_write_text(tmp_path / "x.txt", "inside")

    assert (tmp_path / "x.txt").read_text(encoding="utf-8") == "inside"

def test_read_json_safe_fallbacks(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    assert read_json_safe(tmp_path / "missing.json", {"history": []}) == {"history": []}
    assert read_json_safe(broken, "fallback") == "fallback"
