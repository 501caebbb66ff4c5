from __future__ import annotations

import json
import os
from pathlib import Path

from healthpipe.utils.checksums import (
    CacheState,
    ChecksumCache,
    calculate_checksum,
    load_checksum_cache,
    save_checksum_cache,
)


def _write(path: Path, text: str) -> str:
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_only_changed_file_is_returned(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "a.csv", "date,steps\n2020-01-01,10\n")
    _write(tmp_path / "b.csv", "date,steps\n2020-01-02,20\n")

    cache = ChecksumCache({})
    assert cache.get_changed_files(["a.csv", "b.csv"]) == ["a.csv", "b.csv"]
    cache.mark_file_processed("a.csv")
    cache.mark_file_processed("b.csv")

    _write(tmp_path / "a.csv", "date,steps\n2020-01-01,11\n")
    assert cache.get_changed_files(["a.csv", "b.csv"]) == ["a.csv"]


def test_unchanged_files_yield_nothing(tmp_path: Path):
    paths = [_write(tmp_path / f"{name}.json", "{}") for name in ("x", "y")]
    cache = ChecksumCache({})
    for path in paths:
        cache.mark_file_processed(path)
    assert cache.get_changed_files(paths) == []


def test_missing_files_are_skipped(tmp_path: Path):
    present = _write(tmp_path / "present.csv", "a,b\n")
    cache = ChecksumCache({})
    assert cache.get_changed_files([str(tmp_path / "gone.csv"), present]) == [present]


def test_cache_is_keyed_by_absolute_path(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "a.csv", "1")
    cache = ChecksumCache({})
    cache.mark_file_processed("a.csv")
    assert os.path.abspath("a.csv") in cache.entries
    assert str(tmp_path / "a.csv") in cache


def test_save_and_load(tmp_path: Path):
    data_file = _write(tmp_path / "a.csv", "1,2,3")
    cache_path = tmp_path / ".cache" / "file-checksums.json"

    cache = ChecksumCache({})
    cache.mark_file_processed(data_file)
    assert save_checksum_cache(cache, str(cache_path))
    assert cache.state is CacheState.PERSISTED

    stored = json.loads(cache_path.read_text(encoding="utf-8"))
    assert stored == {os.path.abspath(data_file): calculate_checksum(data_file)}

    loaded = load_checksum_cache(str(cache_path))
    assert loaded.state is CacheState.LOADED
    assert loaded.get_changed_files([data_file]) == []


def test_missing_cache_file_loads_empty(tmp_path: Path):
    cache = load_checksum_cache(str(tmp_path / "nope.json"))
    assert len(cache) == 0
    assert cache.state is CacheState.LOADED


def test_corrupt_cache_treats_everything_as_changed(tmp_path: Path):
    data_file = _write(tmp_path / "a.csv", "1")
    cache_path = tmp_path / "cache.json"
    cache_path.write_text("{not json", encoding="utf-8")

    cache = load_checksum_cache(str(cache_path))
    assert len(cache) == 0
    assert cache.get_changed_files([data_file]) == [data_file]


def test_cache_with_wrong_shape_is_discarded(tmp_path: Path):
    cache_path = tmp_path / "cache.json"
    cache_path.write_text(json.dumps({"/some/file": {"nested": True}}), encoding="utf-8")
    assert len(load_checksum_cache(str(cache_path))) == 0


def test_save_failure_returns_false(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    cache = ChecksumCache({})
    assert not save_checksum_cache(cache, str(blocker / "cache.json"))
    assert cache.state is not CacheState.PERSISTED


def test_large_files_use_partial_fingerprint(tmp_path: Path):
    path = tmp_path / "export.xml"
    path.write_bytes(b"a" * 100)

    checksum = calculate_checksum(str(path), threshold_bytes=10, window_bytes=4)
    assert checksum.startswith("partial:")

    cache = ChecksumCache({}, threshold_bytes=10, window_bytes=4)
    cache.mark_file_processed(str(path))
    path.write_bytes(b"a" * 99 + b"b")
    assert cache.get_changed_files([str(path)]) == [str(path)]


def test_small_files_use_full_md5(tmp_path: Path):
    path = _write(tmp_path / "a.csv", "hello")
    assert calculate_checksum(path) == "5d41402abc4b2a76b9719d911017c592"


def test_forget_marks_file_changed_again(tmp_path: Path):
    path = _write(tmp_path / "a.csv", "1")
    cache = ChecksumCache({})
    cache.mark_file_processed(path)
    cache.forget(path)
    assert cache.get_changed_files([path]) == [path]
