"""
Change detection across runs.

A ChecksumCache maps absolute file paths to content fingerprints. The
orchestrator loads one at the start of a run, asks it which files changed,
marks files processed as they succeed and saves it once at the end.
"""

import hashlib
import json
import logging
import os
from enum import Enum

from healthpipe.config import PARTIAL_HASH_THRESHOLD_BYTES, PARTIAL_HASH_WINDOW_BYTES
from healthpipe.errors import CacheCorruption

logger = logging.getLogger(__name__)

_READ_CHUNK = 1024 * 1024


class CacheState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    PERSISTED = "persisted"


def calculate_checksum(
    path: str,
    *,
    threshold_bytes: int = PARTIAL_HASH_THRESHOLD_BYTES,
    window_bytes: int = PARTIAL_HASH_WINDOW_BYTES,
) -> str:
    """
    md5 of the whole file, or for files above threshold_bytes a bounded
    fingerprint of size, mtime and the first/last window_bytes.

    The partial form can miss an edit confined to the middle of a file whose
    size and mtime were both preserved.
    """
    stat = os.stat(path)
    digest = hashlib.md5()
    with open(path, "rb") as f:
        if stat.st_size <= threshold_bytes:
            for chunk in iter(lambda: f.read(_READ_CHUNK), b""):
                digest.update(chunk)
            return digest.hexdigest()

        digest.update(f"{stat.st_size}:{stat.st_mtime_ns}".encode("utf-8"))
        digest.update(f.read(window_bytes))
        f.seek(max(stat.st_size - window_bytes, 0))
        digest.update(f.read(window_bytes))
    return f"partial:{digest.hexdigest()}"


class ChecksumCache:
    def __init__(
        self,
        entries: dict[str, str] | None = None,
        *,
        threshold_bytes: int = PARTIAL_HASH_THRESHOLD_BYTES,
        window_bytes: int = PARTIAL_HASH_WINDOW_BYTES,
    ):
        self.entries: dict[str, str] = dict(entries or {})
        self.state = CacheState.UNLOADED if entries is None else CacheState.LOADED
        self.threshold_bytes = threshold_bytes
        self.window_bytes = window_bytes

    @staticmethod
    def _key(path: str) -> str:
        return os.path.abspath(path)

    def checksum(self, path: str) -> str:
        return calculate_checksum(path, threshold_bytes=self.threshold_bytes, window_bytes=self.window_bytes)

    def has_file_changed(self, path: str) -> bool:
        return self.checksum(path) != self.entries.get(self._key(path))

    def get_changed_files(self, paths: list[str]) -> list[str]:
        """Subset of paths (same order, same spelling) needing processing."""
        changed = []
        for path in paths:
            if not os.path.exists(path):
                logger.warning(f"Skipping missing file: {path}")
                continue
            try:
                if not self.has_file_changed(path):
                    continue
            except OSError as e:
                # Let the extractor surface the read error for this file.
                logger.warning(f"Could not fingerprint {path}: {e}")
            changed.append(path)
        return changed

    def mark_file_processed(self, path: str) -> None:
        self.entries[self._key(path)] = self.checksum(path)
        self.state = CacheState.LOADED

    def forget(self, path: str) -> None:
        self.entries.pop(self._key(path), None)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, path: str) -> bool:
        return self._key(path) in self.entries


def _read_cache_file(cache_path: str) -> dict[str, str]:
    try:
        with open(cache_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CacheCorruption(f"Could not read checksum cache {cache_path}: {e}") from e
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise CacheCorruption(f"Checksum cache {cache_path} is not a flat path->hash map")
    return data


def load_checksum_cache(cache_path: str, **kwargs) -> ChecksumCache:
    """Load the cache; a missing or corrupt file yields an empty cache."""
    if not os.path.exists(cache_path):
        return ChecksumCache({}, **kwargs)
    try:
        return ChecksumCache(_read_cache_file(cache_path), **kwargs)
    except CacheCorruption as e:
        logger.warning(f"{e}. Treating every file as changed.")
        return ChecksumCache({}, **kwargs)


def save_checksum_cache(cache: ChecksumCache, cache_path: str) -> bool:
    """Persist atomically. Failure is logged and reported, never raised."""
    tmp_path = f"{cache_path}.tmp"
    try:
        directory = os.path.dirname(cache_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(cache.entries, f, indent=2, sort_keys=True)
        os.replace(tmp_path, cache_path)
    except OSError as e:
        logger.error(f"Could not save checksum cache to {cache_path}: {e}")
        return False
    cache.state = CacheState.PERSISTED
    return True
