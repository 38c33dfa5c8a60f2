from __future__ import annotations

import copy
import json
import logging
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Tuple

from ..errors import ConflictError, CorruptStateError, StateNotFound
from .paths import default_state_root, ensure_dir

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass(frozen=True)
class StoredDocument:
    data: Dict[str, Any]
    version: int


class StateStore(Protocol):
    """Versioned document store used for shared party state.

    ``save`` is a compare-and-swap: ``expected_version`` must equal the stored
    version (``None`` means the key must not exist yet). Implementations
    raise ConflictError on mismatch and StateNotFound on a load miss.
    """

    def load(self, key: str) -> StoredDocument: ...

    def save(self, key: str, data: Dict[str, Any], expected_version: Optional[int]) -> int: ...

    def exists(self, key: str) -> bool: ...


def _check_version(key: str, expected: Optional[int], actual: Optional[int]) -> None:
    if expected != actual:
        logger.warning("Version conflict on %s: expected %s, found %s", key, expected, actual)
        raise ConflictError(key, expected, actual)


class MemoryStateStore:
    """Thread-safe in-process store. Documents are deep-copied in and out."""

    def __init__(self) -> None:
        self._docs: Dict[str, Tuple[Dict[str, Any], int]] = {}
        self.lock = threading.RLock()

    def load(self, key: str) -> StoredDocument:
        with self.lock:
            try:
                data, version = self._docs[key]
            except KeyError as e:
                raise StateNotFound(key) from e
            logger.debug("Loaded %s (version %d)", key, version)
            return StoredDocument(copy.deepcopy(data), version)

    def save(self, key: str, data: Dict[str, Any], expected_version: Optional[int]) -> int:
        with self.lock:
            current = self._docs.get(key)
            _check_version(key, expected_version, current[1] if current else None)
            version = (current[1] if current else 0) + 1
            self._docs[key] = (copy.deepcopy(data), version)
            logger.debug("Saved %s (version %d)", key, version)
            return version

    def exists(self, key: str) -> bool:
        with self.lock:
            return key in self._docs


class JsonFileStateStore:
    """One JSON file per key, written atomically.

    Each file holds ``{"version": n, "data": {...}}``. The RLock serialises
    access within a process; cross-process writers are not coordinated.
    """

    def __init__(self, root_dir: Optional[Path] = None) -> None:
        self.root_dir = ensure_dir(root_dir or default_state_root())
        self.lock = threading.RLock()

    def path_for(self, key: str) -> Path:
        return self.root_dir / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def load(self, key: str) -> StoredDocument:
        with self.lock:
            return self._read(key, self.path_for(key))

    def save(self, key: str, data: Dict[str, Any], expected_version: Optional[int]) -> int:
        with self.lock:
            path = self.path_for(key)
            current = self._read(key, path).version if path.exists() else None
            _check_version(key, expected_version, current)
            version = (current or 0) + 1
            text = json.dumps({"version": version, "data": data}, ensure_ascii=False, sort_keys=True, indent=2)
            self._atomic_write(path, text)
            logger.debug("Saved %s to %s (version %d)", key, path, version)
            return version

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    def _read(self, key: str, path: Path) -> StoredDocument:
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError as e:
            raise StateNotFound(key) from e
        except json.JSONDecodeError as e:
            logger.error("Corrupt state file %s: %s", path, e)
            raise CorruptStateError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict) or not isinstance(raw.get("version"), int):
            logger.error("Corrupt state file %s: missing version or data", path)
            raise CorruptStateError(f"State file {path} is missing version or data")
        return StoredDocument(raw["data"], raw["version"])

    def _atomic_write(self, path: Path, text: str) -> None:
        """Write to a sibling tmp file, fsync, then rename over ``path``."""
        tmp = path.with_suffix(path.suffix + ".tmp")
        ensure_dir(path.parent)
        with tmp.open("w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)


__all__ = ["JsonFileStateStore", "MemoryStateStore", "StateStore", "StoredDocument"]
