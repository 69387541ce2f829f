"""
Fingerprint Stores - Cross-Run Deduplication

The ingestion pipeline is batch-scoped: it only recognises duplicates within
one call. Callers that need deduplication across runs inject a store that
remembers fingerprints between calls. The pipeline itself never holds one.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class FingerprintStore(Protocol):
    """Minimal interface the pipeline needs from a persisted key set."""

    def has(self, key: str) -> bool:
        ...

    def add(self, key: str) -> None:
        ...


class InMemoryFingerprintStore:
    """Fingerprint set held by the caller for the lifetime of the object."""

    def __init__(self, keys: Optional[Iterable[str]] = None):
        self._keys: set[str] = set(keys or ())

    def has(self, key: str) -> bool:
        return key in self._keys

    def add(self, key: str) -> None:
        self._keys.add(key)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys


class JsonFileFingerprintStore(InMemoryFingerprintStore):
    """
    Fingerprint set persisted to a JSON file.

    Every add() rewrites the file. Suitable for single-process use (CLI,
    development server); concurrent writers need a real database.
    """

    def __init__(self, path: str):
        """
        Load existing keys from path if present.

        Args:
            path: JSON file holding {"fingerprints": [...], "saved_at": ...}
        """
        super().__init__()
        self._path = Path(path)
        self._load_from_file()

    @property
    def path(self) -> Path:
        return self._path

    def add(self, key: str) -> None:
        if key in self._keys:
            return
        super().add(key)
        self._save_to_file()

    def _save_to_file(self) -> None:
        data = {
            "fingerprints": sorted(self._keys),
            "saved_at": datetime.utcnow().isoformat(),
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def _load_from_file(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            self._keys.update(str(k) for k in data.get("fingerprints", []))
        except (json.JSONDecodeError, AttributeError, OSError) as e:
            logger.warning("Could not load fingerprint store %s, starting empty: %s", self._path, e)
