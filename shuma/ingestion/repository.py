"""
Ingestion Run Repository - Storage for Completed Ingestion Runs

Keeps the outcome of each ingestion run (partitions, stats, audit fields)
for later retrieval. In-memory with optional JSON file persistence.

The pipeline never writes here; callers save the result after a run.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from shuma.ingestion.schema import IngestionResult


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionRun:
    """Stored record of one ingestion run (already serialised)."""

    run_id: str
    created_by: str
    created_at: str
    elapsed_ms: float
    result: dict

    @property
    def summary(self) -> dict:
        return self.result.get("stats", {})

    @classmethod
    def create(
        cls,
        result: IngestionResult,
        created_by: str = "system",
        elapsed_ms: float = 0.0,
    ) -> "IngestionRun":
        return cls(
            run_id=f"ing_{uuid.uuid4().hex}",
            created_by=created_by,
            created_at=datetime.utcnow().isoformat(),
            elapsed_ms=round(elapsed_ms, 3),
            result=result.to_dict(),
        )

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "elapsed_ms": self.elapsed_ms,
            "summary": self.summary,
            "result": self.result,
        }

    def to_summary_dict(self) -> dict:
        data = self.to_dict()
        data.pop("result")
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "IngestionRun":
        return cls(
            run_id=data["run_id"],
            created_by=data.get("created_by", "system"),
            created_at=data["created_at"],
            elapsed_ms=data.get("elapsed_ms", 0.0),
            result=data.get("result", {}),
        )


class IngestionRunRepository:
    """
    Repository for storing and retrieving ingestion runs.

    Uses in-memory storage with optional file persistence.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist runs to a JSON file
        """
        self._runs: dict[str, IngestionRun] = {}
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def save(self, run: IngestionRun) -> IngestionRun:
        """Insert or replace a run by run_id."""
        self._runs[run.run_id] = run
        self._save_to_file()
        return run

    def get(self, run_id: str) -> Optional[IngestionRun]:
        return self._runs.get(run_id)

    def list_runs(self, limit: int = 100) -> list[IngestionRun]:
        """Newest first."""
        runs = sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)
        return runs[:max(0, limit)]

    def __len__(self) -> int:
        return len(self._runs)

    def _save_to_file(self) -> None:
        if not self._persist_path:
            return

        data = {
            "runs": [run.to_dict() for run in self._runs.values()],
            "saved_at": datetime.utcnow().isoformat(),
        }
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def _load_from_file(self) -> None:
        try:
            data = json.loads(self._persist_path.read_text(encoding="utf-8"))
            for run_data in data.get("runs", []):
                run = IngestionRun.from_dict(run_data)
                self._runs[run.run_id] = run
        except (json.JSONDecodeError, KeyError, ValueError, AttributeError) as e:
            logger.warning("Could not load ingestion runs from %s, starting fresh: %s", self._persist_path, e)
