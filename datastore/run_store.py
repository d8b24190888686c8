"""Run record storage shared by the API and the runner workers."""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

from pydantic import ValidationError

from app.schemas import RunRecord, RunStatus
from settings import get_settings

logger = logging.getLogger(__name__)


class RunStore:
    """Keeps the latest record of every run, optionally mirrored to a JSON file.

    Records are copied on the way in and on the way out, so callers never
    share state with the runner threads that keep rewriting them.
    """

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self.persistence_path = persistence_path
        self._records: Dict[str, RunRecord] = {}
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._records = _read_records(persistence_path)

    def save(self, record: RunRecord) -> None:
        """Insert or replace the record of ``record.run_id``."""
        with self._lock:
            self._records[record.run_id] = record.model_copy(deep=True)
            if self.persistence_path:
                _write_records(self.persistence_path, self._records.values())

    def get(self, run_id: str) -> Optional[RunRecord]:
        with self._lock:
            record = self._records.get(run_id)
            return None if record is None else record.model_copy(deep=True)

    def list_runs(
        self,
        status: Optional[RunStatus] = None,
        limit: Optional[int] = None,
    ) -> List[RunRecord]:
        """Return records newest first, optionally only those in ``status``."""
        with self._lock:
            records = [
                record
                for record in self._records.values()
                if status is None or record.status == status
            ]
            records.sort(key=lambda record: record.created_at, reverse=True)
            if limit is not None:
                records = records[: max(0, limit)]
            return [record.model_copy(deep=True) for record in records]


def _write_records(path: Path, records) -> None:
    payload = [record.model_dump(mode="json") for record in records]
    # Readers never see a half-written file.
    scratch = path.with_name(path.name + ".tmp")
    scratch.write_text(json.dumps(payload, indent=2, sort_keys=True))
    os.replace(scratch, path)


def _read_records(path: Path) -> Dict[str, RunRecord]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text() or "[]")
    except (OSError, json.JSONDecodeError):
        logger.warning("Run store file %s is unreadable; starting empty.", path)
        return {}
    if not isinstance(data, list):
        logger.warning("Run store file %s has an unexpected layout; starting empty.", path)
        return {}

    records: Dict[str, RunRecord] = {}
    for entry in data:
        try:
            record = RunRecord.model_validate(entry)
        except ValidationError:
            logger.warning("Skipping invalid run record in %s.", path)
            continue
        records[record.run_id] = record
    return records


@lru_cache
def build_default_store(path: Optional[str] = None) -> RunStore:
    settings = get_settings()
    store_path = settings.run_store_path if path is None else path
    return RunStore(persistence_path=Path(store_path) if store_path else None)
