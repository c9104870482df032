"""Bounded, most-recent-first deployment history persisted as one JSON document."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import List, Optional

from .models import DeploymentHistoryEntry

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 100


class DeploymentHistoryStore:
    """History ring: insert at the front, evict from the tail.

    The backing file is read once at construction and rewritten in full on
    every ``record``. The lock serialises writers inside one process only.
    """

    def __init__(self, path: Path, capacity: int = HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.path = Path(path)
        self.capacity = capacity
        self._lock = threading.Lock()
        self._entries: List[DeploymentHistoryEntry] = self._load()

    def _load(self) -> List[DeploymentHistoryEntry]:
        if not self.path.is_file():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            entries = [DeploymentHistoryEntry.from_dict(item) for item in data.get("history", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Error loading deployment history %s: %s", self.path, exc)
            return []
        return entries[: self.capacity]

    def _write(self) -> None:
        payload = {"history": [entry.to_dict() for entry in self._entries]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Error saving deployment history %s: %s", self.path, exc)

    def record(self, entry: DeploymentHistoryEntry) -> None:
        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self.capacity:]
            self._write()

    def query(self, project_id: Optional[str] = None) -> List[DeploymentHistoryEntry]:
        with self._lock:
            if project_id is None:
                return list(self._entries)
            return [entry for entry in self._entries if entry.project_id == project_id]

    def __len__(self) -> int:
        return len(self._entries)
