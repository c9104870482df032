"""Keyword-matching knowledge store persisted as one JSON document."""

from __future__ import annotations

import json
import logging
import threading
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .models import KnowledgeItem, SearchResult

logger = logging.getLogger(__name__)

# title, content and tag hits are weighted 3:2:1
FIELD_WEIGHTS = (("title", 3), ("content", 2), ("tags", 1))


class KnowledgeStore:
    """
    Stores knowledge items and answers substring queries over them.

    The backing file is read once at construction and rewritten in full
    after every ``add_item``.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._items: Dict[str, KnowledgeItem] = self._load()

    def _load(self) -> Dict[str, KnowledgeItem]:
        items: Dict[str, KnowledgeItem] = {}
        if not self.path.is_file():
            return items
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            for raw in data.get("items", []):
                item = KnowledgeItem.from_dict(raw)
                items[item.id] = item
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Error loading knowledge base %s: %s", self.path, exc)
            return {}
        logger.debug("Loaded %d knowledge items from %s", len(items), self.path)
        return items

    def _persist(self) -> None:
        payload = {
            "items": [item.to_dict() for item in self._items.values()],
            "updatedAt": datetime.now().isoformat(),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Error persisting knowledge base %s: %s", self.path, exc)

    def add_item(
        self,
        type: str,
        title: str,
        content: str,
        tags: Optional[Iterable[str]] = None,
        source: str = "",
        relevance_score: float = 1.0,
    ) -> str:
        """Store a new item and return its generated id."""
        now = datetime.now()
        item = KnowledgeItem(
            id=uuid.uuid4().hex[:12],
            type=type,
            title=title,
            content=content,
            tags=list(tags or []),
            source=source,
            relevance_score=relevance_score,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._items[item.id] = item
            self._persist()
        return item.id

    def get_item(self, item_id: str) -> Optional[KnowledgeItem]:
        with self._lock:
            return self._items.get(item_id)

    def search(
        self,
        query: str,
        types: Optional[Iterable[str]] = None,
        limit: int = 10,
    ) -> List[SearchResult]:
        """Case-insensitive substring search, best score first.

        An item's score is the sum of its field weights times its relevance
        score. A blank query matches nothing.
        """
        needle = query.strip().lower()
        if not needle or limit <= 0:
            return []
        wanted = set(types) if types else None

        with self._lock:
            items = list(self._items.values())

        results: List[SearchResult] = []
        for item in items:
            if wanted is not None and item.type not in wanted:
                continue
            haystacks = {
                "title": needle in item.title.lower(),
                "content": needle in item.content.lower(),
                "tags": any(needle in tag.lower() for tag in item.tags),
            }
            matches = [name for name, _ in FIELD_WEIGHTS if haystacks[name]]
            weight = sum(w for name, w in FIELD_WEIGHTS if haystacks[name])
            if weight:
                results.append(SearchResult(item=item, score=weight * item.relevance_score, matches=matches))

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:limit]

    def learn_from_project(self, project_path: Union[str, Path], project_type: str) -> Optional[str]:
        """Record a project's manifest summary and top-level layout."""
        root = Path(project_path)
        manifest = root / "package.json"
        if not manifest.is_file():
            logger.debug("No package.json in %s; nothing to learn", root)
            return None
        try:
            package = json.loads(manifest.read_text(encoding="utf-8"))
            if not isinstance(package, dict):
                raise ValueError("package.json must contain an object")
        except (OSError, ValueError) as exc:
            logger.error("Error learning from project %s: %s", root, exc)
            return None

        content = json.dumps(
            {
                "dependencies": package.get("dependencies"),
                "scripts": package.get("scripts"),
                "structure": self._project_structure(root),
            },
            indent=2,
        )
        return self.add_item(
            type="project",
            title=f"Project Analysis: {package.get('name') or 'Unknown'}",
            content=content,
            tags=[project_type, "nodejs", "analysis"],
            source=str(root),
            relevance_score=0.8,
        )

    def learn_from_error(self, error: Union[BaseException, str], context: Any = None) -> str:
        """Record a failure together with the context it happened in."""
        message = str(error)
        stack = None
        if isinstance(error, BaseException) and error.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        content = json.dumps(
            {
                "error": message,
                "stack": stack,
                "context": context,
                "timestamp": datetime.now().isoformat(),
            },
            indent=2,
            default=str,
        )
        return self.add_item(
            type="error",
            title=f"Error: {message[:100]}",
            content=content,
            tags=["error", "debugging", "troubleshooting"],
            source="runtime",
            relevance_score=0.9,
        )

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            by_type: Dict[str, int] = {}
            for item in self._items.values():
                by_type[item.type] = by_type.get(item.type, 0) + 1
            return {"total_items": len(self._items), "by_type": by_type}

    def __len__(self) -> int:
        return len(self._items)

    @staticmethod
    def _project_structure(root: Path) -> Dict[str, str]:
        structure: Dict[str, str] = {}
        try:
            for entry in sorted(root.iterdir()):
                structure[entry.name] = "directory" if entry.is_dir() else "file"
        except OSError as exc:
            logger.warning("Error reading project structure %s: %s", root, exc)
        return structure
