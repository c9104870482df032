"""Data models for the knowledge store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

KNOWLEDGE_TYPES = ("tutorial", "project", "error", "solution", "best-practice")


@dataclass
class KnowledgeItem:
    """One entry of accumulated project or troubleshooting knowledge."""

    id: str
    type: str
    title: str
    content: str
    tags: List[str] = field(default_factory=list)
    source: str = ""
    relevance_score: float = 1.0
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.type not in KNOWLEDGE_TYPES:
            raise ValueError(f"Knowledge item '{self.id}' has unknown type: {self.type}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags),
            "source": self.source,
            "relevanceScore": self.relevance_score,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeItem":
        return cls(
            id=data["id"],
            type=data["type"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            tags=list(data.get("tags", [])),
            source=data.get("source", ""),
            relevance_score=float(data.get("relevanceScore", data.get("relevance_score", 1.0))),
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data.get("updatedAt", data["createdAt"])),
        )


@dataclass
class SearchResult:
    """A matching item, its weighted score and the fields that matched."""

    item: KnowledgeItem
    score: float
    matches: List[str] = field(default_factory=list)
