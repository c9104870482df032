"""Keyword knowledge store."""

from .models import KNOWLEDGE_TYPES, KnowledgeItem, SearchResult
from .store import KnowledgeStore

__all__ = [
    "KNOWLEDGE_TYPES",
    "KnowledgeItem",
    "SearchResult",
    "KnowledgeStore",
]
