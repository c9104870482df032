"""Enhancement suggestions for a project, backed by the LLM client."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .client import LLMError, TextGenerationClient

logger = logging.getLogger(__name__)

SUGGESTION_TYPES = ("security", "optimization", "feature", "integration")
PRIORITIES = ("low", "medium", "high")

SUGGESTION_PROMPT = """Based on the following project context, provide specific enhancement suggestions in JSON format. Focus on:
- Security improvements
- Performance optimizations
- Feature additions
- Integration opportunities

Return only a JSON array of objects with the keys: type, title, description, priority, confidence, codeSnippet (optional)."""


@dataclass
class Suggestion:
    type: str
    title: str
    description: str
    priority: str = "medium"
    confidence: float = 0.5
    code_snippet: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Suggestion":
        kind = str(data.get("type", "feature")).lower()
        priority = str(data.get("priority", "medium")).lower()
        return cls(
            type=kind if kind in SUGGESTION_TYPES else "feature",
            title=str(data["title"]),
            description=str(data.get("description", "")),
            priority=priority if priority in PRIORITIES else "medium",
            confidence=float(data.get("confidence", 0.5)),
            code_snippet=data.get("codeSnippet") or data.get("code_snippet"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_suggestions() -> List[Suggestion]:
    return [
        Suggestion(
            type="security",
            title="Add input validation",
            description="Implement proper input validation to prevent XSS attacks",
            priority="high",
            confidence=0.9,
        ),
        Suggestion(
            type="optimization",
            title="Implement lazy loading",
            description="Add lazy loading for images to improve performance",
            priority="medium",
            confidence=0.8,
        ),
    ]


def parse_suggestions(text: str) -> List[Suggestion]:
    """Parse a JSON array of suggestions, tolerating a fenced code block."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
    data = json.loads(cleaned)
    if isinstance(data, dict):
        data = data.get("suggestions", [])
    if not isinstance(data, list):
        raise ValueError("Expected a JSON array of suggestions")
    return [Suggestion.from_dict(item) for item in data if isinstance(item, dict)]


class ProjectAdvisor:
    """Asks the LLM for enhancement ideas about a project."""

    def __init__(self, client: TextGenerationClient):
        self.client = client

    def describe_project(self, project_path: str) -> str:
        root = Path(project_path)
        context: Dict[str, Any] = {"path": str(root.resolve())}
        manifest = root / "package.json"
        if manifest.is_file():
            try:
                package = json.loads(manifest.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Could not read %s: %s", manifest, exc)
            else:
                context["name"] = package.get("name")
                context["scripts"] = sorted((package.get("scripts") or {}).keys())
                context["dependencies"] = sorted((package.get("dependencies") or {}).keys())
                context["devDependencies"] = sorted((package.get("devDependencies") or {}).keys())
        return json.dumps(context)

    def suggest(self, project_path: str) -> List[Suggestion]:
        """
        Raises:
            LLMError: the endpoint call failed.
        """
        response = self.client.generate(SUGGESTION_PROMPT, self.describe_project(project_path))
        try:
            suggestions = parse_suggestions(response)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Falling back to default suggestions: %s", exc)
            return default_suggestions()
        return suggestions or default_suggestions()


__all__ = ["LLMError", "ProjectAdvisor", "Suggestion", "default_suggestions", "parse_suggestions"]
