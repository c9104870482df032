"""Data models for the template catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

TEMPLATE_TYPES = ("component", "feature", "integration", "boilerplate")
TEMPLATE_CATEGORIES = ("ui", "auth", "api", "database", "deployment")
VARIABLE_TYPES = ("string", "number", "boolean", "select")
FILE_KINDS = ("file", "directory")


@dataclass
class TemplateVariable:
    """A value the caller supplies when injecting a template."""

    name: str
    type: str = "string"
    required: bool = False
    description: str = ""
    default_value: Any = None
    options: Optional[List[str]] = None

    def __post_init__(self) -> None:
        if self.type not in VARIABLE_TYPES:
            raise ValueError(f"Variable '{self.name}' has unknown type: {self.type}")
        if self.type == "select" and not self.options:
            raise ValueError(f"Select variable '{self.name}' must declare options")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "required": self.required,
        }
        if self.default_value is not None:
            data["defaultValue"] = self.default_value
        if self.options is not None:
            data["options"] = list(self.options)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateVariable":
        return cls(
            name=data["name"],
            type=data.get("type", "string"),
            required=bool(data.get("required", False)),
            description=data.get("description", ""),
            default_value=data.get("defaultValue", data.get("default_value")),
            options=data.get("options"),
        )


@dataclass
class TemplateFile:
    """One file or directory a template places into the target tree."""

    source: str
    target: str  # may embed {{variable}} placeholders
    kind: str = "file"
    variables: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.kind not in FILE_KINDS:
            raise ValueError(f"Template file '{self.source}' has unknown kind: {self.kind}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "type": self.kind,
            "variables": list(self.variables),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateFile":
        return cls(
            source=data.get("source", ""),
            target=data["target"],
            kind=data.get("type", data.get("kind", "file")),
            variables=list(data.get("variables", [])),
        )


@dataclass
class Template:
    """A named bundle of files, declared variables and dependency names."""

    id: str
    name: str
    type: str = "component"
    category: str = "ui"
    description: str = ""
    files: List[TemplateFile] = field(default_factory=list)
    variables: List[TemplateVariable] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    install_scripts: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Template id is required")
        if self.type not in TEMPLATE_TYPES:
            raise ValueError(f"Template '{self.id}' has unknown type: {self.type}")
        if self.category not in TEMPLATE_CATEGORIES:
            raise ValueError(f"Template '{self.id}' has unknown category: {self.category}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "files": [f.to_dict() for f in self.files],
            "variables": [v.to_dict() for v in self.variables],
            "dependencies": list(self.dependencies),
            "installScripts": list(self.install_scripts),
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Template":
        try:
            return cls(
                id=data["id"],
                name=data.get("name", data["id"]),
                type=data.get("type", "component"),
                category=data.get("category", "ui"),
                description=data.get("description", ""),
                files=[TemplateFile.from_dict(f) for f in data.get("files", [])],
                variables=[TemplateVariable.from_dict(v) for v in data.get("variables", [])],
                dependencies=list(data.get("dependencies", [])),
                install_scripts=list(data.get("installScripts", data.get("install_scripts", [])) or []),
                tags=list(data.get("tags", [])),
            )
        except KeyError as exc:
            raise ValueError(f"Template definition is missing field {exc}") from exc


@dataclass
class InjectionResult:
    """Outcome of one inject_template call."""

    succeeded: bool = False
    injected_paths: List[str] = field(default_factory=list)
    installed_dependencies: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "injected_paths": list(self.injected_paths),
            "installed_dependencies": list(self.installed_dependencies),
            "errors": list(self.errors),
        }
