"""Data models for the orchestrator module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..deploy.models import DeploymentResult, DeploymentTarget


class StepPolicy(Enum):
    """Whether a failing step stops the run."""
    BLOCKING = "blocking"
    ADVISORY = "advisory"


class WorkflowState(Enum):
    """Lifecycle of one workflow run."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DEPLOYMENT_FAILED = "deployment_failed"


@dataclass(frozen=True)
class PipelineStep:
    """An external command to run as one pipeline stage."""
    name: str
    command: str
    arguments: Tuple[str, ...] = ()
    working_directory: Optional[str] = None
    policy: StepPolicy = StepPolicy.BLOCKING

    @property
    def blocking(self) -> bool:
        return self.policy is StepPolicy.BLOCKING


@dataclass
class StepResult:
    """Outcome of one executed step."""
    step_name: str
    succeeded: bool
    output: str = ""
    error: Optional[str] = None
    duration_ms: int = 0

    @classmethod
    def failed(cls, step_name: str, error: str, duration_ms: int = 0) -> "StepResult":
        return cls(step_name=step_name, succeeded=False, error=error, duration_ms=duration_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_name": self.step_name,
            "succeeded": self.succeeded,
            "output": self.output,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass
class StageFlags:
    """Which stages of the configurable workflow are enabled."""
    install: bool = True
    lint: bool = True
    test: bool = True
    security: bool = True
    build: bool = True
    deploy: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageFlags":
        defaults = cls()
        return cls(**{
            name: bool(data.get(name, getattr(defaults, name)))
            for name in ("install", "lint", "test", "security", "build", "deploy")
        })


@dataclass
class DeploymentSettings:
    target: DeploymentTarget = DeploymentTarget.NONE
    auto_deploy: bool = False
    site_name: Optional[str] = None
    repo_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentSettings":
        raw_target = data.get("target", "none")
        try:
            target = raw_target if isinstance(raw_target, DeploymentTarget) else DeploymentTarget(str(raw_target).lower())
        except ValueError:
            raise ValueError(f"Unknown deployment target: {raw_target}") from None
        return cls(
            target=target,
            auto_deploy=bool(_pick(data, "autoDeploy", "auto_deploy", default=False)),
            site_name=_pick(data, "siteName", "site_name"),
            repo_url=_pick(data, "repoUrl", "repo_url"),
        )


@dataclass
class FeatureSettings:
    templates_to_inject: List[str] = field(default_factory=list)
    # accepted for compatibility; not sequenced
    scripts_to_run: List[str] = field(default_factory=list)
    template_variables: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureSettings":
        variables = _pick(data, "templateVariables", "template_variables", default={}) or {}
        if not isinstance(variables, dict):
            raise ValueError("features.templateVariables must be an object")
        for name, value in variables.items():
            if value is not None and not isinstance(value, dict):
                raise ValueError(f"features.templateVariables.{name} must be an object")
        return cls(
            templates_to_inject=_string_list(data, "injectTemplates", "templates_to_inject"),
            scripts_to_run=_string_list(data, "runScripts", "scripts_to_run"),
            template_variables={k: dict(v or {}) for k, v in variables.items()},
        )


@dataclass
class WorkflowConfig:
    """Declarative description of one workflow run."""
    steps: StageFlags = field(default_factory=StageFlags)
    deployment: DeploymentSettings = field(default_factory=DeploymentSettings)
    features: FeatureSettings = field(default_factory=FeatureSettings)

    @property
    def wants_deploy(self) -> bool:
        return (
            self.steps.deploy
            and self.deployment.auto_deploy
            and self.deployment.target is not DeploymentTarget.NONE
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowConfig":
        """Build from the JSON document shape (camelCase or snake_case keys).

        Raises:
            ValueError: a section is not an object or the target is unknown.
        """
        if not isinstance(data, dict):
            raise ValueError("Workflow configuration must be an object")

        def section(name: str) -> Dict[str, Any]:
            value = data.get(name) or {}
            if not isinstance(value, dict):
                raise ValueError(f"Workflow section '{name}' must be an object")
            return value

        return cls(
            steps=StageFlags.from_dict(section("steps")),
            deployment=DeploymentSettings.from_dict(section("deployment")),
            features=FeatureSettings.from_dict(section("features")),
        )


@dataclass
class WorkflowResult:
    """Aggregate outcome of a workflow run."""
    succeeded: bool
    state: WorkflowState
    steps: List[StepResult] = field(default_factory=list)
    deployment: Optional[DeploymentResult] = None
    duration_ms: int = 0
    started_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "state": self.state.value,
            "steps": [s.to_dict() for s in self.steps],
            "deployment": self.deployment.to_dict() if self.deployment else None,
            "duration_ms": self.duration_ms,
            "started_at": self.started_at.isoformat(),
        }


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


def _string_list(data: Dict[str, Any], *keys: str) -> List[str]:
    value = _pick(data, *keys, default=[]) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"features.{keys[0]} must be a list of strings")
    return list(value)
