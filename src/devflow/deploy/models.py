"""Data models for deployment dispatch and history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union


class DeploymentTarget(Enum):
    """Hosting back ends a workflow can publish to."""

    NETLIFY = "netlify"
    VERCEL = "vercel"
    GITHUB_PAGES = "github-pages"
    NONE = "none"


class UnsupportedTargetError(ValueError):
    """Raised when a deployment is requested for a target with no flow."""

    def __init__(self, target: Any) -> None:
        self.target = target
        super().__init__(f"Unsupported deployment target: {target}")


def parse_target(value: Union[str, DeploymentTarget]) -> DeploymentTarget:
    if isinstance(value, DeploymentTarget):
        return value
    try:
        return DeploymentTarget(str(value).strip().lower())
    except ValueError:
        raise UnsupportedTargetError(value) from None


@dataclass
class DeployOptions:
    """Per-call knobs for a deployment flow."""

    site_name: Optional[str] = None   # Netlify site / Vercel project name
    repo_url: Optional[str] = None    # GitHub Pages; falls back to the origin remote
    project_id: str = "unknown-project"


@dataclass
class DeploymentResult:
    """Normalized outcome of one deployment attempt."""

    succeeded: bool
    log: str
    url: Optional[str] = None
    deployment_id: Optional[str] = None
    completed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "url": self.url,
            "deployment_id": self.deployment_id,
            "log": self.log,
            "completed_at": self.completed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentResult":
        completed_at = data.get("completed_at")
        return cls(
            succeeded=bool(data.get("succeeded", False)),
            url=data.get("url"),
            deployment_id=data.get("deployment_id"),
            log=data.get("log", ""),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else datetime.now(),
        )


# Each flow reports only the fields it can actually produce.

@dataclass
class NetlifyOutcome:
    succeeded: bool
    log: str
    url: Optional[str] = None
    deployment_id: Optional[str] = None

    def to_result(self) -> DeploymentResult:
        return DeploymentResult(
            succeeded=self.succeeded, log=self.log, url=self.url, deployment_id=self.deployment_id
        )


@dataclass
class VercelOutcome:
    succeeded: bool
    log: str
    url: Optional[str] = None

    def to_result(self) -> DeploymentResult:
        return DeploymentResult(succeeded=self.succeeded, log=self.log, url=self.url)


@dataclass
class PagesOutcome:
    succeeded: bool
    log: str
    url: Optional[str] = None

    def to_result(self) -> DeploymentResult:
        return DeploymentResult(succeeded=self.succeeded, log=self.log, url=self.url)


FlowOutcome = Union[NetlifyOutcome, VercelOutcome, PagesOutcome]


@dataclass
class DeploymentHistoryEntry:
    """One recorded deployment attempt."""

    id: str
    project_id: str
    target: str
    result: DeploymentResult
    recorded_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "target": self.target,
            "result": self.result.to_dict(),
            "recorded_at": self.recorded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentHistoryEntry":
        return cls(
            id=data["id"],
            project_id=data.get("project_id", "unknown-project"),
            target=data["target"],
            result=DeploymentResult.from_dict(data.get("result", {})),
            recorded_at=datetime.fromisoformat(data["recorded_at"]),
        )
