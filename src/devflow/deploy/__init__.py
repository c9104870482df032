"""Deployment dispatch and history."""

from .models import (
    DeploymentHistoryEntry,
    DeploymentResult,
    DeploymentTarget,
    DeployOptions,
    NetlifyOutcome,
    PagesOutcome,
    UnsupportedTargetError,
    VercelOutcome,
    parse_target,
)
from .history import HISTORY_CAPACITY, DeploymentHistoryStore
from .manager import DeploymentManager

__all__ = [
    "DeploymentHistoryEntry",
    "DeploymentResult",
    "DeploymentTarget",
    "DeployOptions",
    "NetlifyOutcome",
    "PagesOutcome",
    "UnsupportedTargetError",
    "VercelOutcome",
    "parse_target",
    "HISTORY_CAPACITY",
    "DeploymentHistoryStore",
    "DeploymentManager",
]
