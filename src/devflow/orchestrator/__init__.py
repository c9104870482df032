"""Orchestrator module: sequences pipeline steps and reports on them."""

from .models import (
    PipelineStep,
    StageFlags,
    DeploymentSettings,
    FeatureSettings,
    StepPolicy,
    StepResult,
    WorkflowConfig,
    WorkflowResult,
    WorkflowState,
)
from .step_executor import StepExecutor
from .orchestrator import WorkflowOrchestrator
from .report import MalformedResultError, generate_report

__all__ = [
    "PipelineStep",
    "StageFlags",
    "DeploymentSettings",
    "FeatureSettings",
    "StepPolicy",
    "StepResult",
    "WorkflowConfig",
    "WorkflowResult",
    "WorkflowState",
    "StepExecutor",
    "WorkflowOrchestrator",
    "MalformedResultError",
    "generate_report",
]
