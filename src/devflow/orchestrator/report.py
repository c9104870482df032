"""Markdown reports for workflow and deployment results."""

from __future__ import annotations

from typing import List, Union

from ..deploy.models import DeploymentResult
from .models import StepResult, WorkflowResult


class MalformedResultError(ValueError):
    """A result is missing a field the report needs."""


def _require(obj: object, *names: str) -> None:
    for name in names:
        if getattr(obj, name, None) is None:
            raise MalformedResultError(f"{type(obj).__name__} is missing required field '{name}'")


def _status(succeeded: bool) -> str:
    return "✅ SUCCESS" if succeeded else "❌ FAILED"


def _deployment_lines(deployment: DeploymentResult) -> List[str]:
    _require(deployment, "succeeded", "log")
    lines = [f"- Status: {_status(deployment.succeeded)}"]
    if deployment.url:
        lines.append(f"- URL: {deployment.url}")
    if deployment.deployment_id:
        lines.append(f"- Deployment ID: {deployment.deployment_id}")
    lines.append(f"- Log: {deployment.log}")
    return lines


def _step_lines(step: StepResult) -> List[str]:
    _require(step, "step_name", "succeeded", "duration_ms")
    lines = [
        f"### {step.step_name}",
        f"- Status: {'✅' if step.succeeded else '❌'}",
        f"- Duration: {step.duration_ms}ms",
    ]
    if step.output:
        lines.append(f"- Output: {step.output}")
    if step.error:
        lines.append(f"- Error: {step.error}")
    lines.append("")
    return lines


def generate_report(result: Union[WorkflowResult, DeploymentResult]) -> str:
    """
    Render `result` as Markdown.

    Raises:
        MalformedResultError: a required field is absent.
        TypeError: `result` is neither a WorkflowResult nor a DeploymentResult.
    """
    if isinstance(result, DeploymentResult):
        lines = ["# Deployment Report", ""]
        lines.extend(_deployment_lines(result))
        return "\n".join(lines) + "\n"

    if not isinstance(result, WorkflowResult):
        raise TypeError(f"Cannot generate a report for {type(result).__name__}")

    _require(result, "succeeded", "steps", "duration_ms")
    completed = sum(1 for step in result.steps if step.succeeded)

    lines = [
        "# Workflow Execution Report",
        "",
        "## Summary",
        f"- Status: {_status(result.succeeded)}",
        f"- Duration: {result.duration_ms / 1000:.2f} seconds",
        f"- Steps Completed: {completed}/{len(result.steps)}",
        "",
        "## Steps",
        "",
    ]
    for step in result.steps:
        lines.extend(_step_lines(step))

    if result.deployment is not None:
        lines.extend(["## Deployment", ""])
        lines.extend(_deployment_lines(result.deployment))

    return "\n".join(lines) + "\n"
