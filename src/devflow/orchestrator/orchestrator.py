"""Pipeline sequencer: runs the fixed pipeline and configurable workflows."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from ..deploy.models import DeploymentResult, DeployOptions
from ..local.probe import PrerequisiteChecker, PrerequisiteReport
from .models import (
    PipelineStep, StepPolicy, StepResult, WorkflowConfig, WorkflowResult, WorkflowState
)
from .step_executor import CallOutcome, StepExecutor

if TYPE_CHECKING:
    from ..deploy import DeploymentManager
    from ..local import LocalSession
    from ..security import SecurityScanner
    from ..templates import TemplateManager

logger = logging.getLogger(__name__)

WORKFLOW_STEP_NAME = "Workflow Execution"


class _BlockingFailure(Exception):
    """Stops workflow enumeration; carries the reported cause."""

    def __init__(self, cause: str, state: WorkflowState = WorkflowState.FAILED):
        super().__init__(cause)
        self.state = state


class WorkflowOrchestrator:
    """
    Workflow orchestrator

    Runs pipeline stages one at a time through the StepExecutor and decides
    which failures stop the run. Collaborators are passed in explicitly.
    """

    def __init__(
        self,
        session: "LocalSession",
        template_manager: "TemplateManager",
        deployment_manager: "DeploymentManager",
        security_scanner: "SecurityScanner",
        package_manager: str = "npm",
        prerequisite_checker: Optional[PrerequisiteChecker] = None,
    ):
        self.session = session
        self.template_manager = template_manager
        self.deployment_manager = deployment_manager
        self.security_scanner = security_scanner
        self.package_manager = package_manager
        self.prerequisite_checker = prerequisite_checker or PrerequisiteChecker(session)
        self.step_executor = StepExecutor(session)

    def _step(
        self,
        name: str,
        arguments: List[str],
        project_path: str,
        policy: StepPolicy = StepPolicy.BLOCKING,
    ) -> PipelineStep:
        return PipelineStep(
            name=name,
            command=self.package_manager,
            arguments=tuple(arguments),
            working_directory=project_path,
            policy=policy,
        )

    def fixed_pipeline(self, project_path: str) -> List[PipelineStep]:
        return [
            self._step("Dependency Installation", ["install"], project_path),
            self._step("Linting", ["run", "lint"], project_path),
            self._step("Testing", ["test"], project_path),
            self._step("Security Audit", ["audit"], project_path, StepPolicy.ADVISORY),
            self._step("Build", ["run", "build"], project_path),
        ]

    def run_fixed_pipeline(self, project_path: str) -> List[StepResult]:
        """
        Run install, lint, test, audit and build in order.

        Stops after the first failing step that is not advisory; the failing
        step's result is the last element.
        """
        steps = self.fixed_pipeline(project_path)
        logger.info("=" * 60)
        logger.info(f"🚀 PIPELINE: {project_path}")
        logger.info("=" * 60)

        results: List[StepResult] = []
        for i, step in enumerate(steps, 1):
            logger.info(f"📍 Step {i}/{len(steps)}")
            result = self.step_executor.execute(step)
            results.append(result)
            if not result.succeeded and step.blocking:
                logger.error(f"❌ Pipeline stopped at: {step.name}")
                break
        else:
            logger.info("🎉 Pipeline completed")
        return results

    def check_prerequisites(self) -> PrerequisiteReport:
        report = self.prerequisite_checker.check()
        logger.info(
            "Prerequisites: node=%s npm=%s git=%s", report.nodejs, report.npm, report.git
        )
        return report

    def run_workflow(self, project_path: str, config: WorkflowConfig) -> WorkflowResult:
        """
        Run the stages enabled in `config`.

        Returns:
            WorkflowResult whose steps keep the order they were attempted in.
            A blocking failure appends one trailing "Workflow Execution"
            result naming the cause.
        """
        started_at = datetime.now()
        start = time.monotonic()
        result = WorkflowResult(succeeded=False, state=WorkflowState.RUNNING, started_at=started_at)

        logger.info("=" * 60)
        logger.info(f"🚀 WORKFLOW: {project_path}")
        logger.info("=" * 60)

        try:
            self._run_stages(project_path, config, result)
            result.succeeded = True
            result.state = WorkflowState.SUCCEEDED
            logger.info("🎉 Workflow completed successfully")
        except _BlockingFailure as failure:
            cause = str(failure)
            result.state = failure.state
            result.steps.append(
                StepResult.failed(WORKFLOW_STEP_NAME, cause, self._elapsed(start))
            )
            logger.error(f"❌ Workflow failed: {cause}")

        result.duration_ms = self._elapsed(start)
        return result

    def _run_stages(self, project_path: str, config: WorkflowConfig, result: WorkflowResult) -> None:
        prerequisites = self.check_prerequisites()
        if not prerequisites.ready:
            raise _BlockingFailure("Node.js and npm are required")

        stages = config.steps

        if stages.install:
            install = self.step_executor.execute(
                self._step("Dependency Installation", ["install"], project_path)
            )
            result.steps.append(install)
            if not install.succeeded:
                raise _BlockingFailure("Dependency installation failed")

        for template_id in config.features.templates_to_inject:
            variables = config.features.template_variables.get(template_id, {})
            result.steps.append(self._inject_template(project_path, template_id, variables))

        if stages.lint:
            result.steps.append(self.step_executor.execute(
                self._step("Linting", ["run", "lint"], project_path, StepPolicy.ADVISORY)
            ))

        if stages.test:
            test = self.step_executor.execute(self._step("Testing", ["test"], project_path))
            result.steps.append(test)
            if not test.succeeded:
                raise _BlockingFailure("Tests failed")

        if stages.security:
            result.steps.append(self._security_scan(project_path))

        if stages.build:
            build = self.step_executor.execute(self._step("Build", ["run", "build"], project_path))
            result.steps.append(build)
            if not build.succeeded:
                raise _BlockingFailure("Build failed")

        if config.wants_deploy:
            result.deployment = self._deploy(project_path, config)
            if not result.deployment.succeeded:
                raise _BlockingFailure("Deployment failed", WorkflowState.DEPLOYMENT_FAILED)

    def _inject_template(self, project_path: str, template_id: str, variables: dict) -> StepResult:
        def call() -> CallOutcome:
            injection = self.template_manager.inject_template(template_id, project_path, variables)
            return (
                injection.succeeded,
                f"Injected files: {', '.join(injection.injected_paths)}",
                ", ".join(injection.errors),
            )

        return self.step_executor.execute_call(f"Template Injection: {template_id}", call)

    def _security_scan(self, project_path: str) -> StepResult:
        def call() -> CallOutcome:
            scan = self.security_scanner.scan(project_path)
            summary = scan.summary
            return (
                scan.passed,
                f"Vulnerabilities found: {summary.total} (Critical: {summary.critical}, High: {summary.high})",
                "" if scan.passed else "Security vulnerabilities detected",
            )

        return self.step_executor.execute_call("Security Scan", call)

    def _deploy(self, project_path: str, config: WorkflowConfig) -> DeploymentResult:
        settings = config.deployment
        options = DeployOptions(
            site_name=settings.site_name,
            repo_url=settings.repo_url,
            project_id=Path(project_path).resolve().name or "unknown-project",
        )
        try:
            return self.deployment_manager.deploy(settings.target, project_path, options)
        except Exception as exc:
            logger.exception("Deployment dispatcher raised")
            return DeploymentResult(succeeded=False, log=f"Deployment error: {exc}")

    @staticmethod
    def _elapsed(start: float) -> int:
        return max(0, int((time.monotonic() - start) * 1000))
