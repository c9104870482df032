"""High-level workflow facade."""

from __future__ import annotations

import dataclasses
import logging
import threading
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from .config import AppConfig, FeaturesConfig
from .deploy import DeploymentHistoryEntry, DeploymentHistoryStore, DeploymentManager, DeploymentResult, DeployOptions
from .deploy.models import DeploymentTarget
from .gitops import GitRepositoryManager
from .knowledge import KnowledgeStore
from .local import LocalSession, PrerequisiteChecker, PrerequisiteReport
from .orchestrator import StepResult, WorkflowConfig, WorkflowOrchestrator, WorkflowResult, generate_report
from .paths import HISTORY_FILE_NAME, KNOWLEDGE_FILE_NAME
from .security import ScanResult, SecurityScanner
from .templates import InjectionResult, Template, TemplateManager

logger = logging.getLogger(__name__)


class DevWorkflow:
    """Wires the collaborators together and exposes the outward operations.

    Only one pipeline, workflow or deployment runs at a time per instance.
    The application feature toggles can switch off the security scan and
    automatic deployment of every workflow this instance runs.
    """

    def __init__(
        self,
        session: LocalSession,
        template_manager: TemplateManager,
        deployment_manager: DeploymentManager,
        security_scanner: SecurityScanner,
        package_manager: str = "npm",
        prerequisite_checker: Optional[PrerequisiteChecker] = None,
        knowledge: Optional[KnowledgeStore] = None,
        features: Optional[FeaturesConfig] = None,
    ) -> None:
        self.session = session
        self.template_manager = template_manager
        self.deployment_manager = deployment_manager
        self.security_scanner = security_scanner
        self.knowledge = knowledge
        self.features = features or FeaturesConfig()
        self.orchestrator = WorkflowOrchestrator(
            session=session,
            template_manager=template_manager,
            deployment_manager=deployment_manager,
            security_scanner=security_scanner,
            package_manager=package_manager,
            prerequisite_checker=prerequisite_checker,
        )
        self._run_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: AppConfig) -> "DevWorkflow":
        pipeline = config.pipeline
        session = LocalSession(timeout=pipeline.command_timeout, stream_output=pipeline.stream_output)

        data_dir = Path(config.paths.data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)
        history = DeploymentHistoryStore(data_dir / HISTORY_FILE_NAME)
        logger.debug("Using templates from %s, history in %s", config.paths.templates_dir, data_dir)

        return cls(
            session=session,
            template_manager=TemplateManager(config.paths.templates_dir, session),
            deployment_manager=DeploymentManager(
                session,
                history,
                GitRepositoryManager(username=config.github.username),
                package_manager=pipeline.package_manager,
            ),
            security_scanner=SecurityScanner(session, package_manager=pipeline.package_manager),
            package_manager=pipeline.package_manager,
            knowledge=KnowledgeStore(data_dir / KNOWLEDGE_FILE_NAME),
            features=config.features,
        )

    def run_fixed_pipeline(self, project_path: str) -> List[StepResult]:
        with self._run_lock:
            return self.orchestrator.run_fixed_pipeline(project_path)

    def run_workflow(self, project_path: str, config: Union[WorkflowConfig, Mapping[str, Any]]) -> WorkflowResult:
        if not isinstance(config, WorkflowConfig):
            config = WorkflowConfig.from_dict(dict(config))
        config = self._apply_features(config)
        with self._run_lock:
            result = self.orchestrator.run_workflow(project_path, config)
        self._remember(project_path, result)
        return result

    def _apply_features(self, config: WorkflowConfig) -> WorkflowConfig:
        steps, deployment = config.steps, config.deployment
        if not self.features.security_scans and steps.security:
            logger.info("Security scans are disabled in the configuration")
            steps = dataclasses.replace(steps, security=False)
        if not self.features.auto_deploy and deployment.auto_deploy:
            logger.info("Automatic deployment is disabled in the configuration")
            deployment = dataclasses.replace(deployment, auto_deploy=False)
        return dataclasses.replace(config, steps=steps, deployment=deployment)

    def _remember(self, project_path: str, result: WorkflowResult) -> None:
        if self.knowledge is None:
            return
        if result.succeeded:
            self.knowledge.learn_from_project(project_path, "workflow")
            return
        failed = next((s for s in reversed(result.steps) if not s.succeeded), None)
        message = failed.error if failed and failed.error else result.state.value
        self.knowledge.learn_from_error(
            message,
            {"project": str(project_path), "state": result.state.value, "step": failed.step_name if failed else None},
        )

    def check_prerequisites(self) -> PrerequisiteReport:
        return self.orchestrator.check_prerequisites()

    def list_templates(self, category: Optional[str] = None) -> List[Template]:
        if category:
            return self.template_manager.get_templates_by_category(category)
        return self.template_manager.list_templates()

    def inject_template(
        self,
        template_id: str,
        project_path: str,
        variables: Optional[Mapping[str, Any]] = None,
    ) -> InjectionResult:
        return self.template_manager.inject_template(template_id, project_path, variables or {})

    def deploy(
        self,
        target: Union[str, DeploymentTarget],
        project_path: str,
        options: Optional[DeployOptions] = None,
    ) -> DeploymentResult:
        with self._run_lock:
            return self.deployment_manager.deploy(target, project_path, options)

    def get_deployment_history(self, project_id: Optional[str] = None) -> List[DeploymentHistoryEntry]:
        return self.deployment_manager.get_deployment_history(project_id)

    def scan(self, project_path: str) -> ScanResult:
        return self.security_scanner.scan(project_path)

    @staticmethod
    def generate_report(result: Union[WorkflowResult, DeploymentResult]) -> str:
        return generate_report(result)
