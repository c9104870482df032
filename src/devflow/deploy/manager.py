"""Deployment dispatcher: one flow per hosting target."""

from __future__ import annotations

import json
import logging
import re
import uuid
from pathlib import Path
from typing import List, Optional, Union

from ..gitops import GitCommandError, GitRepositoryManager, parse_repo_slug
from ..local.session import LocalSession
from .history import DeploymentHistoryStore
from .models import (
    DeploymentHistoryEntry,
    DeploymentResult,
    DeploymentTarget,
    DeployOptions,
    FlowOutcome,
    NetlifyOutcome,
    PagesOutcome,
    UnsupportedTargetError,
    VercelOutcome,
    parse_target,
)

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+")

# tool -> (display name, npm package providing it)
CLI_PACKAGES = {
    "netlify": ("Netlify", "netlify-cli"),
    "vercel": ("Vercel", "vercel"),
}


def extract_first_url(text: str) -> Optional[str]:
    match = URL_PATTERN.search(text or "")
    return match.group(0) if match else None


class DeploymentManager:
    """Publishes a built project and records every attempt in the history."""

    def __init__(
        self,
        session: LocalSession,
        history: DeploymentHistoryStore,
        git: Optional[GitRepositoryManager] = None,
        package_manager: str = "npm",
    ) -> None:
        self.session = session
        self.history = history
        self.git = git or GitRepositoryManager()
        self.package_manager = package_manager

    def deploy(
        self,
        target: Union[str, DeploymentTarget],
        project_path: str,
        options: Optional[DeployOptions] = None,
    ) -> DeploymentResult:
        """
        Run the flow for `target` and record the attempt.

        Raises:
            UnsupportedTargetError: `target` is unknown or ``none``.
        """
        resolved = parse_target(target)
        flows = {
            DeploymentTarget.NETLIFY: self._deploy_netlify,
            DeploymentTarget.VERCEL: self._deploy_vercel,
            DeploymentTarget.GITHUB_PAGES: self._deploy_github_pages,
        }
        flow = flows.get(resolved)
        if flow is None:
            raise UnsupportedTargetError(resolved.value)

        options = options or DeployOptions()
        log: List[str] = []

        logger.info("🚀 Deploying %s to %s", project_path, resolved.value)
        try:
            outcome: FlowOutcome = flow(project_path, options, log)
            result = outcome.to_result()
        except Exception as exc:
            logger.exception("Deployment to %s raised", resolved.value)
            log.append(f"Deployment error: {exc}")
            result = DeploymentResult(succeeded=False, log="\n".join(log))

        if result.succeeded:
            logger.info("✅ Deployment succeeded%s", f": {result.url}" if result.url else "")
        else:
            logger.error("❌ Deployment to %s failed", resolved.value)

        self.history.record(
            DeploymentHistoryEntry(
                id=uuid.uuid4().hex[:12],
                project_id=options.project_id,
                target=resolved.value,
                result=result,
            )
        )
        return result

    def get_deployment_history(self, project_id: Optional[str] = None) -> List[DeploymentHistoryEntry]:
        return self.history.query(project_id)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def _ensure_cli(self, tool: str, project_path: str, log: List[str]) -> Optional[str]:
        """Make `tool` available, installing it globally once if absent.

        Returns an error message when the install fails, else None.
        """
        display, package = CLI_PACKAGES[tool]
        if self.session.run(tool, ["--version"], cwd=project_path).succeeded:
            return None

        log.append(f"{display} CLI not found. Attempting to install...")
        logger.info("   Installing %s globally", package)
        install = self.session.run(self.package_manager, ["install", "-g", package], cwd=project_path)
        if not install.succeeded:
            message = f"Failed to install {display} CLI: {install.error or install.output}"
            log.append(message)
            return message
        log.append(f"{display} CLI installed")
        return None

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def _deploy_netlify(self, project_path: str, options: DeployOptions, log: List[str]) -> NetlifyOutcome:
        log.append(f"Starting Netlify deployment for: {project_path}")

        if self._ensure_cli("netlify", project_path, log):
            return NetlifyOutcome(succeeded=False, log="\n".join(log))

        init = self.session.run("netlify", ["init", "--force"], cwd=project_path, stdin="\n\n\n")
        if not init.succeeded:
            log.append(f"Netlify init failed: {init.error}")

        args = ["deploy", "--prod", "--json"]
        if options.site_name:
            args.extend(["--site", options.site_name])
        publish = self.session.run("netlify", args, cwd=project_path)
        if publish.output:
            log.append(publish.output)
        if not publish.succeeded and publish.error:
            log.append(publish.error)

        url: Optional[str] = None
        deployment_id: Optional[str] = None
        if publish.succeeded:
            data = self._parse_json_object(publish.output)
            if data is not None:
                url = data.get("deploy_url") or data.get("url")
                deployment_id = data.get("deploy_id")
            if not url:
                url = extract_first_url(publish.output)

        return NetlifyOutcome(
            succeeded=publish.succeeded,
            log="\n".join(log),
            url=url,
            deployment_id=deployment_id,
        )

    def _deploy_vercel(self, project_path: str, options: DeployOptions, log: List[str]) -> VercelOutcome:
        log.append(f"Starting Vercel deployment for: {project_path}")

        if self._ensure_cli("vercel", project_path, log):
            return VercelOutcome(succeeded=False, log="\n".join(log))

        args = ["--prod", "--yes"]
        if options.site_name:
            args.extend(["--name", options.site_name])
        publish = self.session.run("vercel", args, cwd=project_path)
        if publish.output:
            log.append(publish.output)
        if not publish.succeeded and publish.error:
            log.append(publish.error)

        return VercelOutcome(
            succeeded=publish.succeeded,
            log="\n".join(log),
            url=extract_first_url(publish.output),
        )

    def _deploy_github_pages(self, project_path: str, options: DeployOptions, log: List[str]) -> PagesOutcome:
        log.append(f"Starting GitHub Pages deployment for: {project_path}")

        build = self.session.run(self.package_manager, ["run", "build"], cwd=project_path)
        if not build.succeeded:
            log.append(f"Build failed: {build.error}")
            return PagesOutcome(succeeded=False, log="\n".join(log))
        log.append("Build completed successfully")

        repo_url = options.repo_url
        if not repo_url:
            try:
                repo_url = self.git.get_remote_url(Path(project_path))
            except GitCommandError as exc:
                log.append(f"Could not determine repository URL: {exc}")
                return PagesOutcome(succeeded=False, log="\n".join(log))

        try:
            owner, repo = parse_repo_slug(repo_url)
        except ValueError as exc:
            log.append(str(exc))
            return PagesOutcome(succeeded=False, log="\n".join(log))

        return PagesOutcome(
            succeeded=True,
            log="\n".join(log),
            url=f"https://{owner}.github.io/{repo}",
        )

    @staticmethod
    def _parse_json_object(text: str) -> Optional[dict]:
        """Parse `text` as a JSON object, tolerating log lines around it."""
        candidates = [text]
        start, end = text.find("{"), text.rfind("}")
        if 0 <= start < end:
            candidates.append(text[start:end + 1])
        for candidate in candidates:
            try:
                data = json.loads(candidate)
            except ValueError:
                continue
            if isinstance(data, dict):
                return data
        return None
