import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from devflow.cli import EXIT_CONFIG_ERROR, EXIT_FAILED, EXIT_OK, run_cli
from devflow.config import FeaturesConfig
from devflow.deploy import DeploymentHistoryStore, DeploymentManager
from devflow.knowledge import KnowledgeStore
from devflow.security import SecurityScanner
from devflow.templates import TemplateManager
from devflow.workflow import DevWorkflow

from helpers import ScriptedSession, fail


class CLITests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.project = self.root / "project"
        self.project.mkdir()
        self.config_path = self.root / "config.json"
        self.session = ScriptedSession()

    def _workflow(self, features=None) -> DevWorkflow:
        history = DeploymentHistoryStore(self.root / "history.json")
        return DevWorkflow(
            session=self.session,
            template_manager=TemplateManager(self.root / "templates", self.session),
            deployment_manager=DeploymentManager(self.session, history),
            security_scanner=SecurityScanner(self.session),
            knowledge=KnowledgeStore(self.root / "knowledge.json"),
            features=features,
        )

    def _run(self, *argv: str):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = run_cli(["--config", str(self.config_path), *argv], workflow=self._workflow())
        return code, buffer.getvalue()

    def test_pipeline_success(self) -> None:
        code, out = self._run("pipeline", str(self.project))
        self.assertEqual(code, EXIT_OK)
        self.assertIn("✅ Build", out)

    def test_pipeline_failure_exit_code(self) -> None:
        self.session.on("npm test", fail("1 failing"))
        code, out = self._run("pipeline", str(self.project), "--json")
        self.assertEqual(code, EXIT_FAILED)
        steps = json.loads(out)
        self.assertEqual(steps[-1]["step_name"], "Testing")

    def test_workflow_writes_report(self) -> None:
        workflow_file = self.root / "workflow.json"
        workflow_file.write_text(json.dumps({"steps": {"security": False}}), encoding="utf-8")
        report = self.root / "report.md"
        code, _ = self._run("workflow", str(self.project), "-w", str(workflow_file), "--report", str(report))
        self.assertEqual(code, EXIT_OK)
        self.assertIn("# Workflow Execution Report", report.read_text(encoding="utf-8"))

    def test_invalid_workflow_file_is_config_error(self) -> None:
        workflow_file = self.root / "workflow.json"
        workflow_file.write_text(json.dumps({"deployment": {"target": "heroku"}}), encoding="utf-8")
        code, out = self._run("workflow", str(self.project), "-w", str(workflow_file))
        self.assertEqual(code, EXIT_CONFIG_ERROR)
        self.assertIn("Invalid workflow configuration", out)

    def test_deploy_then_history(self) -> None:
        code, _ = self._run(
            "deploy", "github-pages", str(self.project),
            "--repo-url", "https://github.com/octo/site", "--project-id", "site",
        )
        self.assertEqual(code, EXIT_OK)
        code, out = self._run("history", "--project-id", "site")
        self.assertEqual(code, EXIT_OK)
        self.assertIn("https://octo.github.io/site", out)

    def test_inject_rejects_malformed_variable(self) -> None:
        code, _ = self._run("inject", "button", str(self.project), "--var", "oops")
        self.assertEqual(code, EXIT_CONFIG_ERROR)

    def test_inject_unknown_template_fails(self) -> None:
        code, out = self._run("inject", "button", str(self.project), "--var", "name=Cta")
        self.assertEqual(code, EXIT_FAILED)
        self.assertIn("Template not found: button", out)

    def test_prereqs(self) -> None:
        self.session.on("git", fail("missing", 127))
        code, out = self._run("prereqs")
        self.assertEqual(code, EXIT_OK)
        self.assertIn("❌ git", out)

    def test_knowledge_learn_search_and_stats(self) -> None:
        (self.project / "package.json").write_text(json.dumps({"name": "shop"}), encoding="utf-8")
        code, out = self._run("knowledge", "--learn", str(self.project), "--project-type", "vue")
        self.assertEqual(code, EXIT_OK)
        self.assertIn("Recorded", out)

        code, out = self._run("knowledge", "--search", "shop", "--type", "project")
        self.assertEqual(code, EXIT_OK)
        self.assertIn("Project Analysis: shop", out)

        code, out = self._run("knowledge")
        self.assertIn("1 items", out)
        self.assertIn("project: 1", out)

    def test_knowledge_learn_without_manifest_fails(self) -> None:
        code, _ = self._run("knowledge", "--learn", str(self.project))
        self.assertEqual(code, EXIT_FAILED)

    def test_publish_outside_repository_fails(self) -> None:
        code, out = self._run("publish", str(self.project), "--no-push")
        self.assertEqual(code, EXIT_FAILED)
        self.assertIn("❌", out)

    def test_config_set_and_show(self) -> None:
        code, _ = self._run("config", "--set", "pipeline.package_manager=pnpm", "--set", "github.token=abc")
        self.assertEqual(code, EXIT_OK)
        saved = json.loads(self.config_path.read_text(encoding="utf-8"))
        self.assertEqual(saved["pipeline"]["package_manager"], "pnpm")
        code, out = self._run("config")
        self.assertEqual(code, EXIT_OK)
        self.assertNotIn('"abc"', out)


class DevWorkflowFeatureTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.session = ScriptedSession()
        self.knowledge = KnowledgeStore(self.root / "knowledge.json")

    def _workflow(self, features: FeaturesConfig) -> DevWorkflow:
        history = DeploymentHistoryStore(self.root / "history.json")
        self.history = history
        return DevWorkflow(
            session=self.session,
            template_manager=TemplateManager(self.root / "templates", self.session),
            deployment_manager=DeploymentManager(self.session, history),
            security_scanner=SecurityScanner(self.session),
            knowledge=self.knowledge,
            features=features,
        )

    def test_disabled_toggles_skip_scan_and_deploy(self) -> None:
        workflow = self._workflow(FeaturesConfig(auto_deploy=False, security_scans=False))
        result = workflow.run_workflow(str(self.root), {
            "steps": {"deploy": True},
            "deployment": {"target": "github-pages", "autoDeploy": True, "repoUrl": "https://github.com/o/r"},
        })
        self.assertTrue(result.succeeded)
        self.assertNotIn("Security Scan", [s.step_name for s in result.steps])
        self.assertIsNone(result.deployment)
        self.assertEqual(len(self.history), 0)

    def test_enabled_toggles_keep_scan_and_deploy(self) -> None:
        workflow = self._workflow(FeaturesConfig())
        result = workflow.run_workflow(str(self.root), {
            "steps": {"deploy": True},
            "deployment": {"target": "github-pages", "autoDeploy": True, "repoUrl": "https://github.com/o/r"},
        })
        self.assertIn("Security Scan", [s.step_name for s in result.steps])
        self.assertIsNotNone(result.deployment)

    def test_failed_workflow_is_remembered(self) -> None:
        self.session.on("npm install", fail("ERESOLVE"))
        result = self._workflow(FeaturesConfig()).run_workflow(str(self.root), {})
        self.assertFalse(result.succeeded)
        stats = self.knowledge.get_stats()
        self.assertEqual(stats["by_type"], {"error": 1})
        self.assertEqual(self.knowledge.search("Dependency installation failed")[0].item.type, "error")


if __name__ == "__main__":
    unittest.main()
