import unittest

from devflow.deploy.models import DeploymentResult
from devflow.local import PrerequisiteReport
from devflow.local.session import CommandResult
from devflow.orchestrator import WorkflowConfig, WorkflowOrchestrator, WorkflowState
from devflow.security import ScanResult, Vulnerability
from devflow.security.scanner import ScanSummary
from devflow.templates import InjectionResult

from helpers import ScriptedSession, fail


class StubTemplates:
    def __init__(self, results=None, error=None) -> None:
        self.results = results or {}
        self.error = error
        self.calls = []

    def inject_template(self, template_id, target_path, variables):
        self.calls.append((template_id, target_path, dict(variables)))
        if self.error:
            raise self.error
        return self.results.get(template_id, InjectionResult(succeeded=True))


class StubScanner:
    def __init__(self, vulnerabilities=None) -> None:
        self.vulnerabilities = vulnerabilities or []

    def scan(self, project_path):
        return ScanResult(self.vulnerabilities, ScanSummary.of(self.vulnerabilities))


class StubDeployer:
    def __init__(self, result=None, error=None) -> None:
        self.result = result or DeploymentResult(succeeded=True, log="ok", url="https://x.netlify.app")
        self.error = error
        self.calls = []

    def deploy(self, target, project_path, options=None):
        self.calls.append((target, project_path, options))
        if self.error:
            raise self.error
        return self.result


class StubChecker:
    def __init__(self, report=None) -> None:
        self.report = report or PrerequisiteReport(nodejs=True, npm=True, git=True)

    def check(self):
        return self.report


def _config(**overrides):
    document = {
        "steps": {"install": True, "lint": True, "test": True, "security": True, "build": True, "deploy": False},
        "deployment": {"target": "none", "autoDeploy": False},
        "features": {"injectTemplates": [], "runScripts": []},
    }
    for section, values in overrides.items():
        document[section].update(values)
    return WorkflowConfig.from_dict(document)


ALL_OFF = {"install": False, "lint": False, "test": False, "security": False, "build": False, "deploy": False}


class OrchestratorTestCase(unittest.TestCase):
    def make(self, session=None, templates=None, scanner=None, deployer=None, checker=None):
        self.session = session or ScriptedSession()
        self.templates = templates or StubTemplates()
        self.deployer = deployer or StubDeployer()
        return WorkflowOrchestrator(
            session=self.session,
            template_manager=self.templates,
            deployment_manager=self.deployer,
            security_scanner=scanner or StubScanner(),
            prerequisite_checker=checker or StubChecker(),
        )


class FixedPipelineTests(OrchestratorTestCase):
    def test_all_steps_succeed_in_order(self) -> None:
        results = self.make().run_fixed_pipeline("/proj")
        self.assertEqual(
            [r.step_name for r in results],
            ["Dependency Installation", "Linting", "Testing", "Security Audit", "Build"],
        )
        self.assertTrue(all(r.succeeded for r in results))
        self.assertTrue(all(r.duration_ms >= 0 for r in results))
        self.assertEqual(
            self.session.lines(),
            ["npm install", "npm run lint", "npm test", "npm audit", "npm run build"],
        )
        self.assertTrue(all(cwd == "/proj" for _, cwd, _ in self.session.calls))

    def test_install_failure_stops_pipeline(self) -> None:
        session = ScriptedSession([("npm install", fail("ERESOLVE"))])
        results = self.make(session=session).run_fixed_pipeline("/proj")
        self.assertEqual(len(results), 1)
        self.assertFalse(results[0].succeeded)
        self.assertEqual(results[0].error, "ERESOLVE")

    def test_audit_failure_is_advisory(self) -> None:
        session = ScriptedSession([("npm audit", fail("3 vulnerabilities"))])
        results = self.make(session=session).run_fixed_pipeline("/proj")
        self.assertEqual(len(results), 5)
        self.assertFalse(results[3].succeeded)
        self.assertTrue(results[4].succeeded)

    def test_successful_step_keeps_stderr(self) -> None:
        session = ScriptedSession([
            ("npm install", lambda line: CommandResult(line, "added 3 packages", "npm WARN deprecated", 0)),
        ])
        results = self.make(session=session).run_fixed_pipeline("/proj")
        self.assertTrue(results[0].succeeded)
        self.assertEqual(results[0].error, "npm WARN deprecated")
        self.assertIsNone(results[1].error)

    def test_lint_failure_stops_pipeline(self) -> None:
        session = ScriptedSession([("npm run lint", fail("lint errors"))])
        results = self.make(session=session).run_fixed_pipeline("/proj")
        self.assertEqual([r.step_name for r in results], ["Dependency Installation", "Linting"])


class WorkflowTests(OrchestratorTestCase):
    def test_all_flags_off_yields_no_steps(self) -> None:
        result = self.make().run_workflow("/proj", _config(steps=ALL_OFF))
        self.assertTrue(result.succeeded)
        self.assertEqual(result.state, WorkflowState.SUCCEEDED)
        self.assertEqual(result.steps, [])
        self.assertIsNone(result.deployment)
        self.assertEqual(self.session.calls, [])

    def test_missing_node_adds_single_synthetic_step(self) -> None:
        checker = StubChecker(PrerequisiteReport(nodejs=False, npm=True, git=True))
        result = self.make(checker=checker).run_workflow("/proj", _config())
        self.assertFalse(result.succeeded)
        self.assertEqual(result.state, WorkflowState.FAILED)
        self.assertEqual(len(result.steps), 1)
        self.assertEqual(result.steps[0].step_name, "Workflow Execution")
        self.assertEqual(result.steps[0].error, "Node.js and npm are required")
        self.assertEqual(self.session.calls, [])

    def test_full_run_order(self) -> None:
        config = _config(
            steps={"deploy": True},
            deployment={"target": "netlify", "autoDeploy": True, "siteName": "demo"},
            features={"injectTemplates": ["auth", "navbar"], "templateVariables": {"auth": {"provider": "github"}}},
        )
        result = self.make().run_workflow("/proj", config)

        self.assertTrue(result.succeeded)
        self.assertEqual(
            [s.step_name for s in result.steps],
            [
                "Dependency Installation",
                "Template Injection: auth",
                "Template Injection: navbar",
                "Linting",
                "Testing",
                "Security Scan",
                "Build",
            ],
        )
        self.assertEqual(self.templates.calls[0], ("auth", "/proj", {"provider": "github"}))
        self.assertEqual(self.templates.calls[1][2], {})
        self.assertEqual(result.deployment.url, "https://x.netlify.app")
        target, _, options = self.deployer.calls[0]
        self.assertEqual(target.value, "netlify")
        self.assertEqual(options.site_name, "demo")
        self.assertEqual(options.project_id, "proj")

    def test_install_failure_blocks(self) -> None:
        session = ScriptedSession([("npm install", fail("ERESOLVE"))])
        result = self.make(session=session).run_workflow("/proj", _config())
        self.assertEqual([s.step_name for s in result.steps], ["Dependency Installation", "Workflow Execution"])
        self.assertEqual(result.steps[-1].error, "Dependency installation failed")
        self.assertEqual(result.state, WorkflowState.FAILED)

    def test_lint_failure_is_advisory(self) -> None:
        session = ScriptedSession([("npm run lint", fail("warnings"))])
        result = self.make(session=session).run_workflow("/proj", _config())
        self.assertTrue(result.succeeded)
        self.assertFalse(result.steps[1].succeeded)

    def test_test_failure_blocks_before_build(self) -> None:
        session = ScriptedSession([("npm test", fail("1 failing"))])
        result = self.make(session=session).run_workflow("/proj", _config())
        self.assertEqual(result.steps[-1].error, "Tests failed")
        self.assertNotIn("npm run build", session.lines())

    def test_build_failure_blocks(self) -> None:
        session = ScriptedSession([("npm run build", fail("compile error"))])
        result = self.make(session=session).run_workflow("/proj", _config())
        self.assertEqual(result.steps[-1].error, "Build failed")
        self.assertEqual(result.steps[-2].step_name, "Build")

    def test_security_findings_are_advisory(self) -> None:
        finding = Vulnerability("critical", "lodash", "4.0.0", "Prototype pollution", "lodash", "No fix available")
        result = self.make(scanner=StubScanner([finding])).run_workflow("/proj", _config())
        self.assertTrue(result.succeeded)
        scan = next(s for s in result.steps if s.step_name == "Security Scan")
        self.assertFalse(scan.succeeded)
        self.assertEqual(scan.output, "Vulnerabilities found: 1 (Critical: 1, High: 0)")
        self.assertEqual(scan.error, "Security vulnerabilities detected")

    def test_template_failure_is_recorded_and_run_continues(self) -> None:
        templates = StubTemplates({
            "auth": InjectionResult(
                succeeded=False,
                injected_paths=["/proj/a.js"],
                errors=["Failed to inject file: b.js", "Failed to inject file: c.js"],
            )
        })
        config = _config(features={"injectTemplates": ["auth"]})
        result = self.make(templates=templates).run_workflow("/proj", config)
        self.assertTrue(result.succeeded)
        step = result.steps[1]
        self.assertFalse(step.succeeded)
        self.assertEqual(step.output, "Injected files: /proj/a.js")
        self.assertEqual(step.error, "Failed to inject file: b.js, Failed to inject file: c.js")

    def test_template_engine_exception_becomes_failed_step(self) -> None:
        templates = StubTemplates(error=RuntimeError("catalog gone"))
        config = _config(features={"injectTemplates": ["auth"]})
        result = self.make(templates=templates).run_workflow("/proj", config)
        self.assertTrue(result.succeeded)
        self.assertEqual(result.steps[1].error, "catalog gone")

    def test_deployment_failure(self) -> None:
        deployer = StubDeployer(DeploymentResult(succeeded=False, log="Failed to install Vercel CLI: EACCES"))
        config = _config(steps={"deploy": True}, deployment={"target": "vercel", "autoDeploy": True})
        result = self.make(deployer=deployer).run_workflow("/proj", config)

        self.assertFalse(result.succeeded)
        self.assertEqual(result.state, WorkflowState.DEPLOYMENT_FAILED)
        self.assertFalse(result.deployment.succeeded)
        self.assertEqual(result.steps[-1].error, "Deployment failed")
        self.assertTrue(all(s.succeeded for s in result.steps[:-1]))

    def test_dispatcher_exception_becomes_failed_deployment(self) -> None:
        deployer = StubDeployer(error=RuntimeError("no network"))
        config = _config(steps={"deploy": True}, deployment={"target": "vercel", "autoDeploy": True})
        result = self.make(deployer=deployer).run_workflow("/proj", config)
        self.assertEqual(result.state, WorkflowState.DEPLOYMENT_FAILED)
        self.assertIn("no network", result.deployment.log)

    def test_deploy_requires_auto_deploy_and_target(self) -> None:
        for deployment in ({"target": "netlify", "autoDeploy": False}, {"target": "none", "autoDeploy": True}):
            config = _config(steps={"deploy": True}, deployment=deployment)
            result = self.make().run_workflow("/proj", config)
            self.assertTrue(result.succeeded)
            self.assertIsNone(result.deployment)
            self.assertEqual(self.deployer.calls, [])

    def test_step_count_is_bounded(self) -> None:
        config = _config(features={"injectTemplates": ["a", "b"]})
        result = self.make().run_workflow("/proj", config)
        enabled_stages = 5
        self.assertLessEqual(len(result.steps), enabled_stages + 2 + 1)


class WorkflowConfigTests(unittest.TestCase):
    def test_snake_case_document(self) -> None:
        config = WorkflowConfig.from_dict({
            "steps": {"deploy": True},
            "deployment": {"target": "github-pages", "auto_deploy": True, "repo_url": "https://github.com/o/r"},
            "features": {"templates_to_inject": ["x"]},
        })
        self.assertTrue(config.wants_deploy)
        self.assertEqual(config.deployment.repo_url, "https://github.com/o/r")
        self.assertEqual(config.features.templates_to_inject, ["x"])
        self.assertTrue(config.steps.install)

    def test_unknown_target_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            WorkflowConfig.from_dict({"deployment": {"target": "heroku"}})

    def test_non_object_section_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            WorkflowConfig.from_dict({"steps": ["install"]})

    def test_template_list_given_as_string_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            WorkflowConfig.from_dict({"features": {"injectTemplates": "auth"}})
        with self.assertRaises(ValueError):
            WorkflowConfig.from_dict({"features": {"runScripts": "lint"}})
        with self.assertRaises(ValueError):
            WorkflowConfig.from_dict({"features": {"injectTemplates": ["auth", 3]}})


if __name__ == "__main__":
    unittest.main()
