import json
import tempfile
import unittest
from pathlib import Path

from devflow.deploy import (
    DeploymentHistoryStore,
    DeploymentManager,
    DeployOptions,
    UnsupportedTargetError,
)
from devflow.gitops import GitCommandError, GitRepositoryManager

from helpers import ScriptedSession, fail, ok


class StubGit(GitRepositoryManager):
    def __init__(self, remote=None) -> None:
        super().__init__()
        self.remote = remote

    def get_remote_url(self, project_path, remote="origin"):  # type: ignore[override]
        if self.remote is None:
            raise GitCommandError(["git", "remote", "get-url", remote], 2, "No such remote")
        return self.remote


class DeploymentManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.history = DeploymentHistoryStore(self.root / "history.json")

    def _manager(self, session, git=None) -> DeploymentManager:
        return DeploymentManager(session, self.history, git or StubGit())

    def test_unknown_target_raises_and_records_nothing(self) -> None:
        manager = self._manager(ScriptedSession())
        with self.assertRaises(UnsupportedTargetError):
            manager.deploy("heroku", str(self.root))
        with self.assertRaises(UnsupportedTargetError):
            manager.deploy("none", str(self.root))
        self.assertEqual(manager.get_deployment_history(), [])

    def test_netlify_parses_json_output(self) -> None:
        payload = json.dumps({"deploy_url": "https://abc.netlify.app", "deploy_id": "d-1"})
        session = ScriptedSession([("netlify deploy", ok(payload))])
        manager = self._manager(session)

        result = manager.deploy("netlify", str(self.root), DeployOptions(site_name="demo", project_id="p1"))

        self.assertTrue(result.succeeded)
        self.assertEqual(result.url, "https://abc.netlify.app")
        self.assertEqual(result.deployment_id, "d-1")
        self.assertIn("netlify deploy --prod --json --site demo", session.lines())
        init_calls = [c for c in session.calls if c[0].startswith("netlify init")]
        self.assertEqual(init_calls[0][2], "\n\n\n")
        history = manager.get_deployment_history("p1")
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].target, "netlify")

    def test_netlify_falls_back_to_first_url(self) -> None:
        session = ScriptedSession([("netlify deploy", ok("Website URL: https://site.netlify.app done"))])
        result = self._manager(session).deploy("netlify", str(self.root))
        self.assertEqual(result.url, "https://site.netlify.app")

    def test_netlify_install_failure_records_one_failed_entry(self) -> None:
        session = ScriptedSession([
            ("netlify --version", fail("not found", 127)),
            ("npm install -g netlify-cli", fail("EACCES")),
        ])
        manager = self._manager(session)

        result = manager.deploy("netlify", str(self.root))

        self.assertFalse(result.succeeded)
        self.assertIsNone(result.url)
        self.assertIn("Netlify CLI not found. Attempting to install...", result.log)
        self.assertIn("Failed to install Netlify CLI: EACCES", result.log)
        self.assertEqual(session.lines().count("npm install -g netlify-cli"), 1)
        self.assertFalse(any(line.startswith("netlify deploy") for line in session.lines()))
        history = manager.get_deployment_history()
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].project_id, "unknown-project")
        self.assertFalse(history[0].result.succeeded)

    def test_vercel_installs_cli_then_deploys(self) -> None:
        session = ScriptedSession([
            ("vercel --version", fail("not found", 127)),
            ("vercel --prod", ok("Production: https://demo.vercel.app [2s]")),
        ])
        result = self._manager(session).deploy("vercel", str(self.root), DeployOptions(site_name="demo"))
        self.assertTrue(result.succeeded)
        self.assertEqual(result.url, "https://demo.vercel.app")
        self.assertIn("npm install -g vercel", session.lines())
        self.assertIn("vercel --prod --yes --name demo", session.lines())

    def test_vercel_failure_has_no_url(self) -> None:
        session = ScriptedSession([("vercel --prod", fail("Error: not authorized"))])
        result = self._manager(session).deploy("vercel", str(self.root))
        self.assertFalse(result.succeeded)
        self.assertIn("not authorized", result.log)

    def test_github_pages_url_from_options(self) -> None:
        session = ScriptedSession()
        result = self._manager(session).deploy(
            "github-pages", str(self.root), DeployOptions(repo_url="https://github.com/octo/site.git")
        )
        self.assertTrue(result.succeeded)
        self.assertEqual(result.url, "https://octo.github.io/site")
        self.assertEqual(session.lines(), ["npm run build"])

    def test_github_pages_url_from_ssh_origin(self) -> None:
        manager = self._manager(ScriptedSession(), StubGit("git@github.com:octo/blog.git"))
        result = manager.deploy("github-pages", str(self.root))
        self.assertEqual(result.url, "https://octo.github.io/blog")

    def test_github_pages_build_failure(self) -> None:
        session = ScriptedSession([("npm run build", fail("compile error"))])
        result = self._manager(session).deploy("github-pages", str(self.root))
        self.assertFalse(result.succeeded)
        self.assertIsNone(result.url)
        self.assertIn("Build failed: compile error", result.log)
        self.assertEqual(len(self.history), 1)

    def test_github_pages_without_remote_fails(self) -> None:
        result = self._manager(ScriptedSession(), StubGit(None)).deploy("github-pages", str(self.root))
        self.assertFalse(result.succeeded)
        self.assertIn("Could not determine repository URL", result.log)

    def test_flow_exception_becomes_failed_result(self) -> None:
        def explode(line):
            raise RuntimeError("session exploded")

        session = ScriptedSession([("npm run build", explode)])
        result = self._manager(session).deploy("github-pages", str(self.root))
        self.assertFalse(result.succeeded)
        self.assertIn("Deployment error: session exploded", result.log)
        self.assertEqual(len(self.history), 1)


if __name__ == "__main__":
    unittest.main()
