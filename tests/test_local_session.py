import platform
import tempfile
import unittest
from pathlib import Path

from devflow.local.session import LAUNCH_FAILURE, TIMED_OUT, LocalSession


@unittest.skipIf(platform.system() == "Windows", "POSIX shell required")
class LocalSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = LocalSession()

    def test_captures_trimmed_stdout(self) -> None:
        result = self.session.run("echo", ["hello world"])
        self.assertTrue(result.succeeded)
        self.assertEqual(result.exit_status, 0)
        self.assertEqual(result.output, "hello world")
        self.assertEqual(result.error, "")

    def test_nonzero_exit_keeps_stderr(self) -> None:
        result = self.session.run("echo oops >&2; exit 3")
        self.assertFalse(result.succeeded)
        self.assertEqual(result.exit_status, 3)
        self.assertEqual(result.error, "oops")

    def test_arguments_are_quoted(self) -> None:
        result = self.session.run("echo", ["a; echo injected"])
        self.assertEqual(result.output, "a; echo injected")

    def test_missing_working_directory_is_launch_failure(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = Path(tmp) / "does-not-exist"
            result = self.session.run("echo", ["hi"], cwd=str(missing))
        self.assertFalse(result.succeeded)
        self.assertEqual(result.exit_status, LAUNCH_FAILURE)
        self.assertEqual(result.output, "")
        self.assertTrue(result.error)

    def test_runs_in_requested_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            result = self.session.run("pwd", cwd=tmp)
            self.assertEqual(Path(result.output).resolve(), Path(tmp).resolve())

    def test_large_output_on_both_streams_does_not_block(self) -> None:
        script = "for i in $(seq 1 20000); do echo out$i; echo err$i >&2; done"
        result = self.session.run(script)
        self.assertTrue(result.succeeded)
        self.assertEqual(len(result.output.splitlines()), 20000)
        self.assertEqual(len(result.error.splitlines()), 20000)

    def test_stdin_is_delivered_then_closed(self) -> None:
        result = self.session.run("cat", stdin="line1\nline2\n")
        self.assertTrue(result.succeeded)
        self.assertEqual(result.output, "line1\nline2")

    def test_timeout_kills_the_child(self) -> None:
        session = LocalSession(timeout=0.5)
        result = session.run("sleep", ["5"])
        self.assertFalse(result.succeeded)
        self.assertEqual(result.exit_status, TIMED_OUT)
        self.assertIn("TIMEOUT", result.error)


if __name__ == "__main__":
    unittest.main()
