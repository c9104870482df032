import unittest

from devflow.deploy.models import DeploymentResult
from devflow.orchestrator import MalformedResultError, StepResult, WorkflowResult, WorkflowState, generate_report


class ReportTests(unittest.TestCase):
    def test_workflow_report(self) -> None:
        result = WorkflowResult(
            succeeded=False,
            state=WorkflowState.DEPLOYMENT_FAILED,
            steps=[
                StepResult("Dependency Installation", True, output="added 10 packages", duration_ms=1200),
                StepResult("Workflow Execution", False, error="Deployment failed", duration_ms=3400),
            ],
            deployment=DeploymentResult(succeeded=False, log="Failed to install Netlify CLI: EACCES"),
            duration_ms=3456,
        )
        report = generate_report(result)

        self.assertIn("# Workflow Execution Report", report)
        self.assertIn("- Status: ❌ FAILED", report)
        self.assertIn("- Duration: 3.46 seconds", report)
        self.assertIn("- Steps Completed: 1/2", report)
        self.assertIn("### Dependency Installation\n- Status: ✅\n- Duration: 1200ms\n- Output: added 10 packages", report)
        self.assertIn("- Error: Deployment failed", report)
        self.assertIn("## Deployment", report)
        self.assertIn("- Log: Failed to install Netlify CLI: EACCES", report)

    def test_empty_successful_workflow(self) -> None:
        report = generate_report(WorkflowResult(succeeded=True, state=WorkflowState.SUCCEEDED))
        self.assertIn("- Status: ✅ SUCCESS", report)
        self.assertIn("- Steps Completed: 0/0", report)
        self.assertNotIn("## Deployment", report)

    def test_deployment_report(self) -> None:
        report = generate_report(DeploymentResult(succeeded=True, log="done", url="https://a.vercel.app"))
        self.assertIn("# Deployment Report", report)
        self.assertIn("- URL: https://a.vercel.app", report)

    def test_missing_field_is_malformed(self) -> None:
        result = WorkflowResult(succeeded=True, state=WorkflowState.SUCCEEDED)
        result.steps = None  # type: ignore[assignment]
        with self.assertRaises(MalformedResultError):
            generate_report(result)

        step = StepResult("Build", True)
        step.duration_ms = None  # type: ignore[assignment]
        with self.assertRaises(MalformedResultError):
            generate_report(WorkflowResult(succeeded=True, state=WorkflowState.SUCCEEDED, steps=[step]))

    def test_unsupported_type(self) -> None:
        with self.assertRaises(TypeError):
            generate_report({"succeeded": True})  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
