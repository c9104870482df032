"""Step executor: runs a single pipeline step and times it."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from .models import PipelineStep, StepResult

if TYPE_CHECKING:
    from ..local import LocalSession

logger = logging.getLogger(__name__)

# (succeeded, output, error)
CallOutcome = Tuple[bool, str, Optional[str]]


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.monotonic() - started) * 1000))


class StepExecutor:
    """
    Step executor

    Runs one step through the session and converts whatever happens into a
    StepResult. There are no retries; the caller decides what a failure
    means.
    """

    def __init__(self, session: "LocalSession"):
        self.session = session

    def execute(self, step: PipelineStep) -> StepResult:
        logger.info(f"▶️  {step.name}")
        logger.debug(f"   $ {step.command} {' '.join(step.arguments)}")
        started = time.monotonic()

        outcome = self.session.run(step.command, step.arguments, cwd=step.working_directory)
        duration_ms = _elapsed_ms(started)

        # stderr is kept on success too; npm writes its warnings there
        error: Optional[str] = outcome.error or None
        if not outcome.succeeded and not error:
            error = f"Command exited with status {outcome.exit_status}"

        result = StepResult(
            step_name=step.name,
            succeeded=outcome.succeeded,
            output=outcome.output,
            error=error,
            duration_ms=duration_ms,
        )
        self._log_result(result, step.blocking)
        return result

    def execute_call(
        self,
        name: str,
        fn: Callable[[], CallOutcome],
        blocking: bool = False,
    ) -> StepResult:
        """Time an in-process collaborator call as a step.

        An exception raised by `fn` becomes a failed result.
        """
        logger.info(f"▶️  {name}")
        started = time.monotonic()
        try:
            succeeded, output, error = fn()
        except Exception as exc:
            logger.exception(f"   {name} raised")
            succeeded, output, error = False, "", str(exc) or exc.__class__.__name__

        result = StepResult(
            step_name=name,
            succeeded=succeeded,
            output=output,
            error=error,
            duration_ms=_elapsed_ms(started),
        )
        self._log_result(result, blocking)
        return result

    @staticmethod
    def _log_result(result: StepResult, blocking: bool) -> None:
        if result.succeeded:
            logger.info(f"   ✅ {result.step_name} ({result.duration_ms} ms)")
        elif blocking:
            logger.error(f"   ❌ {result.step_name} failed: {result.error}")
        else:
            logger.warning(f"   ⚠️ {result.step_name} failed (continuing): {result.error}")
