"""Stub collaborators shared by the test modules."""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Sequence, Tuple, Union

from devflow.local.session import CommandResult, LocalSession

Response = Union[CommandResult, Callable[[str], CommandResult]]


def ok(output: str = "") -> Callable[[str], CommandResult]:
    return lambda line: CommandResult(command=line, output=output, error="", exit_status=0)


def fail(error: str = "boom", status: int = 1, output: str = "") -> Callable[[str], CommandResult]:
    return lambda line: CommandResult(command=line, output=output, error=error, exit_status=status)


class ScriptedSession(LocalSession):
    """Answers commands by prefix instead of spawning processes.

    Unmatched commands succeed with empty output.
    """

    def __init__(self, rules: Optional[Sequence[Tuple[str, Response]]] = None) -> None:
        super().__init__(working_dir=".")
        self.rules: List[Tuple[str, Response]] = list(rules or [])
        self.calls: List[Tuple[str, Optional[str], Optional[str]]] = []
        self._calls_lock = threading.Lock()

    def on(self, prefix: str, response: Response) -> "ScriptedSession":
        self.rules.insert(0, (prefix, response))
        return self

    def run(self, command, arguments=(), *, cwd=None, stdin=None):  # type: ignore[override]
        line = " ".join([command, *[str(a) for a in arguments]])
        with self._calls_lock:
            self.calls.append((line, cwd, stdin))
        for prefix, response in self.rules:
            if line.startswith(prefix):
                if isinstance(response, CommandResult):
                    return response
                return response(line)
        return CommandResult(command=line, output="", error="", exit_status=0)

    def lines(self) -> List[str]:
        return [line for line, _, _ in self.calls]
