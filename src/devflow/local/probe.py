"""Environment readiness probe for the pipeline's toolchain."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional

from .session import LocalSession

# tool name -> report field
PREREQUISITE_TOOLS = {
    "node": "nodejs",
    "npm": "npm",
    "git": "git",
}


@dataclass
class PrerequisiteReport:
    """Which of the pipeline's ecosystem tools are available."""

    nodejs: bool = False
    npm: bool = False
    git: bool = False

    @property
    def ready(self) -> bool:
        """Node.js and npm are mandatory; git is only needed for source control."""
        return self.nodejs and self.npm

    @property
    def missing(self) -> list[str]:
        return [tool for tool, attr in PREREQUISITE_TOOLS.items() if not getattr(self, attr)]

    def to_dict(self) -> Dict[str, bool]:
        return {"nodejs": self.nodejs, "npm": self.npm, "git": self.git}


class PrerequisiteChecker:
    """Runs `<tool> --version` for each tool concurrently."""

    def __init__(self, session: LocalSession, working_dir: Optional[str] = None) -> None:
        self.session = session
        self.working_dir = working_dir or os.getcwd()

    def check(self) -> PrerequisiteReport:
        with ThreadPoolExecutor(max_workers=len(PREREQUISITE_TOOLS)) as pool:
            futures = {
                attr: pool.submit(self.session.run, tool, ["--version"], cwd=self.working_dir)
                for tool, attr in PREREQUISITE_TOOLS.items()
            }
            return PrerequisiteReport(
                **{attr: future.result().succeeded for attr, future in futures.items()}
            )
