"""Local process execution and environment probing."""

from .session import CommandResult, LocalSession
from .probe import PrerequisiteChecker, PrerequisiteReport

__all__ = ["CommandResult", "LocalSession", "PrerequisiteChecker", "PrerequisiteReport"]
