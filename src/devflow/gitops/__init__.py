"""Git operations helpers."""

from .manager import (
    GitCloneResult,
    GitCommandError,
    GitCommitResult,
    GitRepositoryManager,
    parse_repo_slug,
)

__all__ = [
    "GitCloneResult",
    "GitCommandError",
    "GitCommitResult",
    "GitRepositoryManager",
    "parse_repo_slug",
]
