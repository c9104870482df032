"""Git-based repository management."""

from __future__ import annotations

import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


class GitCommandError(RuntimeError):
    """Raised when a git command fails."""

    def __init__(self, command: list[str], exit_code: int, stderr: str) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Git command {' '.join(command)} failed with code {exit_code}: {stderr}")


@dataclass
class GitCloneResult:
    """Details about a completed clone/update."""

    commit_sha: str


@dataclass
class GitCommitResult:
    """Details about a commit-and-push."""

    committed: bool
    commit_sha: str


_SCP_REMOTE = re.compile(r"^[\w.-]+@[\w.-]+:(?P<path>.+)$")


def parse_repo_slug(repo_url: str) -> Tuple[str, str]:
    """Return (owner, repo) from an HTTPS or SSH remote URL.

    >>> parse_repo_slug("git@github.com:octo/site.git")
    ('octo', 'site')
    """
    url = repo_url.strip()
    match = _SCP_REMOTE.match(url)
    if match:
        path = match.group("path")
    else:
        path = re.sub(r"^[a-z+]+://[^/]+/", "", url)
    segments = [s for s in path.rstrip("/").split("/") if s]
    if len(segments) < 2:
        raise ValueError(f"Cannot determine owner/repository from URL: {repo_url}")
    owner, repo = segments[-2], segments[-1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    return owner, repo


class GitRepositoryManager:
    """Wraps `git` CLI commands for cloning, committing and remote lookup.

    When `username` is set, commits are authored as that GitHub user with
    its noreply address.
    """

    def __init__(self, git_binary: str = "git", username: Optional[str] = None) -> None:
        self.git_binary = git_binary
        self.username = username or None

    @property
    def author(self) -> Optional[str]:
        if not self.username:
            return None
        return f"{self.username} <{self.username}@users.noreply.github.com>"

    def clone_or_update(self, repo_url: str, target_dir: Path) -> GitCloneResult:
        target_dir = target_dir.resolve()
        if (target_dir / ".git").exists():
            self._run(["pull", "--ff-only"], cwd=target_dir)
        else:
            if target_dir.exists():
                shutil.rmtree(target_dir, ignore_errors=True)
            target_dir.parent.mkdir(parents=True, exist_ok=True)
            self._run(["clone", "--depth=1", repo_url, str(target_dir)])

        commit_sha = self._run(["rev-parse", "HEAD"], cwd=target_dir).strip()
        return GitCloneResult(commit_sha=commit_sha)

    def commit_and_push(self, project_path: Path, message: str, *, push: bool = True) -> GitCommitResult:
        project_path = Path(project_path).resolve()
        self._run(["add", "-A"], cwd=project_path)
        status = self._run(["status", "--porcelain"], cwd=project_path).strip()
        committed = False
        if status:
            args = ["commit", "-m", message]
            if self.author:
                args += ["--author", self.author]
            self._run(args, cwd=project_path)
            committed = True
        if push:
            self._run(["push"], cwd=project_path)
        commit_sha = self._run(["rev-parse", "HEAD"], cwd=project_path).strip()
        return GitCommitResult(committed=committed, commit_sha=commit_sha)

    def get_remote_url(self, project_path: Path, remote: str = "origin") -> str:
        return self._run(["remote", "get-url", remote], cwd=Path(project_path)).strip()

    def _run(self, args: list[str], cwd: Optional[Path] = None) -> str:
        command = [self.git_binary] + args
        try:
            process = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise GitCommandError(command, -1, str(exc)) from exc
        if process.returncode != 0:
            raise GitCommandError(command, process.returncode, process.stderr.strip())
        return process.stdout
