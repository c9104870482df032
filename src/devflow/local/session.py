"""Local command execution session."""

from __future__ import annotations

import os
import platform
import shlex
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass
from typing import IO, List, Optional, Sequence

LAUNCH_FAILURE = -1
TIMED_OUT = -2


@dataclass
class CommandResult:
    """Result of executing a local command."""

    command: str
    output: str
    error: str
    exit_status: int

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0


class LocalSession:
    """
    Runs external commands through the platform shell.

    Standard output and standard error are drained by two reader threads
    while the child runs, so a chatty command never blocks on a full pipe.
    The call itself is blocking from the caller's point of view.
    """

    def __init__(
        self,
        working_dir: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        stream_output: bool = False,
    ) -> None:
        """
        Initialize local session.

        Args:
            working_dir: Default working directory. Defaults to the process cwd.
            timeout: Total timeout in seconds; None waits for the child forever.
            stream_output: Echo child output to this process' stdout/stderr.
        """
        self.working_dir = working_dir or os.getcwd()
        self.timeout = timeout
        self.stream_output = stream_output
        self.is_windows = platform.system() == "Windows"

    def run(
        self,
        command: str,
        arguments: Sequence[str] = (),
        *,
        cwd: Optional[str] = None,
        stdin: Optional[str] = None,
    ) -> CommandResult:
        """
        Execute a command and wait for it to exit.

        Launch failures (missing working directory, unspawnable shell) are
        reported as a failed result with exit status -1, never raised.
        """
        command_line = self._build_command_line(command, arguments)
        workdir = str(cwd or self.working_dir)

        try:
            process = subprocess.Popen(
                self._shell_invocation(command_line),
                shell=not self.is_windows,
                stdin=subprocess.PIPE if stdin is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=workdir,
                env=self._get_env(),
                executable=self._shell_executable(),
            )
        except OSError as exc:
            return CommandResult(
                command=command_line,
                output="",
                error=str(exc),
                exit_status=LAUNCH_FAILURE,
            )

        stdout_chunks: List[str] = []
        stderr_chunks: List[str] = []
        readers = [
            threading.Thread(
                target=self._drain,
                args=(process.stdout, stdout_chunks, sys.stdout),
                daemon=True,
            ),
            threading.Thread(
                target=self._drain,
                args=(process.stderr, stderr_chunks, sys.stderr),
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        if stdin is not None and process.stdin is not None:
            try:
                process.stdin.write(stdin)
            except (BrokenPipeError, OSError):
                # Child exited without reading its input
                pass
            finally:
                try:
                    process.stdin.close()
                except OSError:
                    pass

        try:
            exit_status = process.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
            for reader in readers:
                reader.join(timeout=1)
            return CommandResult(
                command=command_line,
                output="".join(stdout_chunks).strip(),
                error=f"TIMEOUT: Command exceeded {self.timeout} seconds",
                exit_status=TIMED_OUT,
            )

        for reader in readers:
            reader.join()

        return CommandResult(
            command=command_line,
            output="".join(stdout_chunks).strip(),
            error="".join(stderr_chunks).strip(),
            exit_status=exit_status,
        )

    def _drain(self, stream: Optional[IO[str]], chunks: List[str], echo: IO[str]) -> None:
        if stream is None:
            return
        with stream:
            for line in iter(stream.readline, ""):
                chunks.append(line)
                if self.stream_output:
                    echo.write(line)
                    echo.flush()

    def _build_command_line(self, command: str, arguments: Sequence[str]) -> str:
        if not arguments:
            return command
        if self.is_windows:
            return " ".join([command, subprocess.list2cmdline(list(arguments))])
        return " ".join([command, *(shlex.quote(str(arg)) for arg in arguments)])

    def _shell_invocation(self, command_line: str):
        if self.is_windows:
            return ["powershell", "-NoProfile", "-Command", command_line]
        return command_line

    def _shell_executable(self) -> Optional[str]:
        if self.is_windows:
            return None
        return shutil.which("bash") or None

    def _get_env(self) -> dict:
        """Get environment variables for subprocess."""
        env = os.environ.copy()

        # Global npm installs land here on most setups
        if self.is_windows:
            extra_paths = [
                os.path.expanduser("~\\AppData\\Roaming\\npm"),
                "C:\\Program Files\\nodejs",
            ]
        else:
            extra_paths = [
                os.path.expanduser("~/.npm-global/bin"),
                os.path.expanduser("~/.local/bin"),
                "/usr/local/bin",
            ]

        current_path = env.get("PATH", "")
        for p in extra_paths:
            if os.path.isdir(p) and p not in current_path.split(os.pathsep):
                current_path = current_path + os.pathsep + p
        env["PATH"] = current_path
        # Keep CLIs such as netlify/vercel from prompting
        env.setdefault("CI", "1")

        return env
