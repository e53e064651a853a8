"""Command runners for source-control and cloud CLI collaborators."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True)
class ExecResult:
    """Result envelope for subprocess execution."""

    argv: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str
    stderr: str


class ExecError(RuntimeError):
    """Raised when a command returns non-zero in check mode or times out."""

    def __init__(self, result: ExecResult):
        rendered = " ".join(result.argv)
        detail = (result.stderr or result.stdout).strip()
        super().__init__(f"command failed ({result.returncode}): {rendered}\n{detail}")
        self.result = result


def run_command(
    argv: list[str],
    *,
    cwd: Path,
    check: bool = True,
    timeout: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
) -> ExecResult:
    """Run command and return structured result.

    A command exceeding ``timeout`` seconds is reported as an ``ExecError``
    with return code -1 instead of hanging the calling job step.
    """
    logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd)
    try:
        completed = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        result = ExecResult(
            argv=tuple(argv),
            cwd=cwd.resolve(),
            returncode=-1,
            stdout="",
            stderr=f"timed out after {timeout:g}s",
        )
        raise ExecError(result) from exc

    result = ExecResult(
        argv=tuple(argv),
        cwd=cwd.resolve(),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
    if check and result.returncode != 0:
        raise ExecError(result)
    return result


def run_git(
    args: list[str],
    *,
    repo_root: Path,
    check: bool = True,
) -> ExecResult:
    """Run git command rooted at repo."""
    return run_command(["git", *args], cwd=repo_root, check=check)


def git_output(args: list[str], *, repo_root: Path) -> str:
    """Run git command and return stripped stdout."""
    return run_git(args, repo_root=repo_root).stdout.strip()
