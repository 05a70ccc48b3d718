"""
External process execution for the Lethe installer.

PURPOSE: Run one external program synchronously and capture its outcome.
AI CONTEXT: Foundation of every other component - nothing else calls subprocess.

CONTRACT:
- No shell interpretation: executable + argv are passed directly
- Non-zero exit is NOT an error here; it is reported via CommandResult.exit_code
- LaunchFailure only when the OS cannot start the process at all
- Environment overrides are merged onto the inherited environment; overrides win
- Output is decoded as UTF-8; undecodable bytes become U+FFFD

USAGE:
    result = run_command("/usr/bin/env", ["git", "--version"])
    if result.ok:
        print(result.stdout)
"""

from __future__ import annotations

import logging
import os
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from pathlib import Path

from .errors import InstallFailed, LaunchFailure
from .models import CommandResult

__all__ = ["CommandExecutor", "run_command"]

logger = logging.getLogger(__name__)


def run_command(
    executable: str,
    arguments: Sequence[str] = (),
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    capture_output: bool = True,
) -> CommandResult:
    """
    Run an external program and wait for it to exit.

    Business context: Every installer step is a sequence of blocking
    external commands (git, brew, npm, uv, launchctl). Centralizing the
    launch here gives one place that maps OS launch errors onto
    LaunchFailure and normalizes captured output.

    Args:
        executable: Absolute path of the program to run.
        arguments: Arguments passed after the executable.
        cwd: Optional working directory for the child.
        env: Optional overrides merged onto os.environ (override wins).
        capture_output: When False the child writes straight to this
            process's stdout/stderr and the result streams are empty.

    Returns:
        CommandResult with exit code and stripped stdout/stderr.

    Raises:
        LaunchFailure: If the binary is missing, not executable, or the
            working directory cannot be entered.

    Example:
        >>> run_command("/bin/echo", ["  hi  "]).stdout
        'hi'
    """
    argv = [executable, *arguments]
    merged_env = {**os.environ, **env} if env else None
    logger.debug(f"Running: {' '.join(argv)}" + (f" (cwd={cwd})" if cwd else ""))

    try:
        completed = subprocess.run(  # nosec B603
            argv,
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
            capture_output=capture_output,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as e:
        raise LaunchFailure(executable, e.strerror or str(e)) from e

    stdout = completed.stdout if capture_output and completed.stdout else ""
    stderr = completed.stderr if capture_output and completed.stderr else ""
    result = CommandResult(
        exit_code=completed.returncode,
        stdout=stdout.strip(),
        stderr=stderr.strip(),
    )
    if not result.ok:
        logger.debug(f"Exit {result.exit_code}: {' '.join(argv)}")
    return result


class CommandExecutor:
    """
    Injectable wrapper around run_command().

    Components take a CommandExecutor so tests can substitute a scripted
    fake instead of patching subprocess globally.
    """

    def run(
        self,
        executable: str,
        arguments: Sequence[str] = (),
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
    ) -> CommandResult:
        """Run a command; see run_command() for the contract."""
        return run_command(
            executable,
            arguments,
            cwd=cwd,
            env=env,
            capture_output=capture_output,
        )

    def run_checked(
        self,
        executable: str,
        arguments: Sequence[str] = (),
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """
        Run a command that must succeed.

        Raises:
            LaunchFailure: If the process cannot be started.
            InstallFailed: On non-zero exit, carrying stderr, else stdout,
                else the command line.
        """
        result = self.run(executable, arguments, cwd=cwd, env=env)
        if not result.ok:
            details = result.output or f"Command failed: {' '.join([executable, *arguments])}"
            logger.error(details)
            raise InstallFailed(details)
        return result
