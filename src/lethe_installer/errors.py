"""
Error taxonomy for the Lethe installer.

Every error carries a single human-readable message suitable for direct
display. Captured command output is embedded verbatim so a technical user
can diagnose the root cause.
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "LetheError",
    "LaunchFailure",
    "MissingDependency",
    "InstallFailed",
    "UninstallFailed",
    "ServiceUnavailable",
    "CommandFailed",
    "ScriptMissing",
    "TerminalLaunchFailed",
]


class LetheError(Exception):
    """Base exception for all installer errors."""


class LaunchFailure(LetheError):
    """The OS could not start an external process at all."""

    def __init__(self, executable: str, reason: str) -> None:
        super().__init__(f"Failed to launch command {executable}: {reason}")
        self.executable = executable
        self.reason = reason


class MissingDependency(LetheError):
    """A required tool or the package manager itself could not be found."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing dependency: {name}. Install it and retry.")
        self.name = name


class InstallFailed(LetheError):
    """A pipeline step failed; the message is the captured output verbatim."""

    def __init__(self, details: str) -> None:
        super().__init__(details)
        self.details = details


class UninstallFailed(LetheError):
    """A present plist or install directory could not be removed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to remove {path}: {reason}")
        self.path = path
        self.reason = reason


class ServiceUnavailable(LetheError):
    """A service operation was attempted before the descriptor was registered."""

    def __init__(self, descriptor: Path) -> None:
        super().__init__(f"LaunchAgent plist not found: {descriptor}")
        self.descriptor = descriptor


class CommandFailed(LetheError):
    """launchctl exited non-zero with output not recognized as benign."""

    def __init__(self, output: str) -> None:
        super().__init__(f"launchctl command failed: {output}")
        self.output = output


class ScriptMissing(LetheError):
    """A checkout shell script to open in Terminal does not exist."""

    def __init__(self, script: Path) -> None:
        super().__init__(f"Script not found: {script}")
        self.script = script


class TerminalLaunchFailed(LetheError):
    """osascript could not open the script in Terminal."""

    def __init__(self, exit_code: int, details: str) -> None:
        if details:
            message = f"Failed to open script in Terminal (exit {exit_code}): {details}"
        else:
            message = f"Failed to open script in Terminal (exit {exit_code})."
        super().__init__(message)
        self.exit_code = exit_code
        self.details = details
