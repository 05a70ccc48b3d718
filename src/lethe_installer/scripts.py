"""
Open the checkout's install/update/uninstall scripts in Terminal.

This is the only flow that builds a shell command string: every
interpolated path and argument is single-quoted, and the whole command is
then escaped again for embedding in an AppleScript string literal.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from pathlib import Path

from .config import Config
from .errors import ScriptMissing, TerminalLaunchFailed
from .executor import CommandExecutor
from .filesystem import FileSystem, RealFileSystem
from .paths import LethePaths

__all__ = ["ScriptAction", "ScriptRunner", "applescript_escape", "shell_quote"]

logger = logging.getLogger(__name__)


class ScriptAction(str, Enum):
    INSTALL = "install"
    UPDATE = "update"
    UNINSTALL = "uninstall"

    @property
    def title(self) -> str:
        return f"{self.value.capitalize()} Lethe"


def shell_quote(value: str) -> str:
    """
    Single-quote a value for POSIX shells.

    Example:
        >>> print(shell_quote("it's"))
        'it'"'"'s'
    """
    return "'" + value.replace("'", "'\"'\"'") + "'"


def applescript_escape(value: str) -> str:
    """Escape a value for an AppleScript double-quoted string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class ScriptRunner:
    """Runs a repository shell script in a new Terminal window via osascript."""

    def __init__(
        self,
        paths: LethePaths,
        executor: CommandExecutor | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        self._paths = paths
        self._executor = executor or CommandExecutor()
        self._fs: FileSystem = filesystem or RealFileSystem()

    def script_path(self, action: ScriptAction) -> Path:
        return {
            ScriptAction.INSTALL: self._paths.install_script,
            ScriptAction.UPDATE: self._paths.update_script,
            ScriptAction.UNINSTALL: self._paths.uninstall_script,
        }[action]

    def build_command(self, action: ScriptAction, extra_args: Sequence[str] = ()) -> str:
        """Shell command line run inside Terminal: cd to the checkout, run the script."""
        parts = [Config.SCRIPT_SHELL, shell_quote(str(self.script_path(action)))]
        parts.extend(shell_quote(arg) for arg in extra_args)
        return f"cd {shell_quote(str(self._paths.repository_root))} && {' '.join(parts)}"

    def run_in_terminal(self, action: ScriptAction, extra_args: Sequence[str] = ()) -> None:
        """
        Open Terminal and run the script for action.

        Raises:
            ScriptMissing: If the script does not exist in the checkout.
            TerminalLaunchFailed: If osascript exits non-zero.
            LaunchFailure: If osascript cannot be started.
        """
        script = self.script_path(action)
        if not self._fs.exists(str(script)):
            raise ScriptMissing(script)

        command = self.build_command(action, extra_args)
        apple_script = (
            'tell application "Terminal"\n'
            "    activate\n"
            f'    do script "{applescript_escape(command)}"\n'
            "end tell"
        )
        logger.info(f"{action.title}: opening {script} in Terminal")
        result = self._executor.run(Config.OSASCRIPT, ["-e", apple_script])
        if not result.ok:
            raise TerminalLaunchFailed(result.exit_code, result.output)
