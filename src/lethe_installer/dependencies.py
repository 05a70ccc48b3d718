"""
External tool provisioning for the Lethe installer.

PURPOSE: Make sure git, uv, npm and agent-browser are resolvable before they are used.
AI CONTEXT: Homebrew is the fallback package manager; npm installs the runtime tool.

LOOKUP STRATEGY:
Every lookup runs `/usr/bin/env which <tool>` with PATH forced to
Config.TOOL_SEARCH_PATH. GUI-launched processes do not inherit a login
shell's PATH, so the ambient PATH is never consulted.

INSTALL FLOW (per tool):
1. Tool resolvable?              -> done
2. Locate brew (fixed paths, then which) or raise MissingDependency
3. `brew list --versions <pkg>`  -> skip install if already listed
4. `brew install <pkg>`
5. Re-verify tool resolvable     -> InstallFailed if not
"""

from __future__ import annotations

import logging

from .config import Config, ToolDependency
from .errors import InstallFailed, LaunchFailure, MissingDependency
from .executor import CommandExecutor
from .filesystem import FileSystem, RealFileSystem

__all__ = ["DependencyInstaller", "tool_environment"]

logger = logging.getLogger(__name__)


def tool_environment() -> dict[str, str]:
    """Environment overrides pinning PATH to the fixed tool search path."""
    return {"PATH": Config.TOOL_SEARCH_PATH}


class DependencyInstaller:
    """
    Ensures required external tools exist, installing them when absent.

    Business context: The menu app is usually the first thing a user runs
    on a fresh Mac. It must bootstrap git/uv/node itself rather than
    assume a developer setup, while never reinstalling what is already
    there.
    """

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        self._executor = executor or CommandExecutor()
        self._fs: FileSystem = filesystem or RealFileSystem()

    def command_exists(self, command: str) -> bool:
        """
        Check whether a command resolves on the fixed search path.

        Args:
            command: Bare command name, e.g. "uv".

        Returns:
            True if `which` exits 0 with a non-empty path. A `which` that
            cannot even be launched counts as not found.
        """
        try:
            result = self._executor.run(
                Config.ENV_EXECUTABLE,
                ["which", command],
                env=tool_environment(),
            )
        except LaunchFailure as e:
            logger.warning(f"Lookup of {command} failed to launch: {e}")
            return False
        return result.ok and bool(result.stdout)

    def resolve_binary_path(self, command: str) -> str:
        """
        Resolve the absolute path of a command.

        Checks each directory of the fixed search path for an executable
        file first, then falls back to `which`.

        Business context: launchd runs the agent without any PATH, so the
        plist must name the runner by absolute path.

        Args:
            command: Bare command name, e.g. "uv".

        Returns:
            Absolute path to the executable.

        Raises:
            InstallFailed: If `which` exits non-zero.
            LaunchFailure: If `which` cannot be launched.

        Example:
            >>> installer.resolve_binary_path("uv")
            '/opt/homebrew/bin/uv'
        """
        for directory in Config.TOOL_SEARCH_PATH.split(":"):
            candidate = f"{directory}/{command}"
            if self._fs.is_executable(candidate):
                return candidate

        result = self._executor.run_checked(
            Config.ENV_EXECUTABLE,
            ["which", command],
            env=tool_environment(),
        )
        return result.stdout

    def resolve_package_manager(self) -> str:
        """
        Locate the Homebrew binary.

        Returns:
            Absolute path to brew.

        Raises:
            MissingDependency: If brew is at neither fixed location nor
                resolvable via `which`.
        """
        for candidate in Config.BREW_CANDIDATES:
            if self._fs.is_executable(candidate):
                return candidate

        try:
            result = self._executor.run(
                Config.ENV_EXECUTABLE,
                ["which", "brew"],
                env=tool_environment(),
            )
        except LaunchFailure:
            result = None
        if result is not None and result.ok and result.stdout:
            return result.stdout

        raise MissingDependency(
            f"Homebrew (brew). Install from {Config.BREW_HOMEPAGE} and retry"
        )

    def is_package_installed(self, package: str, brew_path: str) -> bool:
        """True if `brew list --versions <package>` reports a version."""
        try:
            result = self._executor.run(
                brew_path,
                ["list", "--versions", package],
                env=tool_environment(),
            )
        except LaunchFailure:
            return False
        return result.ok and bool(result.stdout)

    def install_tool(self, dependency: ToolDependency) -> None:
        """
        Install one tool through Homebrew and verify it afterwards.

        Args:
            dependency: Command name and the brew package providing it.

        Raises:
            MissingDependency: If Homebrew cannot be located.
            InstallFailed: If `brew install` fails, or the command is
                still unresolvable after the package is installed (a
                PATH / package-name mismatch).
        """
        brew = self.resolve_package_manager()

        if self.is_package_installed(dependency.brew_package, brew):
            logger.info(f"{dependency.brew_package} already installed via Homebrew")
        else:
            logger.info(f"Installing {dependency.brew_package} with Homebrew")
            self._executor.run_checked(
                brew,
                ["install", dependency.brew_package],
                env=tool_environment(),
            )

        if not self.command_exists(dependency.command):
            raise InstallFailed(
                f"Installed {dependency.brew_package}, "
                f"but {dependency.command} is still unavailable."
            )

    def ensure_tools(self, tools: tuple[ToolDependency, ...] = Config.REQUIRED_TOOLS) -> None:
        """Install every required tool that is not already resolvable."""
        for dependency in tools:
            if self.command_exists(dependency.command):
                logger.debug(f"{dependency.command} found")
                continue
            self.install_tool(dependency)

    def ensure_runtime_dependencies(self) -> None:
        """
        Install the agent's runtime tooling.

        Installs agent-browser globally through npm when it is missing,
        then always runs `agent-browser install --with-deps` so its
        browser payload is current.

        Raises:
            InstallFailed: If npm or agent-browser exit non-zero, or the
                tool is still missing after the npm install.
        """
        tool = Config.RUNTIME_TOOL
        if not self.command_exists(tool):
            logger.info(f"Installing {tool} with npm")
            self._executor.run_checked(
                Config.ENV_EXECUTABLE,
                ["npm", "install", "-g", tool],
                env=tool_environment(),
            )
            if not self.command_exists(tool):
                raise InstallFailed(
                    f"Installed {tool}, but command is still unavailable in PATH."
                )

        self._executor.run_checked(
            Config.ENV_EXECUTABLE,
            [tool, "install", "--with-deps"],
            env=tool_environment(),
        )
