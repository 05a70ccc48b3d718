"""
launchd service management for the Lethe agent.

PURPOSE: Register the agent as a per-user LaunchAgent and start/stop/restart it.
AI CONTEXT: launchd only - one label (Config.SERVICE_LABEL), one plist.

COMPONENTS:
- ServiceDescriptorInstaller: writes the plist and (re)loads it; load must succeed
- ServiceController: start/stop/restart, tolerating launchctl's text-only
  "already in that state" errors (tables in Config)

USAGE:
    # Register after install
    ServiceDescriptorInstaller(paths, dependencies).install()

    # Manage service
    controller = ServiceController(paths)
    controller.start()
    controller.stop()
    controller.restart()
"""

from __future__ import annotations

import logging
import os
from xml.sax.saxutils import escape

from .config import Config
from .dependencies import DependencyInstaller
from .errors import CommandFailed, InstallFailed, LaunchFailure, ServiceUnavailable
from .executor import CommandExecutor
from .filesystem import FileSystem, RealFileSystem
from .models import CommandResult
from .paths import LethePaths

__all__ = [
    "LAUNCHD_PLIST_TEMPLATE",
    "ServiceController",
    "ServiceDescriptorInstaller",
    "domain_target",
    "render_descriptor",
]

logger = logging.getLogger(__name__)

# launchd plist template for macOS
LAUNCHD_PLIST_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>{label}</string>
    <key>ProgramArguments</key>
    <array>
{program_arguments}
    </array>
    <key>WorkingDirectory</key>
    <string>{working_directory}</string>
    <key>RunAtLoad</key>
    <true/>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>{stdout_path}</string>
    <key>StandardErrorPath</key>
    <string>{stderr_path}</string>
    <key>EnvironmentVariables</key>
    <dict>
        <key>PATH</key>
        <string>{path_env}</string>
    </dict>
</dict>
</plist>
"""


def domain_target(uid: int | None = None) -> str:
    """
    launchctl service target for the agent in the user's GUI domain.

    Example:
        >>> domain_target(501)
        'gui/501/com.lethe.agent'
    """
    return f"gui/{os.getuid() if uid is None else uid}/{Config.SERVICE_LABEL}"


def render_descriptor(paths: LethePaths, runner_path: str) -> str:
    """
    Render the LaunchAgent plist.

    The agent is launched as `<runner> run lethe` from the install
    directory, restarted whenever it exits, with stdout/stderr redirected
    to the two log files. PATH is the runner's own directory followed by
    the standard system directories, since launchd provides none.

    Args:
        paths: Installation paths.
        runner_path: Absolute path of the uv binary.

    Returns:
        Complete plist XML with every interpolated value XML-escaped.
    """
    program = [runner_path, *Config.RUNNER_ARGS]
    runner_dir = os.path.dirname(runner_path)
    return LAUNCHD_PLIST_TEMPLATE.format(
        label=escape(Config.SERVICE_LABEL),
        program_arguments="\n".join(f"        <string>{escape(arg)}</string>" for arg in program),
        working_directory=escape(str(paths.install_directory)),
        stdout_path=escape(str(paths.stdout_log)),
        stderr_path=escape(str(paths.stderr_log)),
        path_env=escape(f"{runner_dir}:{Config.SERVICE_PATH_SUFFIX}"),
    )


class ServiceDescriptorInstaller:
    """
    Writes the LaunchAgent plist and loads it.

    Business context: This is the one step in the whole pipeline that must
    succeed hard - a checkout without a loaded agent is not an install.
    """

    def __init__(
        self,
        paths: LethePaths,
        dependencies: DependencyInstaller | None = None,
        executor: CommandExecutor | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        self._paths = paths
        self._executor = executor or CommandExecutor()
        self._fs: FileSystem = filesystem or RealFileSystem()
        self._dependencies = dependencies or DependencyInstaller(self._executor, self._fs)

    def install(self) -> str:
        """
        Write the plist, unload any previous registration, load the new one.

        Returns:
            Absolute path of the written plist.

        Raises:
            InstallFailed: If the runner cannot be resolved, the plist
                cannot be written, or `launchctl load` exits non-zero.
            LaunchFailure: If launchctl cannot be started for the load.
        """
        runner_path = self._dependencies.resolve_binary_path(Config.RUNNER)
        descriptor = str(self._paths.service_descriptor)

        try:
            self._fs.makedirs(str(self._paths.service_descriptor.parent), exist_ok=True)
            self._fs.makedirs(str(self._paths.log_directory), exist_ok=True)
            self._fs.write_text(descriptor, render_descriptor(self._paths, runner_path))
        except OSError as e:
            logger.error(f"Failed to write plist file: {e}")
            raise InstallFailed(f"Failed to write {descriptor}: {e}") from e
        logger.info(f"Created plist file: {descriptor}")

        # "not currently loaded" is the expected outcome on a first install.
        try:
            self._executor.run(Config.LAUNCHCTL, ["unload", descriptor])
        except LaunchFailure as e:
            logger.warning(f"Ignoring unload failure: {e}")

        self._executor.run_checked(Config.LAUNCHCTL, ["load", descriptor])
        logger.info("Loaded launchd agent")
        return descriptor


class ServiceController:
    """
    Start/stop/restart the registered agent through launchctl.

    Every operation requires the plist to exist (ServiceUnavailable
    otherwise). Non-zero exits whose output matches the operation's
    tolerated table count as success; anything else raises CommandFailed.
    """

    def __init__(
        self,
        paths: LethePaths,
        executor: CommandExecutor | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        self._paths = paths
        self._executor = executor or CommandExecutor()
        self._fs: FileSystem = filesystem or RealFileSystem()

    def start(self) -> CommandResult:
        """
        Load the agent, then kickstart it so it runs immediately.

        The kickstart is best-effort: besides its tolerated errors, any
        other failure is logged and ignored since the load already
        succeeded and RunAtLoad will start the process.

        Returns:
            Result of the `launchctl load` command.

        Raises:
            ServiceUnavailable: If the plist does not exist.
            CommandFailed: If load fails with a non-tolerated error.
        """
        result = self._launchctl(
            ["load", str(self._paths.service_descriptor)],
            Config.START_TOLERATED,
        )
        try:
            self._launchctl(
                ["kickstart", "-k", domain_target()],
                Config.KICKSTART_TOLERATED,
            )
        except (CommandFailed, LaunchFailure) as e:
            logger.warning(f"Kickstart skipped: {e}")
        logger.info("Started launchd agent")
        return result

    def stop(self) -> CommandResult:
        """
        Unload the agent.

        Raises:
            ServiceUnavailable: If the plist does not exist.
            CommandFailed: If unload fails with a non-tolerated error.
        """
        result = self._launchctl(
            ["unload", str(self._paths.service_descriptor)],
            Config.STOP_TOLERATED,
        )
        logger.info("Stopped launchd agent")
        return result

    def restart(self) -> CommandResult:
        """Stop then start; a tolerated stop error still proceeds to start."""
        self.stop()
        return self.start()

    def _launchctl(self, arguments: list[str], tolerated: tuple[str, ...]) -> CommandResult:
        descriptor = self._paths.service_descriptor
        if not self._fs.exists(str(descriptor)):
            raise ServiceUnavailable(descriptor)

        result = self._executor.run(Config.LAUNCHCTL, arguments)
        if result.ok:
            return result

        output = result.output
        if Config.is_tolerated(output, tolerated):
            logger.info(f"launchctl {arguments[0]}: {output} (ignored)")
            return result
        raise CommandFailed(output or f"exit {result.exit_code}")
