"""
Install pipeline orchestration for the Lethe agent.

PURPOSE: Run the ordered, individually re-runnable install steps and uninstall.
AI CONTEXT: Stateless - every step re-reads the filesystem, so re-running the
whole pipeline on an installed machine is safe.

PIPELINE (strictly sequential, each step once, no retries):
1. dependencies - git, uv, npm via Homebrew
2. repository   - clone or fetch/checkout/pull ~/.lethe
3. runtime      - agent-browser via npm + its browser payload
4. environment  - ~/.config/lethe/.env and ~/.lethe/.env symlink
5. packages     - `uv sync` in ~/.lethe
6. service      - LaunchAgent plist written and loaded

CONCURRENCY:
Not re-entrant. Two concurrent install/uninstall runs race on file writes
and launchd registration; callers must serialize them (e.g. disable the
menu item while one is in flight). Nothing here is cancellable or timed
out - commands run to their natural exit.

USAGE:
    installer = Installer(LethePaths.default())
    result = installer.install(config, progress=print)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .config import Config
from .dependencies import DependencyInstaller, tool_environment
from .environment import EnvironmentWriter
from .errors import LaunchFailure, UninstallFailed
from .executor import CommandExecutor
from .filesystem import FileSystem, RealFileSystem
from .models import InstallConfiguration, InstallResult
from .paths import LethePaths
from .repository import RepositoryProvisioner
from .service import ServiceDescriptorInstaller

__all__ = ["InstallStep", "Installer", "ProgressCallback"]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass(frozen=True)
class InstallStep:
    """One named pipeline step and the progress message reported after it."""

    name: str
    description: str
    action: Callable[[InstallConfiguration | None], None]


class Installer:
    """
    Orchestrates the Lethe install pipeline.

    Business context: The menu app runs install() on a background thread
    and streams the progress messages into its log window. A failed run is
    retried by the user simply running install again; every step tolerates
    the state a previous (partial or complete) run left behind.
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
        self._dependencies = DependencyInstaller(self._executor, self._fs)
        self._repository = RepositoryProvisioner(paths, self._executor, self._fs)
        self._environment = EnvironmentWriter(paths, self._fs)
        self._service = ServiceDescriptorInstaller(
            paths, self._dependencies, self._executor, self._fs
        )

    def steps(self) -> list[InstallStep]:
        """
        The pipeline in execution order.

        Later steps depend on filesystem/service state left by earlier
        ones: the env symlink and `uv sync` need the checkout, and the
        plist needs uv.
        """
        return [
            InstallStep(
                "dependencies",
                "Dependencies ready (git, uv, npm)",
                lambda _config: self._dependencies.ensure_tools(),
            ),
            InstallStep(
                "repository",
                f"Repository ready at {self._paths.install_directory}",
                lambda _config: self._repository.provision(),
            ),
            InstallStep(
                "runtime",
                f"Runtime dependencies ready ({Config.RUNTIME_TOOL})",
                lambda _config: self._dependencies.ensure_runtime_dependencies(),
            ),
            InstallStep(
                "environment",
                f"Configuration written to {self._paths.config_file}",
                self._write_environment,
            ),
            InstallStep(
                "packages",
                "Python dependencies synced",
                lambda _config: self._sync_packages(),
            ),
            InstallStep(
                "service",
                f"LaunchAgent installed at {self._paths.service_descriptor}",
                lambda _config: self._install_service(),
            ),
        ]

    def step_names(self) -> list[str]:
        return [step.name for step in self.steps()]

    def install(
        self,
        config: InstallConfiguration,
        progress: ProgressCallback | None = None,
    ) -> InstallResult:
        """
        Run the full pipeline.

        Args:
            config: Validated configuration (trusted as-is).
            progress: Optional sink called with a human-readable message
                after each completed step.

        Returns:
            InstallResult naming install dir, config file and plist.

        Raises:
            LetheError: The first failing step's error, unchanged. Steps
                after it are not run.
        """
        for step in self.steps():
            self._run(step, config, progress)
        logger.info("Install complete")
        return self.result()

    def run_step(
        self,
        name: str,
        config: InstallConfiguration | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        """
        Re-run a single named step.

        Only the environment step needs a configuration.

        Raises:
            KeyError: If no step has that name.
            ValueError: If the environment step is run without a configuration.
        """
        steps = {step.name: step for step in self.steps()}
        if name not in steps:
            raise KeyError(f"Unknown install step: {name} (expected one of {', '.join(steps)})")
        self._run(steps[name], config, progress)

    def result(self) -> InstallResult:
        return InstallResult(
            install_directory=self._paths.install_directory,
            config_file=self._paths.config_file,
            service_descriptor=self._paths.service_descriptor,
        )

    def uninstall(self) -> None:
        """
        Unregister the agent and delete the checkout.

        The unload is best-effort. The plist and install directory are
        removed if present; the config directory and workspace (user data)
        are kept.

        Raises:
            UninstallFailed: If a present file or directory cannot be
                removed. Nothing after the failed removal is attempted.
        """
        descriptor = str(self._paths.service_descriptor)
        try:
            self._executor.run(Config.LAUNCHCTL, ["unload", descriptor])
        except LaunchFailure as e:
            logger.warning(f"Ignoring unload failure: {e}")

        if self._fs.exists(descriptor):
            self._remove(descriptor, self._fs.remove)
            logger.info(f"Removed plist file: {descriptor}")

        install_dir = str(self._paths.install_directory)
        if self._fs.exists(install_dir):
            self._remove(install_dir, self._fs.remove_tree)
            logger.info(f"Removed install directory: {install_dir}")

    def _remove(self, path: str, remover: Callable[[str], None]) -> None:
        try:
            remover(path)
        except OSError as e:
            logger.error(f"Failed to remove {path}: {e}")
            raise UninstallFailed(path, e.strerror or str(e)) from e

    def _run(
        self,
        step: InstallStep,
        config: InstallConfiguration | None,
        progress: ProgressCallback | None,
    ) -> None:
        logger.info(f"Step {step.name}: starting")
        step.action(config)
        logger.info(f"Step {step.name}: done")
        if progress is not None:
            progress(step.description)

    def _write_environment(self, config: InstallConfiguration | None) -> None:
        if config is None:
            raise ValueError("The environment step requires an install configuration.")
        self._environment.write(config)

    def _sync_packages(self) -> None:
        self._executor.run_checked(
            Config.ENV_EXECUTABLE,
            ["uv", "sync"],
            cwd=self._paths.install_directory,
            env=tool_environment(),
        )

    def _install_service(self) -> None:
        self._service.install()
