"""Clone or update the Lethe checkout in the install directory."""

from __future__ import annotations

import logging

from .config import Config
from .dependencies import tool_environment
from .errors import InstallFailed
from .executor import CommandExecutor
from .filesystem import FileSystem, RealFileSystem
from .paths import LethePaths

__all__ = ["RepositoryProvisioner"]

logger = logging.getLogger(__name__)


class RepositoryProvisioner:
    """
    Idempotent clone-or-update of ~/.lethe.

    An existing checkout (identified by its .git marker) is fetched,
    switched to the canonical branch and pulled. Anything else gets a fresh
    clone. A dirty or diverged tree makes git fail and the failure is
    surfaced as-is; no merge or reset is attempted.
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

    def is_checkout(self) -> bool:
        return self._fs.exists(str(self._paths.repository_marker))

    def provision(self) -> None:
        """
        Bring the install directory to the tip of the canonical branch.

        Raises:
            InstallFailed: If any git command exits non-zero or the
                install directory's parent cannot be created.
            LaunchFailure: If git cannot be launched.
        """
        if self.is_checkout():
            self.update()
        else:
            self.clone()

    def update(self) -> None:
        install_dir = str(self._paths.install_directory)
        logger.info(f"Updating checkout in {install_dir}")
        for arguments in (
            ["fetch", Config.REMOTE, "--tags"],
            ["checkout", Config.BRANCH],
            ["pull", Config.REMOTE, Config.BRANCH],
        ):
            self._executor.run_checked(
                Config.ENV_EXECUTABLE,
                ["git", "-C", install_dir, *arguments],
                env=tool_environment(),
            )

    def clone(self) -> None:
        install_dir = self._paths.install_directory
        repo_url = Config.get_repo_url()
        logger.info(f"Cloning {repo_url} into {install_dir}")
        try:
            self._fs.makedirs(str(install_dir.parent), exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create {install_dir.parent}: {e}")
            raise InstallFailed(f"Failed to create {install_dir.parent}: {e}") from e
        self._executor.run_checked(
            Config.ENV_EXECUTABLE,
            ["git", "clone", repo_url, str(install_dir)],
            env=tool_environment(),
        )
