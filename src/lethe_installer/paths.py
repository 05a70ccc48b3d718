"""
Filesystem locations for the Lethe installation.

PURPOSE: Pure, side-effect-free derivation of every path the installer touches.
AI CONTEXT: All paths are functions of one home directory plus constants in config.py.

Nothing here touches the disk. Each property is recomputed on access so
that two LethePaths built from the same home can never disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import Config

__all__ = ["LethePaths"]


@dataclass(frozen=True)
class LethePaths:
    """
    Every filesystem location derived from a home directory.

    Example:
        >>> paths = LethePaths(Path("/Users/example"))
        >>> str(paths.install_directory)
        '/Users/example/.lethe'
        >>> str(paths.service_descriptor)
        '/Users/example/Library/LaunchAgents/com.lethe.agent.plist'
    """

    home: Path

    @classmethod
    def default(cls) -> LethePaths:
        """Paths rooted at Config.get_home_directory()."""
        return cls(Config.get_home_directory())

    # Source checkout holding the install/update/uninstall shell scripts.
    @property
    def repository_root(self) -> Path:
        return self.home / "devel" / "lethe"

    @property
    def install_script(self) -> Path:
        return self.repository_root / "install.sh"

    @property
    def update_script(self) -> Path:
        return self.repository_root / "update.sh"

    @property
    def uninstall_script(self) -> Path:
        return self.repository_root / "uninstall.sh"

    @property
    def install_directory(self) -> Path:
        return self.home / ".lethe"

    @property
    def repository_marker(self) -> Path:
        return self.install_directory / ".git"

    @property
    def install_env_link(self) -> Path:
        return self.install_directory / Config.ENV_FILE_NAME

    @property
    def config_directory(self) -> Path:
        return self.home / ".config" / "lethe"

    @property
    def config_file(self) -> Path:
        return self.config_directory / Config.ENV_FILE_NAME

    @property
    def workspace_directory(self) -> Path:
        return self.home / "lethe"

    @property
    def memory_directory(self) -> Path:
        return self.workspace_directory / "data" / "memory"

    @property
    def service_descriptor(self) -> Path:
        return self.home / "Library" / "LaunchAgents" / f"{Config.SERVICE_LABEL}.plist"

    @property
    def log_directory(self) -> Path:
        return self.home / "Library" / "Logs"

    @property
    def stdout_log(self) -> Path:
        return self.log_directory / "lethe.log"

    @property
    def stderr_log(self) -> Path:
        return self.log_directory / "lethe.error.log"
