"""
Configuration for the Lethe installer.

PURPOSE: Centralized constants for every fixed external identity the installer touches.
AI CONTEXT: All configurable values live here - modify this file to change behavior.

CONFIGURATION CATEGORIES:
- Identity: launchd label, remote repository URL, canonical branch
- Tooling: fixed tool search path, Homebrew locations, required tools
- Service manager: tolerated launchctl error tables per operation
- Logging: CLI log format

ENVIRONMENT VARIABLES:
- LETHE_HOME: Home directory root for all derived paths (default: user home)
- LETHE_REPO_URL: Remote to clone from (default: upstream GitHub repository)

USAGE:
    from lethe_installer.config import Config
    label = Config.SERVICE_LABEL
    if Config.is_tolerated(output, Config.STOP_TOLERATED): ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar


@dataclass(frozen=True)
class ToolDependency:
    """An external command and the Homebrew package that provides it."""

    command: str
    brew_package: str


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration container for the Lethe installer.

    DESIGN: Frozen dataclass ensures configuration immutability at runtime.
    All values are class-level constants - no instance creation needed.

    INSTALLED LAYOUT:
        ~/.lethe/                     # Git checkout, launchd WorkingDirectory
        ├── .git/                     # Repository marker
        └── .env -> ~/.config/lethe/.env
        ~/.config/lethe/.env          # Single source of truth for settings
        ~/lethe/data/memory/          # Agent workspace
        ~/Library/LaunchAgents/com.lethe.agent.plist
        ~/Library/Logs/lethe.log, lethe.error.log
    """

    # =========================================================================
    # FIXED EXTERNAL IDENTITIES
    # =========================================================================
    SERVICE_LABEL: ClassVar[str] = "com.lethe.agent"
    REPO_URL: ClassVar[str] = "https://github.com/atemerev/lethe.git"
    BRANCH: ClassVar[str] = "main"
    REMOTE: ClassVar[str] = "origin"

    # =========================================================================
    # TOOLING
    # =========================================================================
    TOOL_SEARCH_PATH: ClassVar[str] = (
        "/opt/homebrew/bin:/opt/homebrew/sbin:/usr/local/bin:/usr/local/sbin"
        ":/usr/bin:/bin:/usr/sbin:/sbin"
    )
    """
    Explicit PATH used for every tool lookup.
    Apps launched from Finder/Dock do not inherit a login shell's PATH, so
    Homebrew locations are listed first and the ambient PATH is never trusted.
    """

    SERVICE_PATH_SUFFIX: ClassVar[str] = "/opt/homebrew/bin:/usr/local/bin:/usr/bin:/bin"
    """System directories appended after the runner's own directory in the plist PATH."""

    ENV_EXECUTABLE: ClassVar[str] = "/usr/bin/env"
    LAUNCHCTL: ClassVar[str] = "/bin/launchctl"
    OSASCRIPT: ClassVar[str] = "/usr/bin/osascript"
    SCRIPT_SHELL: ClassVar[str] = "/bin/zsh"

    BREW_CANDIDATES: ClassVar[tuple[str, ...]] = (
        "/opt/homebrew/bin/brew",
        "/usr/local/bin/brew",
    )
    BREW_HOMEPAGE: ClassVar[str] = "https://brew.sh"

    REQUIRED_TOOLS: ClassVar[tuple[ToolDependency, ...]] = (
        ToolDependency("git", "git"),
        ToolDependency("uv", "uv"),
        ToolDependency("npm", "node"),
    )

    RUNTIME_TOOL: ClassVar[str] = "agent-browser"
    RUNNER: ClassVar[str] = "uv"
    RUNNER_ARGS: ClassVar[tuple[str, ...]] = ("run", "lethe")

    # =========================================================================
    # TOLERATED SERVICE-MANAGER ERRORS
    # =========================================================================
    # launchctl reports idempotent no-ops as free text with a non-zero exit.
    START_TOLERATED: ClassVar[tuple[str, ...]] = ("already loaded",)
    KICKSTART_TOLERATED: ClassVar[tuple[str, ...]] = (
        "could not find service",
        "no such process",
    )
    STOP_TOLERATED: ClassVar[tuple[str, ...]] = (
        "could not find service",
        "no such process",
        "not loaded",
    )

    # =========================================================================
    # LOGGING
    # =========================================================================
    LOG_FORMAT: ClassVar[str] = "%(message)s"
    VERBOSE_LOG_FORMAT: ClassVar[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    ENV_FILE_NAME: ClassVar[str] = ".env"
    ENV_FILE_MODE: ClassVar[int] = 0o600

    @classmethod
    def is_tolerated(cls, output: str, tolerated: tuple[str, ...]) -> bool:
        """
        Check whether command output matches a benign no-op pattern.

        Business context: launchctl signals "already in the desired state"
        only through message text, so a non-zero exit is converted to
        success when its output contains one of the operation's tolerated
        substrings.

        Args:
            output: Captured stderr or stdout of the failed command.
            tolerated: Substrings for the operation (e.g. STOP_TOLERATED).

        Returns:
            True if any tolerated substring occurs in output, ignoring case.

        Example:
            >>> Config.is_tolerated("Load failed: already loaded", Config.START_TOLERATED)
            True
        """
        lowered = output.lower()
        return any(pattern.lower() in lowered for pattern in tolerated)

    # =========================================================================
    # ENVIRONMENT-BASED SETTINGS (runtime configurable)
    # =========================================================================
    _home_override: ClassVar[Path | None] = None
    _repo_url_override: ClassVar[str | None] = None

    @classmethod
    def get_home_directory(cls) -> Path:
        """
        Get the home directory every installer path is derived from.

        Priority: test override, then LETHE_HOME, then the user's home.

        Returns:
            Absolute home directory path.
        """
        if cls._home_override is not None:
            return cls._home_override
        env_home = os.environ.get("LETHE_HOME", "").strip()
        if env_home:
            return Path(env_home).expanduser()
        return Path.home()

    @classmethod
    def get_repo_url(cls) -> str:
        """Get the remote URL used for a fresh clone."""
        if cls._repo_url_override is not None:
            return cls._repo_url_override
        return os.environ.get("LETHE_REPO_URL", "").strip() or cls.REPO_URL

    @classmethod
    def set_test_overrides(
        cls,
        home: Path | None = None,
        repo_url: str | None = None,
    ) -> None:
        """
        Set test overrides for environment-based settings.

        Must call reset_test_overrides() in test teardown to avoid
        affecting other tests.

        Args:
            home: Override for the home directory root. None to clear.
            repo_url: Override for the clone remote. None to clear.

        Example:
            >>> Config.set_test_overrides(home=Path("/Users/example"))
            >>> Config.get_home_directory()
            PosixPath('/Users/example')
            >>> Config.reset_test_overrides()
        """
        cls._home_override = home
        cls._repo_url_override = repo_url

    @classmethod
    def reset_test_overrides(cls) -> None:
        """Reset all test overrides to use environment variables."""
        cls._home_override = None
        cls._repo_url_override = None
