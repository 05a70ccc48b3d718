"""
Runtime status reconciliation for the Lethe agent.

PURPOSE: Infer installed/registered/loaded/running state from ground truth.
AI CONTEXT: There is no state store - every call re-reads the filesystem and launchd.

TWO-TIER SERVICE QUERY:
1. `launchctl print gui/<uid>/com.lethe.agent` - detailed; yields pid and state
2. `launchctl list` - coarse fallback; only tells whether the label is loaded
"""

from __future__ import annotations

import logging
import re

from .config import Config
from .errors import LaunchFailure
from .executor import CommandExecutor
from .filesystem import FileSystem, RealFileSystem
from .models import RuntimeStatus
from .paths import LethePaths
from .service import domain_target

__all__ = ["StatusProbe", "parse_service_details"]

logger = logging.getLogger(__name__)

_PID_LINE = re.compile(r"^\s*pid\s*=\s*(\d+)\s*$", re.MULTILINE)
_RUNNING_LINE = re.compile(r"^\s*state\s*=\s*running\s*$", re.MULTILINE | re.IGNORECASE)


def parse_service_details(output: str) -> tuple[bool, int | None]:
    """
    Extract running state and pid from `launchctl print` output.

    Args:
        output: Captured stdout of the detailed query.

    Returns:
        (running, pid). A `pid = N` line yields that pid and running=True;
        without one, pid is None and running reflects a `state = running`
        line.

    Example:
        >>> parse_service_details("\\tstate = running\\n\\tpid = 4821\\n")
        (True, 4821)
        >>> parse_service_details("\\tstate = not running\\n")
        (False, None)
    """
    match = _PID_LINE.search(output)
    pid = int(match.group(1)) if match else None
    running = pid is not None or bool(_RUNNING_LINE.search(output))
    return running, pid


class StatusProbe:
    """
    Read-only probe producing a fresh RuntimeStatus on every call.

    Business context: The menu app polls this to drive its own
    NotInstalled/Stopped/Running display, and may poll between long
    install steps to show progress. No result is ever cached.
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

    def is_installed(self) -> bool:
        """
        True only if install dir, its .git marker AND the config file exist.

        The install dir must be a directory; a stray file at ~/.lethe is
        not a checkout.

        Stricter than "directory exists" so that a failed clone or an
        install interrupted before the config was written is not reported
        as installed.
        """
        return (
            self._fs.is_dir(str(self._paths.install_directory))
            and self._fs.exists(str(self._paths.repository_marker))
            and self._fs.exists(str(self._paths.config_file))
        )

    def current_status(self) -> RuntimeStatus:
        """
        Probe filesystem and launchd.

        Returns:
            A new RuntimeStatus. Query failures degrade to
            loaded/running False rather than raising.
        """
        loaded, running, pid, has_details = self._service_state()
        return RuntimeStatus(
            repo_available=self._fs.exists(str(self._paths.repository_root)),
            installed=self.is_installed(),
            service_registered=self._fs.exists(str(self._paths.service_descriptor)),
            service_loaded=loaded,
            service_running=running,
            pid=pid,
            details_available=has_details,
        )

    def _service_state(self) -> tuple[bool, bool, int | None, bool]:
        try:
            detailed = self._executor.run(Config.LAUNCHCTL, ["print", domain_target()])
        except LaunchFailure as e:
            logger.warning(f"launchctl print unavailable: {e}")
            detailed = None

        if detailed is not None and detailed.ok:
            running, pid = parse_service_details(detailed.stdout)
            return True, running, pid, True

        try:
            listing = self._executor.run(Config.LAUNCHCTL, ["list"])
        except LaunchFailure as e:
            logger.warning(f"launchctl list unavailable: {e}")
            return False, False, None, False

        loaded = listing.ok and Config.SERVICE_LABEL in listing.stdout
        return loaded, False, None, False
