"""
Presentation layer for installer status.

PURPOSE: Turn a RuntimeStatus into display-ready state for the CLI and menu app.
AI CONTEXT: Pure functions/view models - no probing, no side effects.

The menu app owns a NotInstalled/Installing/Stopped/Running state machine;
derive_state() is the single mapping from a probed RuntimeStatus onto it.

USAGE:
    view = StatusViewModel(probe.current_status())
    print(view.report())
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models import RuntimeStatus, ServiceState

__all__ = ["StatusViewModel", "derive_state"]

_STATE_LABELS = {
    ServiceState.NOT_INSTALLED: ("Not installed", "⚪"),
    ServiceState.INSTALLING: ("Installing", "⏳"),
    ServiceState.STOPPED: ("Stopped", "🔴"),
    ServiceState.RUNNING: ("Running", "🟢"),
}


def derive_state(status: RuntimeStatus, installing: bool = False) -> ServiceState:
    """
    Map a probed status onto the caller-owned lifecycle state.

    Business context: The menu enables Start/Stop/Uninstall from this
    state. INSTALLING can only come from the caller, which knows a
    pipeline it launched is still in flight; the probe cannot see that.

    Args:
        status: Fresh RuntimeStatus from StatusProbe.
        installing: True while the caller's install action is running.

    Returns:
        INSTALLING if installing; NOT_INSTALLED unless the three-way
        installed check holds; RUNNING if launchd reports a live process,
        or if only the coarse query answered and the label is loaded (a
        loaded KeepAlive agent is kept running by launchd); STOPPED
        otherwise.

    Example:
        >>> derive_state(RuntimeStatus(True, True, True, True, True, 4821))
        <ServiceState.RUNNING: 'running'>
    """
    if installing:
        return ServiceState.INSTALLING
    if not status.installed:
        return ServiceState.NOT_INSTALLED
    if status.service_running:
        return ServiceState.RUNNING
    if status.service_loaded and not status.details_available:
        return ServiceState.RUNNING
    return ServiceState.STOPPED


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


@dataclass
class StatusViewModel:
    """View model for one status snapshot."""

    status: RuntimeStatus
    installing: bool = False

    @property
    def state(self) -> ServiceState:
        return derive_state(self.status, self.installing)

    @property
    def state_display(self) -> str:
        """Human label with emoji, e.g. '🟢 Running (pid 4821)'."""
        label, emoji = _STATE_LABELS[self.state]
        if self.state is ServiceState.RUNNING and self.status.pid is not None:
            return f"{emoji} {label} (pid {self.status.pid})"
        if self.state is ServiceState.RUNNING and not self.status.details_available:
            return f"{emoji} {label} (loaded, pid unknown)"
        return f"{emoji} {label}"

    def report(self) -> str:
        """Multi-line text report for terminal output."""
        lines = [
            f"Lethe: {self.state_display}",
            f"  installed:          {_yes_no(self.status.installed)}",
            f"  service registered: {_yes_no(self.status.service_registered)}",
            f"  service loaded:     {_yes_no(self.status.service_loaded)}",
            f"  service running:    {self._running_text()}",
            f"  source checkout:    {_yes_no(self.status.repo_available)}",
        ]
        return "\n".join(lines)

    def _running_text(self) -> str:
        if not self.status.details_available and not self.status.service_running:
            return "unknown"
        return _yes_no(self.status.service_running)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready payload: the raw status plus the derived state."""
        payload = self.status.to_dict()
        payload["state"] = self.state.value
        return payload
