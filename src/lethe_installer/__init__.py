"""
Lethe Installer.

PURPOSE: Provision and supervise the Lethe background agent on macOS.
AI CONTEXT: Stateless installation/service-lifecycle core used by the menu app and CLI.

PACKAGE STRUCTURE:
- executor.py: External process execution (CommandResult)
- paths.py: Pure derivation of every filesystem location
- dependencies.py: git/uv/npm via Homebrew, agent-browser via npm
- repository.py: Clone or update the ~/.lethe checkout
- environment.py: Render and persist the .env configuration
- service.py: launchd descriptor install and start/stop/restart
- status.py: Read-only runtime status reconciliation
- installer.py: Ordered install pipeline and uninstall
- scripts.py: Open the checkout's shell scripts in Terminal
- cli.py: Command-line interface

QUICK START:
    lethe-installer install --provider openrouter --telegram-user-id 42
    lethe-installer status
    lethe-installer restart
"""

from lethe_installer.__version__ import (
    __author__,
    __copyright__,
    __description__,
    __license__,
    __title__,
    __url__,
    __version__,
    __version_date__,
)

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__url__",
    "__author__",
    "__license__",
    "__copyright__",
]
