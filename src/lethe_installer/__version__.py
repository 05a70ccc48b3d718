"""Version information for lethe-installer."""

__version__ = "0.3.0"
__version_date__ = "2026-10-19"

__title__ = "lethe_installer"
__description__ = "Installer and launchd supervisor for the Lethe background agent"
__url__ = "https://github.com/atemerev/lethe-installer"

__author__ = "Lethe contributors"

__license__ = "MIT"
__copyright__ = "Copyright 2026 Lethe contributors"

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
