"""
FileSystem abstraction for the Lethe installer.

PURPOSE: Injectable file system interface for testability.
AI CONTEXT: Allows faking the installed layout in unit tests without temp directories.

DESIGN:
- Protocol defines the interface
- RealFileSystem uses actual os/shutil operations
- MockFileSystem in tests/conftest.py stores data in memory for tests

USAGE:
    # Production
    probe = StatusProbe(paths, filesystem=RealFileSystem())

    # Tests (MockFileSystem from conftest.py)
    probe = StatusProbe(paths, filesystem=mock_fs)  # pytest fixture
"""

from __future__ import annotations

import os
import shutil
import tempfile
from typing import Protocol

__all__ = ["FileSystem", "RealFileSystem"]


class FileSystem(Protocol):
    """
    Protocol for file system operations.

    All paths are strings (absolute paths expected). Implementations
    include RealFileSystem for production and MockFileSystem for testing.

    Business context: The installer has no state store of its own - the
    install directory, config directory and LaunchAgent plist ARE the
    state. Routing every access through this protocol lets tests build any
    partial-install fixture in memory.
    """

    def exists(self, path: str) -> bool:
        """
        Check if path exists (file or directory).

        Follows symlinks, so a dangling link reports False.

        Args:
            path: Absolute path to check.

        Returns:
            True if the path exists. Never raises.
        """
        ...

    def is_file(self, path: str) -> bool:
        """Check if path is a regular file (following symlinks)."""
        ...

    def is_dir(self, path: str) -> bool:
        """Check if path is a directory."""
        ...

    def is_symlink(self, path: str) -> bool:
        """
        Check if path is a symbolic link, dangling or not.

        Business context: ~/.lethe/.env is a symlink into the config
        directory; it must be detected and replaced even when its target
        has been deleted.
        """
        ...

    def is_executable(self, path: str) -> bool:
        """
        Check if path is an executable regular file.

        Business context: Used to find brew and uv at fixed Homebrew
        locations before falling back to a `which` lookup.

        Args:
            path: Absolute path to a candidate binary.

        Returns:
            True if the file exists and the current user may execute it.
        """
        ...

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create directory and all parent directories.

        Equivalent to shell `mkdir -p` when exist_ok is True.

        Raises:
            OSError: If directory exists and exist_ok is False.
        """
        ...

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """
        Read file contents as text.

        Raises:
            FileNotFoundError: If file doesn't exist.
        """
        ...

    def write_text(
        self,
        path: str,
        content: str,
        encoding: str = "utf-8",
        mode: int | None = None,
    ) -> None:
        """
        Atomically write text to a file.

        Content is written to a sibling temporary file and moved into
        place, so readers see either the old or the new file, never a
        truncated one. Parent directory must exist.

        Args:
            path: Absolute path to file to write.
            content: String content to write.
            encoding: Text encoding (default utf-8).
            mode: Optional permission bits applied before the move.

        Raises:
            OSError: On disk full, permission denied or missing parent.

        Example:
            >>> fs.write_text('/Users/me/.config/lethe/.env', 'A=1', mode=0o600)
        """
        ...

    def remove(self, path: str) -> None:
        """
        Remove a file or symbolic link.

        Raises:
            FileNotFoundError: If nothing exists at path.
        """
        ...

    def remove_tree(self, path: str) -> None:
        """
        Recursively remove a directory.

        Business context: Uninstall deletes the whole ~/.lethe checkout.

        Raises:
            FileNotFoundError: If directory doesn't exist.
        """
        ...

    def symlink(self, target: str, link: str) -> None:
        """
        Create a symbolic link at link pointing to target.

        Raises:
            FileExistsError: If something already exists at link.
        """
        ...


class RealFileSystem:
    """
    Real file system implementation using os, shutil and tempfile.

    This is the production implementation that performs actual I/O.
    Each method delegates directly to the corresponding standard library
    call.
    """

    def exists(self, path: str) -> bool:  # pragma: no cover
        return os.path.exists(path)

    def is_file(self, path: str) -> bool:  # pragma: no cover
        return os.path.isfile(path)

    def is_dir(self, path: str) -> bool:  # pragma: no cover
        return os.path.isdir(path)

    def is_symlink(self, path: str) -> bool:  # pragma: no cover
        return os.path.islink(path)

    def is_executable(self, path: str) -> bool:  # pragma: no cover
        return os.path.isfile(path) and os.access(path, os.X_OK)

    def makedirs(self, path: str, exist_ok: bool = False) -> None:  # pragma: no cover
        os.makedirs(path, exist_ok=exist_ok)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:  # pragma: no cover
        with open(path, encoding=encoding) as f:
            return f.read()

    def write_text(
        self,
        path: str,
        content: str,
        encoding: str = "utf-8",
        mode: int | None = None,
    ) -> None:  # pragma: no cover
        """
        Write through a temporary file in the same directory, then os.replace().

        The temporary file is removed if anything fails before the move.
        """
        directory = os.path.dirname(path) or "."
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", text=True)
        try:
            with os.fdopen(fd, "w", encoding=encoding) as f:
                f.write(content)
            if mode is not None:
                os.chmod(tmp_path, mode)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def remove(self, path: str) -> None:  # pragma: no cover
        os.remove(path)

    def remove_tree(self, path: str) -> None:  # pragma: no cover
        shutil.rmtree(path)

    def symlink(self, target: str, link: str) -> None:  # pragma: no cover
        os.symlink(target, link)
