"""
Pytest configuration and shared fixtures for Lethe installer tests.

This module contains:
- MockFileSystem: In-memory filesystem for testing without actual I/O
- FakeExecutor: Scripted CommandExecutor that records every command
- Shared fixtures available to all test modules
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

import pytest

from lethe_installer.config import Config
from lethe_installer.executor import CommandExecutor
from lethe_installer.models import CommandResult
from lethe_installer.paths import LethePaths

HOME = Path("/Users/example")


class MockFileSystem:
    """
    In-memory file system for testing.

    Simulates a file system using dictionaries:
    - _files: dict mapping path -> content (str)
    - _dirs: set of directory paths
    - _links: dict mapping link path -> target path
    - _modes: dict mapping path -> permission mode (int)
    - _executables: set of paths reported as executable binaries

    FEATURES:
    - No actual I/O operations
    - Easy to build partial-install fixtures
    - Failure injection via fail_writes() and lock()
    """

    def __init__(self) -> None:
        self._files: dict[str, str] = {}
        self._dirs: set[str] = set()
        self._links: dict[str, str] = {}
        self._modes: dict[str, int] = {}
        self._executables: set[str] = set()
        self._failing: set[str] = set()
        self._locked: set[str] = set()

    def _resolve(self, path: str) -> str:
        seen = 0
        while path in self._links and seen < 10:
            path = self._links[path]
            seen += 1
        return path

    def exists(self, path: str) -> bool:
        """Follows links: a dangling link reports False, like os.path.exists."""
        resolved = self._resolve(path)
        return resolved in self._files or resolved in self._dirs

    def is_file(self, path: str) -> bool:
        return self._resolve(path) in self._files

    def is_dir(self, path: str) -> bool:
        return self._resolve(path) in self._dirs

    def is_symlink(self, path: str) -> bool:
        return path in self._links

    def is_executable(self, path: str) -> bool:
        return path in self._executables

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create mock directory and parent directories.

        Raises:
            OSError: If directory exists and exist_ok is False,
                or if path is an existing file.
        """
        if path in self._dirs:
            if not exist_ok:
                raise OSError(f"Directory exists: {path}")
            return

        if path in self._files:
            raise OSError(f"Path is a file, not directory: {path}")

        parts = path.rstrip("/").split("/")
        for i in range(1, len(parts) + 1):
            parent = "/".join(parts[:i])
            if parent:
                self._dirs.add(parent)

    def read_text(self, path: str, _encoding: str = "utf-8") -> str:
        resolved = self._resolve(path)
        if resolved not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        return self._files[resolved]

    def write_text(
        self,
        path: str,
        content: str,
        _encoding: str = "utf-8",
        mode: int | None = None,
    ) -> None:
        """
        Write text to mock file, auto-creating parent directories.

        Raises:
            OSError: If the path was registered with fail_writes().
        """
        if path in self._failing:
            raise OSError(28, "No space left on device", path)

        parent = "/".join(path.rstrip("/").split("/")[:-1])
        if parent and parent not in self._dirs:
            self.makedirs(parent, exist_ok=True)

        self._files[path] = content
        if mode is not None:
            self._modes[path] = mode

    def remove(self, path: str) -> None:
        if path in self._locked:
            raise PermissionError(13, "Operation not permitted", path)
        if path in self._links:
            del self._links[path]
        elif path in self._files:
            del self._files[path]
            self._modes.pop(path, None)
        else:
            raise FileNotFoundError(f"No such file: {path}")

    def remove_tree(self, path: str) -> None:
        if path in self._locked:
            raise PermissionError(13, "Operation not permitted", path)
        if path not in self._dirs:
            raise FileNotFoundError(f"No such directory: {path}")
        prefix = path.rstrip("/") + "/"
        self._dirs = {d for d in self._dirs if d != path and not d.startswith(prefix)}
        self._files = {f: c for f, c in self._files.items() if not f.startswith(prefix)}
        self._links = {k: v for k, v in self._links.items() if not k.startswith(prefix)}

    def symlink(self, target: str, link: str) -> None:
        if link in self._links or link in self._files or link in self._dirs:
            raise FileExistsError(f"File exists: {link}")
        parent = "/".join(link.rstrip("/").split("/")[:-1])
        if parent and parent not in self._dirs:
            self.makedirs(parent, exist_ok=True)
        self._links[link] = target

    # =========================================================================
    # TEST HELPERS
    # =========================================================================

    def set_file(self, path: str, content: str = "") -> None:
        """Create a file (and its parents) directly."""
        self.write_text(path, content)

    def get_file(self, path: str) -> str | None:
        return self._files.get(self._resolve(path))

    def add_dir(self, path: str) -> None:
        self.makedirs(path, exist_ok=True)

    def discard_dir(self, path: str) -> None:
        """Drop one directory entry, leaving anything beneath it in place."""
        self._dirs.discard(path)

    def add_executable(self, path: str) -> None:
        self.set_file(path, "#!binary")
        self._executables.add(path)

    def link_target(self, path: str) -> str | None:
        return self._links.get(path)

    def mode(self, path: str) -> int | None:
        return self._modes.get(path)

    def fail_writes(self, path: str) -> None:
        """Make write_text(path) raise OSError (simulated disk full)."""
        self._failing.add(path)

    def lock(self, path: str) -> None:
        """Make remove/remove_tree(path) raise PermissionError."""
        self._locked.add(path)


# =============================================================================
# FAKE EXECUTOR
# =============================================================================

Response = CommandResult | BaseException | Callable[[list[str]], CommandResult]


@dataclass
class Call:
    """One recorded command invocation."""

    argv: list[str]
    cwd: str | None
    env: dict[str, str] | None
    capture_output: bool

    @property
    def line(self) -> str:
        return " ".join(self.argv)


def ok(stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(exit_code=0, stdout=stdout, stderr=stderr)


def fail(stderr: str = "", stdout: str = "", exit_code: int = 1) -> CommandResult:
    return CommandResult(exit_code=exit_code, stdout=stdout, stderr=stderr)


def _contains(argv: list[str], tokens: Sequence[str]) -> bool:
    n = len(tokens)
    return any(argv[i : i + n] == list(tokens) for i in range(len(argv) - n + 1))


class FakeExecutor(CommandExecutor):
    """
    Scripted CommandExecutor for deterministic installer tests.

    Responses are registered with respond(tokens, response): a command
    matches when its argv contains tokens as a contiguous run. The most
    recently registered matching rule wins. A response may be a
    CommandResult, an exception to raise, or a callable receiving argv.

    Unmatched commands succeed. Unmatched `which X` lookups succeed with
    /opt/homebrew/bin/X, so by default every tool is present.
    """

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self._rules: list[tuple[tuple[str, ...], Response]] = []

    def respond(self, tokens: Sequence[str], response: Response) -> None:
        self._rules.append((tuple(tokens), response))

    def run(
        self,
        executable: str,
        arguments: Sequence[str] = (),
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
    ) -> CommandResult:
        argv = [executable, *arguments]
        self.calls.append(
            Call(
                argv=argv,
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env) if env is not None else None,
                capture_output=capture_output,
            )
        )
        for tokens, response in reversed(self._rules):
            if _contains(argv, tokens):
                if isinstance(response, BaseException):
                    raise response
                if callable(response):
                    return response(argv)
                return response
        if "which" in argv:
            return ok(f"/opt/homebrew/bin/{argv[-1]}")
        return ok()

    @property
    def lines(self) -> list[str]:
        return [call.line for call in self.calls]

    def ran(self, *tokens: str) -> bool:
        return any(_contains(call.argv, tokens) for call in self.calls)

    def index(self, *tokens: str) -> int:
        """Position of the first call containing tokens (ValueError if none)."""
        for i, call in enumerate(self.calls):
            if _contains(call.argv, tokens):
                return i
        raise ValueError(f"No call with {tokens}")


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def mock_fs() -> MockFileSystem:
    """Provide a fresh, empty MockFileSystem instance."""
    return MockFileSystem()


@pytest.fixture
def executor() -> FakeExecutor:
    """Provide a FakeExecutor where every command and lookup succeeds."""
    return FakeExecutor()


@pytest.fixture
def paths() -> LethePaths:
    """Installation paths rooted at /Users/example."""
    return LethePaths(HOME)


@pytest.fixture
def installed_fs(mock_fs: MockFileSystem, paths: LethePaths) -> MockFileSystem:
    """MockFileSystem holding a complete install: checkout, config, plist."""
    mock_fs.add_dir(str(paths.repository_marker))
    mock_fs.set_file(str(paths.config_file), "LLM_PROVIDER=openrouter")
    mock_fs.symlink(str(paths.config_file), str(paths.install_env_link))
    mock_fs.set_file(str(paths.service_descriptor), "<plist/>")
    return mock_fs


@pytest.fixture(autouse=True)
def reset_config_overrides() -> Iterator[None]:
    """Ensure Config test overrides never leak between tests."""
    yield
    Config.reset_test_overrides()
