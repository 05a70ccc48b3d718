"""
Tests for dependencies module.

PURPOSE: Verify tool lookup on the fixed search path and Homebrew/npm provisioning.
AI CONTEXT: `which` answers are scripted per tool through FakeExecutor.
"""

from __future__ import annotations

import pytest
from conftest import FakeExecutor, MockFileSystem, fail, ok

from lethe_installer.config import Config, ToolDependency
from lethe_installer.dependencies import DependencyInstaller, tool_environment
from lethe_installer.errors import InstallFailed, LaunchFailure, MissingDependency

BREW = "/opt/homebrew/bin/brew"


def missing(executor: FakeExecutor, command: str) -> None:
    executor.respond(["which", command], fail(exit_code=1))


def appears_after_install(executor: FakeExecutor, command: str, installer_tokens: list[str]):
    """Make `which command` fail until a call matching installer_tokens has run."""

    def lookup(argv: list[str]):
        if executor.ran(*installer_tokens):
            return ok(f"/opt/homebrew/bin/{command}")
        return fail(exit_code=1)

    executor.respond(["which", command], lookup)


@pytest.fixture
def installer(executor: FakeExecutor, mock_fs: MockFileSystem) -> DependencyInstaller:
    return DependencyInstaller(executor, mock_fs)


class TestToolEnvironment:
    def test_pins_path(self) -> None:
        assert tool_environment() == {"PATH": Config.TOOL_SEARCH_PATH}

    def test_homebrew_first(self) -> None:
        assert Config.TOOL_SEARCH_PATH.split(":")[:2] == ["/opt/homebrew/bin", "/opt/homebrew/sbin"]


class TestCommandExists:
    """Tests for command_exists()."""

    def test_found(self, installer: DependencyInstaller, executor: FakeExecutor) -> None:
        assert installer.command_exists("git") is True
        assert executor.lines == ["/usr/bin/env which git"]
        assert executor.calls[0].env == {"PATH": Config.TOOL_SEARCH_PATH}

    def test_not_found(self, installer: DependencyInstaller, executor: FakeExecutor) -> None:
        missing(executor, "git")

        assert installer.command_exists("git") is False

    def test_empty_output_is_not_found(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        executor.respond(["which", "git"], ok(""))

        assert installer.command_exists("git") is False

    def test_launch_failure_is_not_found(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        executor.respond(["which"], LaunchFailure("/usr/bin/env", "No such file or directory"))

        assert installer.command_exists("git") is False


class TestResolveBinaryPath:
    """Tests for resolve_binary_path()."""

    def test_prefers_executable_on_search_path(
        self, installer: DependencyInstaller, executor: FakeExecutor, mock_fs: MockFileSystem
    ) -> None:
        mock_fs.add_executable("/usr/local/bin/uv")

        assert installer.resolve_binary_path("uv") == "/usr/local/bin/uv"
        assert executor.calls == []

    def test_search_order_is_homebrew_first(
        self, installer: DependencyInstaller, mock_fs: MockFileSystem
    ) -> None:
        mock_fs.add_executable("/usr/local/bin/uv")
        mock_fs.add_executable("/opt/homebrew/bin/uv")

        assert installer.resolve_binary_path("uv") == "/opt/homebrew/bin/uv"

    def test_non_executable_file_is_skipped(
        self, installer: DependencyInstaller, executor: FakeExecutor, mock_fs: MockFileSystem
    ) -> None:
        mock_fs.set_file("/opt/homebrew/bin/uv", "not a binary")
        executor.respond(["which", "uv"], ok("/Users/example/.local/bin/uv"))

        assert installer.resolve_binary_path("uv") == "/Users/example/.local/bin/uv"

    def test_which_failure_raises(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        missing(executor, "uv")

        with pytest.raises(InstallFailed):
            installer.resolve_binary_path("uv")


class TestResolvePackageManager:
    """Tests for resolve_package_manager()."""

    @pytest.mark.parametrize("location", Config.BREW_CANDIDATES)
    def test_fixed_locations(
        self,
        location: str,
        installer: DependencyInstaller,
        executor: FakeExecutor,
        mock_fs: MockFileSystem,
    ) -> None:
        mock_fs.add_executable(location)

        assert installer.resolve_package_manager() == location
        assert executor.calls == []

    def test_falls_back_to_which(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        executor.respond(["which", "brew"], ok("/Users/example/homebrew/bin/brew"))

        assert installer.resolve_package_manager() == "/Users/example/homebrew/bin/brew"

    def test_missing_homebrew(self, installer: DependencyInstaller, executor: FakeExecutor) -> None:
        """Verifies a Mac without Homebrew gets an actionable error.

        Business context:
        The installer cannot bootstrap Homebrew itself (it needs an
        interactive sudo prompt). The message must name Homebrew and where
        to get it.
        """
        missing(executor, "brew")

        with pytest.raises(MissingDependency, match="Homebrew") as exc_info:
            installer.resolve_package_manager()

        assert "https://brew.sh" in str(exc_info.value)

    def test_which_launch_failure_means_missing(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        executor.respond(["which", "brew"], LaunchFailure("/usr/bin/env", "Bad CPU type"))

        with pytest.raises(MissingDependency):
            installer.resolve_package_manager()


class TestEnsureTools:
    """Tests for ensure_tools() and install_tool()."""

    def test_all_present_installs_nothing(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        installer.ensure_tools()

        assert executor.lines == [
            "/usr/bin/env which git",
            "/usr/bin/env which uv",
            "/usr/bin/env which npm",
        ]

    def test_missing_npm_installs_node(
        self, installer: DependencyInstaller, executor: FakeExecutor, mock_fs: MockFileSystem
    ) -> None:
        """npm ships in the node formula, so the package name differs."""
        mock_fs.add_executable(BREW)
        executor.respond(["list", "--versions", "node"], ok(""))
        appears_after_install(executor, "npm", [BREW, "install", "node"])

        installer.ensure_tools()

        assert executor.ran(BREW, "install", "node")
        assert not executor.ran(BREW, "install", "npm")

    def test_listed_package_is_not_reinstalled(
        self, installer: DependencyInstaller, executor: FakeExecutor, mock_fs: MockFileSystem
    ) -> None:
        mock_fs.add_executable(BREW)
        executor.respond(["list", "--versions", "uv"], ok("uv 0.9.2"))
        appears_after_install(executor, "uv", [BREW, "list", "--versions", "uv"])

        installer.ensure_tools()

        assert not executor.ran(BREW, "install")

    def test_still_missing_after_install(
        self, installer: DependencyInstaller, executor: FakeExecutor, mock_fs: MockFileSystem
    ) -> None:
        mock_fs.add_executable(BREW)
        executor.respond(["list", "--versions"], ok(""))
        missing(executor, "git")

        with pytest.raises(InstallFailed, match="Installed git, but git is still unavailable"):
            installer.ensure_tools()

    def test_brew_install_failure_propagates(
        self, installer: DependencyInstaller, executor: FakeExecutor, mock_fs: MockFileSystem
    ) -> None:
        mock_fs.add_executable(BREW)
        executor.respond(["list", "--versions"], ok(""))
        executor.respond([BREW, "install"], fail("Error: No available formula with the name"))
        missing(executor, "uv")

        with pytest.raises(InstallFailed, match="No available formula"):
            installer.ensure_tools()

    def test_missing_tool_without_homebrew(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        missing(executor, "git")
        missing(executor, "brew")

        with pytest.raises(MissingDependency):
            installer.ensure_tools()

    def test_custom_tool_list(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        installer.ensure_tools((ToolDependency("jq", "jq"),))

        assert executor.lines == ["/usr/bin/env which jq"]


class TestEnsureRuntimeDependencies:
    """Tests for the agent-browser runtime tool."""

    def test_present_tool_only_refreshes_payload(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        installer.ensure_runtime_dependencies()

        assert not executor.ran("npm")
        assert executor.lines[-1] == "/usr/bin/env agent-browser install --with-deps"

    def test_missing_tool_installed_with_npm(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        appears_after_install(executor, "agent-browser", ["npm", "install", "-g"])

        installer.ensure_runtime_dependencies()

        assert executor.index("npm", "install", "-g", "agent-browser") < executor.index(
            "agent-browser", "install", "--with-deps"
        )

    def test_still_missing_after_npm(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        missing(executor, "agent-browser")

        with pytest.raises(InstallFailed, match="still unavailable in PATH"):
            installer.ensure_runtime_dependencies()

        assert not executor.ran("--with-deps")

    def test_payload_install_failure(
        self, installer: DependencyInstaller, executor: FakeExecutor
    ) -> None:
        executor.respond(["--with-deps"], fail("browserType.launch: Executable doesn't exist"))

        with pytest.raises(InstallFailed, match="Executable doesn't exist"):
            installer.ensure_runtime_dependencies()
