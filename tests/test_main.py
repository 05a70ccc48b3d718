"""Main test module for lethe-installer."""

import runpy
from unittest.mock import patch

import pytest

import lethe_installer


class TestVersion:
    """Test version information."""

    def test_version_exists(self) -> None:
        """Verifies that version string is defined in package.

        Business context:
        `lethe-installer --version` is the first thing asked for in a bug
        report; the package must always be able to answer it.
        """
        assert lethe_installer.__version__ is not None

    def test_version_format(self) -> None:
        """Verifies version follows MAJOR.MINOR.PATCH with numeric parts."""
        parts = lethe_installer.__version__.split(".")

        assert len(parts) == 3
        assert all(part.isdigit() for part in parts)

    def test_metadata_exported(self) -> None:
        assert lethe_installer.__title__ == "lethe_installer"
        assert lethe_installer.__license__ == "MIT"
        assert {"__version__", "__title__"} <= set(lethe_installer.__all__)


class TestModuleEntryPoint:
    def test_python_dash_m_exits_with_main_result(self) -> None:
        with (
            patch("lethe_installer.cli.main", return_value=0),
            pytest.raises(SystemExit) as exc_info,
        ):
            runpy.run_module("lethe_installer", run_name="__main__")

        assert exc_info.value.code == 0
