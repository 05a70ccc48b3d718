"""
Environment file rendering for the Lethe agent.

PURPOSE: Persist the install configuration as ~/.config/lethe/.env and read it back.
AI CONTEXT: The config directory copy is the single source of truth;
~/.lethe/.env is a symlink to it so the agent finds it by convention.

FILE FORMAT:
Line-oriented KEY=VALUE, '#' comment lines, blank lines allowed. Values are
written verbatim - no quoting or escaping - so a value containing a newline
cannot be represented and is rejected.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from .config import Config
from .errors import InstallFailed
from .filesystem import FileSystem, RealFileSystem
from .models import InstallConfiguration, InstallDefaults
from .paths import LethePaths

__all__ = [
    "EnvironmentWriter",
    "load_install_defaults",
    "parse_environment",
    "render_environment",
]

logger = logging.getLogger(__name__)


def render_environment(
    config: InstallConfiguration,
    paths: LethePaths,
    generated_at: datetime,
) -> list[str]:
    """
    Render the .env file as an ordered list of lines.

    Deterministic for a fixed timestamp. The credential is written under
    config.auth_env_name and no other credential variable is emitted.

    Business context: The agent reads provider, model and Telegram
    settings from this file at startup; the installer is the only writer.

    Args:
        config: Validated install configuration.
        paths: Installation paths (workspace and memory dirs are embedded).
        generated_at: Timestamp recorded in the header comment.

    Returns:
        Lines without trailing newlines, in file order.

    Example:
        >>> lines = render_environment(config, paths, datetime(2026, 1, 1, tzinfo=UTC))
        >>> "LLM_PROVIDER=openrouter" in lines
        True
    """
    return [
        "# Lethe Configuration",
        f"# Generated by lethe-installer on {generated_at.isoformat()}",
        "",
        "# Telegram",
        f"TELEGRAM_BOT_TOKEN={config.telegram_bot_token}",
        f"TELEGRAM_ALLOWED_USER_IDS={config.telegram_user_id}",
        "",
        "# LLM",
        f"LLM_PROVIDER={config.provider.value}",
        f"LLM_MODEL={config.model}",
        f"LLM_MODEL_AUX={config.aux_model}",
        f"LLM_API_BASE={config.api_base}",
        f"{config.auth_env_name}={config.api_key}",
        "",
        "# Paths",
        f"WORKSPACE_DIR={paths.workspace_directory}",
        f"MEMORY_DIR={paths.memory_directory}",
        "",
        "HEARTBEAT_ENABLED=true",
        "HIPPOCAMPUS_ENABLED=true",
    ]


def parse_environment(text: str) -> dict[str, str]:
    """
    Parse .env text into a key/value mapping.

    Blank lines, '#' comments and lines without '=' are skipped. Each line
    is trimmed and split at the first '='; the value keeps everything after
    it verbatim. A repeated key keeps its last value.

    Example:
        >>> parse_environment("# Telegram\\nTELEGRAM_BOT_TOKEN=123:abc=\\n")
        {'TELEGRAM_BOT_TOKEN': '123:abc='}
    """
    values: dict[str, str] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if sep:
            values[key] = value
    return values


def load_install_defaults(
    paths: LethePaths,
    filesystem: FileSystem | None = None,
) -> InstallDefaults:
    """
    Recover the previous install's settings from ~/.config/lethe/.env.

    Business context: Re-running install is how users update or retry
    after a failure; they should not have to re-enter every secret.

    Returns:
        Defaults parsed from the config file, or empty defaults when the
        file is missing or unreadable.
    """
    fs: FileSystem = filesystem or RealFileSystem()
    config_file = str(paths.config_file)
    if not fs.is_file(config_file):
        return InstallDefaults()
    try:
        text = fs.read_text(config_file)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Ignoring unreadable {config_file}: {e}")
        return InstallDefaults()
    return InstallDefaults.from_environment(parse_environment(text))


def _check_representable(config: InstallConfiguration) -> None:
    values = {
        "TELEGRAM_BOT_TOKEN": config.telegram_bot_token,
        "TELEGRAM_ALLOWED_USER_IDS": config.telegram_user_id,
        "LLM_MODEL": config.model,
        "LLM_MODEL_AUX": config.aux_model,
        "LLM_API_BASE": config.api_base,
        config.auth_env_name: config.api_key,
    }
    for key, value in values.items():
        if "\n" in value or "\r" in value:
            raise InstallFailed(f"Value for {key} contains a line break and cannot be written.")


class EnvironmentWriter:
    """Writes the rendered .env and links it into the install directory."""

    def __init__(self, paths: LethePaths, filesystem: FileSystem | None = None) -> None:
        self._paths = paths
        self._fs: FileSystem = filesystem or RealFileSystem()

    def write(self, config: InstallConfiguration, generated_at: datetime | None = None) -> str:
        """
        Persist the configuration and replace ~/.lethe/.env with a symlink.

        Creates the config and workspace directories, writes the file
        atomically with owner-only permissions (it holds credentials),
        removes whatever currently sits at ~/.lethe/.env (file or link,
        dangling or not) and links it to the config copy.

        Args:
            config: Validated install configuration.
            generated_at: Header timestamp; defaults to now (UTC).

        Returns:
            Absolute path of the written config file.

        Raises:
            InstallFailed: If a value is not representable or any
                filesystem operation fails. Not retried.
        """
        _check_representable(config)
        timestamp = generated_at or datetime.now(UTC)
        config_file = str(self._paths.config_file)
        link = str(self._paths.install_env_link)
        content = "\n".join(render_environment(config, self._paths, timestamp))

        try:
            self._fs.makedirs(str(self._paths.config_directory), exist_ok=True)
            self._fs.makedirs(str(self._paths.workspace_directory), exist_ok=True)
            self._fs.write_text(config_file, content, mode=Config.ENV_FILE_MODE)

            if self._fs.is_symlink(link) or self._fs.exists(link):
                self._fs.remove(link)
            self._fs.symlink(config_file, link)
        except OSError as e:
            logger.error(f"Failed to write environment file: {e}")
            raise InstallFailed(f"Failed to write {config_file}: {e}") from e

        logger.info(f"Wrote configuration to {config_file}")
        return config_file
