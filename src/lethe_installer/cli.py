"""
CLI entry point for the Lethe installer.

PURPOSE: Command-line front end for install, service control and status.
AI CONTEXT: Thin dispatch layer - all behavior lives in the installer core.

USAGE:
    # Install (secrets may come from the environment instead of argv)
    LETHE_API_KEY=sk-... TELEGRAM_BOT_TOKEN=123:abc \\
        lethe-installer install --provider openrouter --telegram-user-id 42

    # Manage service
    lethe-installer start | stop | restart
    lethe-installer status [--json]
    lethe-installer uninstall --yes

    # Re-install or update, reusing the settings in ~/.config/lethe/.env
    lethe-installer install

    # Re-run one pipeline step
    lethe-installer step packages

    # Open a checkout script in Terminal
    lethe-installer terminal update
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from functools import lru_cache
from typing import TYPE_CHECKING

from .config import Config
from .errors import LetheError
from .models import AnthropicAuthMode, InstallConfiguration, InstallDefaults, Provider
from .paths import LethePaths

if TYPE_CHECKING:
    from .installer import Installer
    from .scripts import ScriptRunner
    from .service import ServiceController
    from .status import StatusProbe

PROG = "lethe-installer"
SERVICE_ACTIONS = ("start", "stop", "restart")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get module logger (cached for thread safety)."""
    return logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Configure root logging once for CLI use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=Config.VERBOSE_LOG_FORMAT if verbose else Config.LOG_FORMAT,
    )


def _log(message: str, *, emoji: str = "") -> None:
    """Log message with optional emoji prefix for CLI output.

    Args:
        message: The message to log.
        emoji: Optional emoji prefix for visual CLI feedback.
    """
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


def _fail(error: Exception) -> int:
    _get_logger().error(f"❌ {error}")
    return EXIT_FAILED


def build_configuration(
    args: argparse.Namespace,
    defaults: InstallDefaults | None = None,
) -> InstallConfiguration:
    """
    Build a validated InstallConfiguration from parsed install arguments.

    Each value comes from the first source that has it: the flag, then
    (for secrets) LETHE_API_KEY / TELEGRAM_BOT_TOKEN / TELEGRAM_USER_ID,
    then the previous install's settings in defaults. Models, API base and
    credential are only carried over when the provider is unchanged, and
    the credential only when it is stored under the variable the chosen
    provider and auth mode write.

    Raises:
        ValueError: If a required value is missing.
    """
    defaults = defaults or InstallDefaults()
    provider = Provider(args.provider) if args.provider else defaults.provider
    same_provider = provider is defaults.provider
    if args.auth_mode:
        auth_mode = AnthropicAuthMode(args.auth_mode)
    elif same_provider:
        auth_mode = defaults.anthropic_auth_mode
    else:
        auth_mode = AnthropicAuthMode.SUBSCRIPTION_TOKEN

    previous = defaults if same_provider else InstallDefaults(provider=provider)
    api_key = (
        args.api_key
        or os.environ.get("LETHE_API_KEY", "")
        or previous.credential_for(provider, auth_mode)
    )
    return InstallConfiguration.create(
        provider=provider,
        anthropic_auth_mode=auth_mode,
        model=args.model or previous.model,
        aux_model=args.aux_model or previous.aux_model,
        api_base=args.api_base or previous.api_base,
        api_key=api_key,
        telegram_bot_token=(
            args.telegram_bot_token
            or os.environ.get("TELEGRAM_BOT_TOKEN", "")
            or defaults.telegram_bot_token
        ),
        telegram_user_id=(
            args.telegram_user_id
            or os.environ.get("TELEGRAM_USER_ID", "")
            or defaults.telegram_user_id
        ),
    )


def _configuration_or_usage_error(args: argparse.Namespace) -> InstallConfiguration | None:
    """Build the configuration, pre-filled from an existing install; None after logging."""
    from .environment import load_install_defaults

    try:
        return build_configuration(args, load_install_defaults(LethePaths.default()))
    except ValueError as e:
        _get_logger().error(f"❌ {e}")
        return None


def run_install(config: InstallConfiguration, installer: Installer | None = None) -> int:
    """
    Run the full install pipeline with progress printed per step.

    Args:
        config: Validated install configuration.
        installer: Optional Installer for testability.

    Returns:
        0 on success, 1 if a step failed.

    Example:
        >>> # lethe-installer install --provider openai --telegram-user-id 42
        ✔ Dependencies ready (git, uv, npm)
        ...
        ✅ Lethe installed
    """
    from .installer import Installer as InstallerImpl

    installer = installer or InstallerImpl(LethePaths.default())
    _log(f"Installing Lethe ({config.provider.display_name}, {config.model})", emoji="🚀")
    try:
        result = installer.install(config, progress=lambda message: _log(message, emoji="✔"))
    except LetheError as e:
        return _fail(e)

    _log("Lethe installed", emoji="✅")
    _log(f"Install directory: {result.install_directory}")
    _log(f"Config file: {result.config_file}")
    _log(f"LaunchAgent: {result.service_descriptor}")
    return EXIT_OK


def run_step(
    name: str,
    config: InstallConfiguration | None,
    installer: Installer | None = None,
) -> int:
    """Re-run a single install step by name."""
    from .installer import Installer as InstallerImpl

    installer = installer or InstallerImpl(LethePaths.default())
    try:
        installer.run_step(name, config, progress=lambda message: _log(message, emoji="✔"))
    except LetheError as e:
        return _fail(e)
    return EXIT_OK


def run_uninstall(installer: Installer | None = None) -> int:
    """Unload the agent and remove the plist and checkout."""
    from .installer import Installer as InstallerImpl

    installer = installer or InstallerImpl(LethePaths.default())
    try:
        installer.uninstall()
    except LetheError as e:
        return _fail(e)
    _log("Lethe has been removed", emoji="🗑️")
    return EXIT_OK


def run_service_action(action: str, controller: ServiceController | None = None) -> int:
    """
    Run start, stop or restart against the LaunchAgent.

    Returns:
        0 on success (including tolerated launchctl no-ops), 1 otherwise.
    """
    from .service import ServiceController as ControllerImpl

    controller = controller or ControllerImpl(LethePaths.default())
    handlers = {
        "start": controller.start,
        "stop": controller.stop,
        "restart": controller.restart,
    }
    try:
        handlers[action]()
    except LetheError as e:
        return _fail(e)
    _log(f"Lethe {action} done", emoji="✅")
    return EXIT_OK


def run_status(probe: StatusProbe | None = None, as_json: bool = False) -> int:
    """
    Print the current runtime status.

    Args:
        probe: Optional StatusProbe for testability.
        as_json: Print a JSON object instead of the text report.

    Returns:
        Always 0; probing never fails.
    """
    from .presenters import StatusViewModel
    from .status import StatusProbe as ProbeImpl

    probe = probe or ProbeImpl(LethePaths.default())
    view = StatusViewModel(probe.current_status())
    # Note: Using print() intentionally for stdout piping support
    if as_json:
        print(json.dumps(view.to_dict(), indent=2))
    else:
        print(view.report())
    return EXIT_OK


def run_terminal(action: str, extra_args: list[str], runner: ScriptRunner | None = None) -> int:
    """Open one of the checkout's shell scripts in Terminal."""
    from .scripts import ScriptAction
    from .scripts import ScriptRunner as RunnerImpl

    runner = runner or RunnerImpl(LethePaths.default())
    try:
        runner.run_in_terminal(ScriptAction(action), extra_args)
    except LetheError as e:
        return _fail(e)
    _log(f"{ScriptAction(action).title}: opened in Terminal", emoji="🖥️")
    return EXIT_OK


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        help="LLM provider (default: previous install, else openrouter)",
    )
    parser.add_argument(
        "--auth-mode",
        choices=[m.value for m in AnthropicAuthMode],
        help="Anthropic credential kind (default: previous install, else subscription_token)",
    )
    parser.add_argument("--model", help="Main model (default: provider default)")
    parser.add_argument("--aux-model", help="Auxiliary model (default: provider default)")
    parser.add_argument("--api-base", help="Custom API base URL")
    parser.add_argument("--api-key", help="Provider credential (or set LETHE_API_KEY)")
    parser.add_argument(
        "--telegram-bot-token",
        help="Telegram bot token (or set TELEGRAM_BOT_TOKEN)",
    )
    parser.add_argument(
        "--telegram-user-id",
        help="Allowed Telegram user id (or set TELEGRAM_USER_ID)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    from .__version__ import __version__

    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Install and supervise the Lethe background agent",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging, including every external command",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    install_parser = subparsers.add_parser("install", help="Install or update Lethe")
    _add_config_arguments(install_parser)

    uninstall_parser = subparsers.add_parser(
        "uninstall",
        help="Unload the agent and remove ~/.lethe and the LaunchAgent",
    )
    uninstall_parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm removal",
    )

    for action in SERVICE_ACTIONS:
        subparsers.add_parser(action, help=f"{action.capitalize()} the LaunchAgent")

    status_parser = subparsers.add_parser("status", help="Show installation and service status")
    status_parser.add_argument("--json", action="store_true", help="Print JSON")

    step_parser = subparsers.add_parser("step", help="Re-run a single install step")
    step_parser.add_argument(
        "name",
        choices=["dependencies", "repository", "runtime", "environment", "packages", "service"],
    )
    _add_config_arguments(step_parser)

    terminal_parser = subparsers.add_parser(
        "terminal",
        help="Open a checkout script (install/update/uninstall) in Terminal",
    )
    terminal_parser.add_argument("action", choices=["install", "update", "uninstall"])
    terminal_parser.add_argument("script_args", nargs=argparse.REMAINDER)

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point for the Lethe installer.

    Parses command-line arguments and dispatches to the matching handler.
    With no subcommand, prints status.

    Returns:
        0 on success, 1 when an installer operation failed, 2 for
        invalid or missing input.

    Raises:
        SystemExit: On --help or argument parsing errors.

    Example:
        >>> # From command line:
        >>> # lethe-installer status --json
        >>> sys.exit(main())  # Typical usage pattern
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "install":
        config = _configuration_or_usage_error(args)
        if config is None:
            return EXIT_USAGE
        return run_install(config)
    if args.command == "step":
        config = None
        if args.name == "environment":
            config = _configuration_or_usage_error(args)
            if config is None:
                return EXIT_USAGE
        return run_step(args.name, config)
    if args.command == "uninstall":
        if not args.yes:
            _log("Refusing to uninstall without --yes", emoji="⚠️")
            return EXIT_USAGE
        return run_uninstall()
    if args.command in SERVICE_ACTIONS:
        return run_service_action(args.command)
    if args.command == "terminal":
        return run_terminal(args.action, args.script_args)
    if args.command == "status":
        return run_status(as_json=args.json)
    return run_status()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
