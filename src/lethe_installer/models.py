"""
Data models for the Lethe installer.

PURPOSE: Immutable value types passed between installer components.
AI CONTEXT: Every collaboration goes through these explicit return values.

MODEL OVERVIEW:
- Provider / AnthropicAuthMode: LLM provider selection
- InstallConfiguration: Validated settings supplied by the caller
- InstallDefaults: Settings recovered from an existing .env for a re-install
- CommandResult: Outcome of one external command
- RuntimeStatus: Freshly probed installation/service snapshot
- InstallResult: Locations produced by a successful install
- ServiceState: Caller-owned state machine derived from RuntimeStatus

USAGE:
    config = InstallConfiguration.create(
        provider=Provider.OPENROUTER,
        api_key="sk-or-...",
        telegram_bot_token="123:abc",
        telegram_user_id="42",
    )
    config.auth_env_name  # 'OPENROUTER_API_KEY'
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class Provider(str, Enum):
    """LLM provider the agent talks to."""

    OPENROUTER = "openrouter"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"

    @property
    def display_name(self) -> str:
        return {
            Provider.OPENROUTER: "OpenRouter",
            Provider.ANTHROPIC: "Anthropic",
            Provider.OPENAI: "OpenAI",
        }[self]

    @property
    def default_model(self) -> str:
        return {
            Provider.OPENROUTER: "openrouter/moonshotai/kimi-k2.5-0127",
            Provider.ANTHROPIC: "claude-opus-4-6",
            Provider.OPENAI: "gpt-5.2",
        }[self]

    @property
    def default_aux_model(self) -> str:
        return {
            Provider.OPENROUTER: "openrouter/google/gemini-3-flash-preview",
            Provider.ANTHROPIC: "claude-haiku-4-5-20251001",
            Provider.OPENAI: "gpt-5.2-mini",
        }[self]


class AnthropicAuthMode(str, Enum):
    """How Anthropic credentials are supplied. Ignored for other providers."""

    API_KEY = "api_key"
    SUBSCRIPTION_TOKEN = "subscription_token"


# Lookup order when recovering a credential from an existing .env file.
CREDENTIAL_ENV_NAMES = (
    "OPENROUTER_API_KEY",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_AUTH_TOKEN",
    "OPENAI_API_KEY",
)


def credential_env_name(provider: Provider, anthropic_auth_mode: AnthropicAuthMode) -> str:
    """Variable a credential is stored under for this provider and auth mode."""
    if provider is Provider.OPENROUTER:
        return "OPENROUTER_API_KEY"
    if provider is Provider.OPENAI:
        return "OPENAI_API_KEY"
    if anthropic_auth_mode is AnthropicAuthMode.API_KEY:
        return "ANTHROPIC_API_KEY"
    return "ANTHROPIC_AUTH_TOKEN"


@dataclass(frozen=True)
class InstallConfiguration:
    """
    Validated install settings supplied by the caller.

    The installer trusts this record once received: credential, models and
    both Telegram identifiers are expected to be non-empty. Use create()
    to build one from raw user input with validation applied.

    PERSISTENCE:
    Rendered into ~/.config/lethe/.env by the environment writer. The
    credential is written under auth_env_name.
    """

    provider: Provider
    model: str
    aux_model: str
    api_base: str
    api_key: str
    telegram_bot_token: str
    telegram_user_id: str
    anthropic_auth_mode: AnthropicAuthMode = AnthropicAuthMode.SUBSCRIPTION_TOKEN

    @property
    def auth_env_name(self) -> str:
        """
        Name of the environment variable the credential is persisted under.

        Total, pure function of provider and (for Anthropic) auth mode.

        Returns:
            OPENROUTER_API_KEY, OPENAI_API_KEY, ANTHROPIC_API_KEY or
            ANTHROPIC_AUTH_TOKEN.

        Example:
            >>> config.provider, config.anthropic_auth_mode
            (<Provider.ANTHROPIC: 'anthropic'>, <AnthropicAuthMode.API_KEY: 'api_key'>)
            >>> config.auth_env_name
            'ANTHROPIC_API_KEY'
        """
        return credential_env_name(self.provider, self.anthropic_auth_mode)

    @classmethod
    def create(
        cls,
        provider: Provider,
        api_key: str,
        telegram_bot_token: str,
        telegram_user_id: str,
        model: str = "",
        aux_model: str = "",
        api_base: str = "",
        anthropic_auth_mode: AnthropicAuthMode = AnthropicAuthMode.SUBSCRIPTION_TOKEN,
    ) -> InstallConfiguration:
        """
        Build a configuration from raw user input, validating it.

        Trims surrounding whitespace from every field. Blank models fall
        back to the provider defaults; Anthropic subscription-token mode
        always uses the provider defaults since the subscription fixes them.

        Business context: The menu app's wizard performs this validation
        before calling the installer; the CLI uses the same rules so both
        entry points reject the same inputs.

        Args:
            provider: Selected LLM provider.
            api_key: Credential for the provider.
            telegram_bot_token: Telegram bot token.
            telegram_user_id: Allowed Telegram user id.
            model: Main model identifier (blank for provider default).
            aux_model: Auxiliary model identifier (blank for provider default).
            api_base: Optional API base URL; may stay empty.
            anthropic_auth_mode: Credential kind for Anthropic.

        Returns:
            A validated InstallConfiguration.

        Raises:
            ValueError: Naming the first required field that is empty.
        """
        bot_token = telegram_bot_token.strip()
        user_id = telegram_user_id.strip()
        credential = api_key.strip()

        if not bot_token:
            raise ValueError("Telegram Bot Token is required.")
        if not user_id:
            raise ValueError("Telegram User ID is required.")

        fixed_models = (
            provider is Provider.ANTHROPIC
            and anthropic_auth_mode is AnthropicAuthMode.SUBSCRIPTION_TOKEN
        )
        if fixed_models:
            main_model = provider.default_model
            aux = provider.default_aux_model
        else:
            main_model = model.strip() or provider.default_model
            aux = aux_model.strip() or provider.default_aux_model

        config = cls(
            provider=provider,
            model=main_model,
            aux_model=aux,
            api_base=api_base.strip(),
            api_key=credential,
            telegram_bot_token=bot_token,
            telegram_user_id=user_id,
            anthropic_auth_mode=anthropic_auth_mode,
        )
        if not credential:
            raise ValueError(f"{config.auth_env_name} is required.")
        return config


@dataclass(frozen=True)
class InstallDefaults:
    """
    Settings recovered from a previous install, used to pre-fill a re-install.

    Every field may be blank. Nothing here is validated; the values only
    stand in for input the caller did not supply, and the result still
    goes through InstallConfiguration.create().
    """

    provider: Provider = Provider.OPENROUTER
    anthropic_auth_mode: AnthropicAuthMode = AnthropicAuthMode.SUBSCRIPTION_TOKEN
    model: str = ""
    aux_model: str = ""
    api_base: str = ""
    credentials: Mapping[str, str] = field(default_factory=dict)
    telegram_bot_token: str = ""
    telegram_user_id: str = ""

    @classmethod
    def from_environment(cls, values: Mapping[str, str]) -> InstallDefaults:
        """
        Build defaults from parsed .env values.

        An unknown or missing LLM_PROVIDER means OpenRouter. The Anthropic
        auth mode is inferred from which credential variable is present.

        Example:
            >>> defaults = InstallDefaults.from_environment(
            ...     {"LLM_PROVIDER": "anthropic", "ANTHROPIC_API_KEY": "sk-ant-1"}
            ... )
            >>> defaults.anthropic_auth_mode, defaults.api_key
            (<AnthropicAuthMode.API_KEY: 'api_key'>, 'sk-ant-1')
        """
        try:
            provider = Provider(values.get("LLM_PROVIDER", ""))
        except ValueError:
            provider = Provider.OPENROUTER
        if "ANTHROPIC_API_KEY" in values:
            auth_mode = AnthropicAuthMode.API_KEY
        else:
            auth_mode = AnthropicAuthMode.SUBSCRIPTION_TOKEN
        return cls(
            provider=provider,
            anthropic_auth_mode=auth_mode,
            model=values.get("LLM_MODEL", ""),
            aux_model=values.get("LLM_MODEL_AUX", ""),
            api_base=values.get("LLM_API_BASE", ""),
            credentials={name: values[name] for name in CREDENTIAL_ENV_NAMES if name in values},
            telegram_bot_token=values.get("TELEGRAM_BOT_TOKEN", ""),
            telegram_user_id=values.get("TELEGRAM_ALLOWED_USER_IDS", ""),
        )

    @property
    def api_key(self) -> str:
        """The first stored credential in CREDENTIAL_ENV_NAMES order, else ''."""
        for name in CREDENTIAL_ENV_NAMES:
            if self.credentials.get(name):
                return self.credentials[name]
        return ""

    def credential_for(self, provider: Provider, anthropic_auth_mode: AnthropicAuthMode) -> str:
        """Stored credential for that provider and mode, else ''."""
        return self.credentials.get(credential_env_name(provider, anthropic_auth_mode), "")


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command; both streams are stripped."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """First non-empty stream, stderr preferred, else empty string."""
        return self.stderr or self.stdout


@dataclass(frozen=True)
class RuntimeStatus:
    """
    Snapshot of installation and service state.

    Constructed fresh by every StatusProbe call; never cached or mutated.

    FIELDS:
    - repo_available: ~/devel/lethe checkout for Terminal scripts exists
    - installed: install dir AND .git marker AND config file all exist
    - service_registered: LaunchAgent plist exists
    - service_loaded: launchd knows the label
    - service_running: launchd reports a live process
    - pid: process id when launchd reports one
    - details_available: False when only the `launchctl list` fallback
      answered, so service_running and pid are unknown rather than negative
    """

    repo_available: bool
    installed: bool
    service_registered: bool
    service_loaded: bool
    service_running: bool
    pid: int | None = None
    details_available: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class InstallResult:
    """Locations produced by a successful install."""

    install_directory: Path
    config_file: Path
    service_descriptor: Path

    def to_dict(self) -> dict[str, str]:
        return {
            "install_directory": str(self.install_directory),
            "config_file": str(self.config_file),
            "service_descriptor": str(self.service_descriptor),
        }


class ServiceState(Enum):
    """
    Caller-owned lifecycle state, driven by periodic status probes.

    The installer core never stores this; presenters.derive_state() maps a
    RuntimeStatus onto it. INSTALLING is only ever set by the caller while
    a pipeline it started is in flight.
    """

    NOT_INSTALLED = "not_installed"
    INSTALLING = "installing"
    STOPPED = "stopped"
    RUNNING = "running"
