"""Configuration management for raygatherer.

Two sources feed the CLI besides its own flags:

1. A YAML config file holding connection defaults and output preferences
   (``host``, ``basic_auth_user``, ``basic_auth_password``, ``json``,
   ``verbose``). Unknown keys are ignored.
2. Environment variables for diagnostic logging (``RAYGATHERER_LOG_FILE``,
   ``RAYGATHERER_LOG_LEVEL``).

Config file location, first match wins:
1. Explicit ``--config PATH``
2. ``$XDG_CONFIG_HOME/raygatherer/config.yml``
3. ``~/.config/raygatherer/config.yml``
4. Platform-specific config dir (``~/Library/Application Support/raygatherer/`` on macOS)

Precedence per value is CLI flag > config file > built-in default.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_dir
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "raygatherer"
CONFIG_FILENAME = "config.yml"


class ConfigError(Exception):
    """The config file exists but cannot be used."""


# =============================================================================
# Config File
# =============================================================================


class FileConfig(BaseModel):
    """Values recognized in the YAML config file.

    Attributes:
        host: Device host URL.
        basic_auth_user: Basic auth username.
        basic_auth_password: Basic auth password.
        json_output: Emit JSON instead of human-readable output (key ``json``).
        verbose: Trace HTTP requests on stderr.
    """

    # Unquoted numbers (e.g. a numeric password) are read as strings
    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    host: str | None = None
    basic_auth_user: str | None = None
    basic_auth_password: str | None = None
    json_output: bool | None = Field(default=None, alias="json")
    verbose: bool | None = None


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Get the config file path used when --config is not given.

    Args:
        env: Environment mapping (defaults to os.environ).

    Returns:
        Path to config.yml.
    """
    env = os.environ if env is None else env

    xdg_home = env.get("XDG_CONFIG_HOME")
    if xdg_home:
        return Path(xdg_home) / APP_NAME / CONFIG_FILENAME

    home_config = Path.home() / ".config" / APP_NAME / CONFIG_FILENAME
    if home_config.exists():
        return home_config

    platform_config = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
    if platform_config.exists():
        return platform_config

    return home_config


def load_config(config_path: Path | None = None) -> FileConfig:
    """Load the YAML config file.

    A missing or blank file yields an empty configuration.

    Args:
        config_path: Explicit path; the default location when None.

    Returns:
        FileConfig with the recognized keys.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, is not
            a mapping, or holds a value of the wrong type.
    """
    path = config_path if config_path is not None else default_config_path()
    if not path.exists():
        return FileConfig()

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e

    if not content.strip():
        return FileConfig()

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse config file {path}: {e}") from e

    if not isinstance(parsed, dict):
        raise ConfigError(
            f"Config file must be a YAML mapping (key: value), got {type(parsed).__name__}"
        )

    try:
        return FileConfig.model_validate(parsed)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise ConfigError(f"Invalid value in config file {path}: {fields}") from e


# =============================================================================
# Diagnostic Logging Settings
# =============================================================================


class LoggingSettings(BaseSettings):
    """Diagnostic log settings from the environment.

    Loads ``RAYGATHERER_LOG_FILE`` and ``RAYGATHERER_LOG_LEVEL``.

    Attributes:
        log_file: Log file path; logging is disabled when unset.
        log_level: Log level name.
    """

    model_config = SettingsConfigDict(
        env_prefix="RAYGATHERER_",
        extra="ignore",
    )

    log_file: Path | None = None
    log_level: str = "INFO"


def settings_summary(settings: Mapping[str, Any]) -> str:
    """Describe merged settings for the diagnostic log, without secrets."""
    shown = {
        key: ("***" if key == "basic_auth_password" and value else value)
        for key, value in settings.items()
    }
    return ", ".join(f"{key}={value}" for key, value in shown.items())
