"""Configuration system for the tiffin admin coordination layer.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages. Every field has a default, so an
empty or missing section yields the timing the admin dashboard ships with.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tiffin_sync.types.models import Severity

# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

DEFAULT_DURATIONS_MS: Final[Mapping[Severity, int]] = {
    Severity.SUCCESS: 4000,
    Severity.ERROR: 6000,
    Severity.WARNING: 5000,
    Severity.INFO: 4000,
}


class BaseConfig(BaseModel):
    """Base configuration model with common settings."""

    model_config: ConfigDict = ConfigDict(  # pyright: ignore[reportIncompatibleVariableOverride]
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )


class NotificationQueueConfig(BaseConfig):
    """Timing configuration for the notification queue.

    Gaps are the pauses between one notification leaving the screen and the
    next one appearing, so consecutive messages stay visually distinct.
    """

    default_durations_ms: Annotated[
        dict[Severity, int],
        Field(description="Display time per severity when the caller gives none"),
    ] = dict(DEFAULT_DURATIONS_MS)
    info_gap_ms: Annotated[
        int,
        Field(ge=0, le=60_000, description="Pause after an info notification"),
    ] = 800
    gap_ms: Annotated[
        int,
        Field(ge=0, le=60_000, description="Pause after any other notification"),
    ] = 1200
    dismiss_gap_ms: Annotated[
        int,
        Field(ge=0, le=60_000, description="Pause after a manual dismissal"),
    ] = 500
    persistent_fallback_ms: Annotated[
        int,
        Field(gt=0, le=600_000, description="Upper bound for persistent notifications"),
    ] = 3000
    duplicate_window_ms: Annotated[
        int,
        Field(
            ge=0,
            le=60_000,
            description="Drop identical message+severity pairs inside this window (0 disables)",
        ),
    ] = 0

    @field_validator("default_durations_ms", mode="after")
    @classmethod
    def fill_missing_severities(cls, v: dict[Severity, int]) -> dict[Severity, int]:
        """Complete the duration table and reject negative durations.

        Args:
            v: Partial or complete severity to duration mapping

        Returns:
            Mapping with an entry for every severity

        Raises:
            ValueError: If any duration is negative
        """
        merged = dict(DEFAULT_DURATIONS_MS)
        for severity, duration in v.items():
            if duration < 0:
                msg = f"Duration for '{severity.value}' must be >= 0, got: {duration}"
                raise ValueError(msg)
            merged[severity] = duration
        return merged

    def gap_after(self, severity: Severity) -> float:
        """Return the pause, in seconds, that follows a notification of ``severity``."""
        gap = self.info_gap_ms if severity is Severity.INFO else self.gap_ms
        return gap / 1000


class SyncConfig(BaseConfig):
    """Configuration for the request coordinator."""

    debounce_delay_ms: Annotated[
        int,
        Field(ge=0, le=60_000, description="Quiet period before a debounced sync runs"),
    ] = 300
    batch_size: Annotated[
        int,
        Field(ge=1, le=1000, description="Maximum queued units dispatched per batch"),
    ] = 50
    batch_yield_ms: Annotated[
        int,
        Field(ge=0, le=10_000, description="Pause between consecutive batches"),
    ] = 100


class ApplicationConfig(BaseConfig):
    """Configuration for application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    log_format: Annotated[
        str | None,
        Field(description="Override for the console log format"),
    ] = None


class MainConfig(BaseConfig):
    """Top-level configuration container.

    Aggregates all configuration sections:
    - notifications: Notification queue timing
    - sync: Request coordinator behavior
    - application: Application-level settings
    """

    notifications: Annotated[
        NotificationQueueConfig,
        Field(description="Notification queue configuration"),
    ] = NotificationQueueConfig()
    sync: Annotated[
        SyncConfig,
        Field(description="Request coordinator configuration"),
    ] = SyncConfig()
    application: Annotated[
        ApplicationConfig,
        Field(description="Application-level configuration"),
    ] = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails.

    Raised when a referenced environment variable is missing. The message
    names the variable but never includes any resolved value.
    """


class ConfigurationError(Exception):
    """Exception raised when configuration loading or validation fails."""


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Args:
        value: String potentially containing ${VARIABLE_NAME} references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced environment variable is missing

    Examples:
        >>> os.environ["TEST_VAR"] = "INFO"
        >>> resolve_env_var("${TEST_VAR}")
        'INFO'
        >>> resolve_env_var("no variables here")
        'no variables here'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)
        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in a dictionary.

    Traverses nested dictionaries and lists, resolving environment variable
    references in string values. Non-string values are preserved as-is.

    Args:
        data: Dictionary potentially containing environment variable references

    Returns:
        New dictionary with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced environment variable is missing
    """
    result: dict[str, object] = {}

    for key, value in data.items():
        if isinstance(value, str):
            result[key] = resolve_env_var(value)
        elif isinstance(value, dict):
            result[key] = resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
        elif isinstance(value, list):
            resolved_list: list[object] = []
            for item in value:  # pyright: ignore[reportUnknownVariableType]  # YAML list items
                if isinstance(item, str):
                    resolved_list.append(resolve_env_var(item))
                elif isinstance(item, dict):
                    resolved_list.append(resolve_env_vars_in_dict(item))  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
                else:
                    resolved_list.append(item)  # pyright: ignore[reportUnknownArgumentType]  # YAML primitives
            result[key] = resolved_list
        else:
            result[key] = value

    return result


def load_config(config_path: Path) -> MainConfig:
    """Load and validate configuration from a YAML file.

    An empty file is valid and produces the default configuration.

    Args:
        config_path: Path to configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file cannot be loaded, references an unset
            environment variable, or fails validation

    Examples:
        >>> config = load_config(Path("config/tiffin-sync.yaml"))
        >>> config.sync.debounce_delay_ms
        300
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    if raw_data is None:
        raw_data = {}

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {config_path}\n"
            f"{e}\n"
            f"Set the required environment variable before starting the application."
        )
        raise ConfigurationError(msg) from e

    try:
        return MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        error_lines = ["Configuration validation failed:", ""]
        for error in e.errors():
            field_path = " → ".join(str(loc) for loc in error["loc"])
            error_lines.append(f"  Field: {field_path}")
            error_lines.append(f"  Error: {error['msg']}")
            error_lines.append(f"  Type: {error['type']}")
            error_lines.append("")

        error_lines.append(f"Configuration file: {config_path}")
        error_lines.append("Please fix the above errors and try again.")
        raise ConfigurationError("\n".join(error_lines)) from e
