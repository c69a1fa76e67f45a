"""Configuration system for sz.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages. Every section is optional: a
missing file section falls back to the built-in defaults.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from sz.core.coordinator import DEFAULT_WORKERS
from sz.core.prober import DEFAULT_BLACKLIST
from sz.core.target import normalize_root

# Matches ${VARIABLE_NAME} references
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

# Searched in order when no configuration file is given
CONFIG_SEARCH_PATHS: Final[tuple[Path, ...]] = (
    Path("sz.yaml"),
    Path("sz.yml"),
    Path("~/.sz.yaml"),
    Path("~/.sz.yml"),
    Path("/etc/sz/config.yaml"),
)


class ScanConfig(BaseModel):
    """Configuration for the traversal engine."""

    blacklist: Annotated[
        list[str],
        Field(
            description="Absolute paths never counted or traversed",
        ),
    ] = sorted(DEFAULT_BLACKLIST)
    workers: Annotated[
        int,
        Field(
            gt=0,
            description="Maximum number of directories probed concurrently",
        ),
    ] = DEFAULT_WORKERS

    @field_validator("blacklist", mode="after")
    @classmethod
    def validate_blacklist_absolute(cls, v: list[str]) -> list[str]:
        """Validate and normalize blacklist entries.

        Args:
            v: Blacklisted paths

        Returns:
            Paths with trailing separators removed

        Raises:
            ValueError: If an entry is not an absolute path
        """
        normalized: list[str] = []
        for entry in v:
            if not os.path.isabs(entry):
                msg = f"Blacklist entries must be absolute paths, got: {entry}"
                raise ValueError(msg)
            normalized.append(normalize_root(entry))
        return normalized


class ReportConfig(BaseModel):
    """Configuration for report presentation."""

    human: Annotated[
        bool,
        Field(
            description="Show sizes with K/M/G suffixes",
        ),
    ] = False
    summary: Annotated[
        bool,
        Field(
            description="Only list entries above the summary threshold",
        ),
    ] = True
    zeroes: Annotated[
        bool,
        Field(
            description="Include zero-size entries (disables summary mode)",
        ),
    ] = False
    colors: Annotated[
        bool,
        Field(
            description="Colorize human-readable sizes",
        ),
    ] = True
    summary_threshold_percent: Annotated[
        float,
        Field(
            ge=0,
            le=100,
            description="Share of the total an entry must exceed in summary mode",
        ),
    ] = 1.0


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "WARNING"
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Also send log records to syslog",
        ),
    ] = False


class MainConfig(BaseModel):
    """Top-level configuration container."""

    scan: ScanConfig = ScanConfig()
    report: ReportConfig = ReportConfig()
    application: ApplicationConfig = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """Raised when a referenced environment variable is not set."""


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails.

    The message is meant to be shown to the user as is.
    """


def resolve_env_var(value: str) -> str:
    """Resolve ${VARIABLE_NAME} references in a string value.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["SCAN_ROOT"] = "/srv"
        >>> resolve_env_var("${SCAN_ROOT}/cache")
        '/srv/cache'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)

        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting sz."
            )
            raise EnvironmentVariableError(msg)

        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars(data: object) -> object:
    """Recursively resolve environment variables in parsed YAML data.

    Strings are resolved; mappings and lists are walked; every other value is
    returned unchanged.
    """
    if isinstance(data, str):
        return resolve_env_var(data)
    if isinstance(data, Mapping):
        return {key: resolve_env_vars(value) for key, value in data.items()}  # pyright: ignore[reportUnknownVariableType]
    if isinstance(data, list):
        return [resolve_env_vars(item) for item in data]  # pyright: ignore[reportUnknownVariableType]
    return data


def discover_config_file() -> Path | None:
    """Return the first existing file from ``CONFIG_SEARCH_PATHS``, if any."""
    for candidate in CONFIG_SEARCH_PATHS:
        try:
            path = candidate.expanduser()
        except RuntimeError:
            # Home directory cannot be determined
            continue
        if path.is_file():
            return path
    return None


def load_config(config_path: Path | None = None) -> MainConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to a YAML file; built-in defaults when None

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file cannot be read, parsed, resolved or
            validated
    """
    if config_path is None:
        return MainConfig()

    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise ConfigurationError(msg)

    try:
        with config_path.open("r") as f:
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

    # An empty file means all defaults
    if raw_data is None:
        return MainConfig()

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars(raw_data)
    except EnvironmentVariableError as e:
        msg = f"Environment variable resolution failed in: {config_path}\n{e}"
        raise ConfigurationError(msg) from e

    try:
        config = MainConfig.model_validate(resolved_data)
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

    return config
