# src/augur/core/config.py
"""
Configuration schema and loading for Augur.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction. Alert and plan files
are plain YAML and are loaded with PyYAML straight into the contract
models.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from augur.contracts import Alert, PlanNodeDefinition, parse_plan_nodes


class EngineSettings(BaseModel):
    """Execution engine behaviour.

    Example YAML:
        engine:
          variant_max_workers: 4
          load_entrypoint_plugins: true
    """

    model_config = {"frozen": True}

    variant_max_workers: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Thread pool size for enumerator variants (1 = run variants in order on the caller's thread)",
    )
    load_entrypoint_plugins: bool = Field(
        default=False,
        description="Also register operator plugins advertised under the 'augur' entry point group",
    )


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class DataSettings(BaseModel):
    """Local time-series data used by the built-in in-memory data fetcher.

    Example YAML:
        data:
          timestamp_column: ts
          csv_sources:
            page_views: data/page_views.csv
    """

    model_config = {"frozen": True}

    timestamp_column: str = Field(default="timestamp")
    csv_sources: dict[str, Path] = Field(
        default_factory=dict,
        description="Metric name -> CSV file with a timestamp column and one value column per metric",
    )


class AugurSettings(BaseModel):
    """Top-level Augur configuration.

    All settings are optional; an empty file yields the defaults.
    """

    model_config = {"frozen": True}

    engine: EngineSettings = Field(default_factory=EngineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    data: DataSettings = Field(default_factory=DataSettings)


# Regex pattern for ${VAR} or ${VAR:-default} syntax (upper-case names only,
# lower-case ${...} are alert template properties and must survive).
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            if match.group(2) is not None:
                return match.group(2)
            # No env var and no default - keep original (will likely cause error)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    """Dynaconf upper-cases keys; Pydantic fields are lower-case."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path | None = None) -> AugurSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (AUGUR_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: AUGUR_ENGINE__VARIANT_MAX_WORKERS=4.

    Args:
        config_path: Path to YAML configuration file, or None for
            environment + defaults only

    Returns:
        Validated AugurSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="AUGUR",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _expand_env_vars(raw_config)

    settings = AugurSettings(**raw_config)
    if config_path is not None and settings.data.csv_sources:
        # CSV paths are relative to the settings file
        base = config_path.parent
        resolved = {name: path if path.is_absolute() else (base / path).resolve() for name, path in settings.data.csv_sources.items()}
        settings = settings.model_copy(update={"data": settings.data.model_copy(update={"csv_sources": resolved})})
    return settings


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def load_alert(path: Path) -> Alert:
    """Load an alert (plan or legacy shape) from a YAML file.

    Example YAML (plan alert):
        id: 42
        name: page-views
        template:
          nodes:
            - name: echo
              type: Echo
              params: {input_Echo: "${message}"}
        template_properties:
          message: hello
    """
    raw = _read_yaml(path)
    if not isinstance(raw, dict):
        raise ValueError(f"Alert file {path} must contain a mapping, got {type(raw).__name__}")
    return Alert.model_validate(raw)


def load_plan_nodes(path: Path) -> tuple[PlanNodeDefinition, ...]:
    """Load plan node definitions from YAML.

    Accepts either a bare list of nodes, a mapping with a 'nodes' key, or a
    full alert file (nodes taken from its template).
    """
    raw = _read_yaml(path)
    if isinstance(raw, dict):
        if "template" in raw and isinstance(raw["template"], dict):
            raw = raw["template"]
        raw = raw.get("nodes", [])
    if raw is not None and not isinstance(raw, list):
        raise ValueError(f"Plan file {path} must contain a list of nodes")
    return parse_plan_nodes(raw)
