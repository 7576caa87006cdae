"""Configuration loading for the hammer loop."""

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from agentic_hammer.constants import (
    DEFAULT_EDIT_COMMAND,
    DEFAULT_FAST_MODEL,
    DEFAULT_HAMMER_BUDGET,
    DEFAULT_HAMMER_COMMAND,
    DEFAULT_HAMMER_SCRIPT,
    DEFAULT_LM_BASE_PATH,
    DEFAULT_SMART_MODEL,
)


@dataclass(frozen=True)
class Config:
    """Effective settings for a hammer session."""

    lm_base_path: str = DEFAULT_LM_BASE_PATH
    lm_fast_model: str = DEFAULT_FAST_MODEL
    lm_smart_model: str = DEFAULT_SMART_MODEL
    hammer_budget: int = DEFAULT_HAMMER_BUDGET
    hammer_script_name: str = DEFAULT_HAMMER_SCRIPT
    hammer_command: str = DEFAULT_HAMMER_COMMAND
    edit_command: str = DEFAULT_EDIT_COMMAND
    api_key: Optional[str] = None


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


# Environment variable -> Config field
ENV_VARS = {
    "HAMMER_LM_BASE_PATH": "lm_base_path",
    "HAMMER_FAST_MODEL": "lm_fast_model",
    "HAMMER_SMART_MODEL": "lm_smart_model",
    "HAMMER_BUDGET": "hammer_budget",
    "HAMMER_SCRIPT_NAME": "hammer_script_name",
    "HAMMER_FIX_COMMAND": "hammer_command",
    "HAMMER_EDIT_COMMAND": "edit_command",
    "OPENAI_API_KEY": "api_key",
}

CONFIG_FIELDS = {f.name for f in fields(Config)}


def load_settings(settings_file: Path) -> dict:
    """
    Load a settings file from YAML or JSON.

    Keys must be Config field names. An empty file yields no overrides.
    """
    if not settings_file.exists():
        raise ConfigError(f"Settings file not found: {settings_file}")

    content = settings_file.read_text()

    if settings_file.suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {settings_file}: {e}")
    elif settings_file.suffix == ".json":
        try:
            data = json.loads(content) if content.strip() else None
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {settings_file}: {e}")
    else:
        raise ConfigError(
            f"Unsupported file type: {settings_file.suffix}. Use .yaml, .yml, or .json"
        )

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file must contain a mapping: {settings_file}")

    unknown = sorted(set(data) - CONFIG_FIELDS)
    if unknown:
        raise ConfigError(f"Unknown settings in {settings_file}: {', '.join(unknown)}")

    return data


def _parse_budget(value) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"hammer_budget must be an integer, got {value!r}")
    try:
        budget = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"hammer_budget must be an integer, got {value!r}")
    if budget < 0:
        raise ConfigError(f"hammer_budget must be >= 0, got {budget}")
    return budget


def load_config(settings_file: Optional[Path] = None, **overrides) -> Config:
    """
    Build the effective configuration.

    Precedence, lowest first: defaults, settings file, environment
    variables (a .env file is loaded first), keyword overrides. Overrides
    set to None are ignored so CLI options can be passed straight through.

    Raises:
        ConfigError: If a setting is unknown or invalid.
    """
    load_dotenv()

    values = {}
    if settings_file is not None:
        values.update(load_settings(settings_file))

    for env_var, field_name in ENV_VARS.items():
        env_value = os.environ.get(env_var)
        if env_value:
            values[field_name] = env_value

    for key, value in overrides.items():
        if key not in CONFIG_FIELDS:
            raise ConfigError(f"Unknown setting: {key}")
        if value is not None:
            values[key] = value

    if "hammer_budget" in values:
        values["hammer_budget"] = _parse_budget(values["hammer_budget"])

    for key in ("hammer_command", "edit_command", "hammer_script_name"):
        if key in values and not str(values[key]).strip():
            raise ConfigError(f"{key} must not be empty")

    return replace(Config(), **values)
