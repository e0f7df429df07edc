"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path

import yaml

from .schema import BotConfig


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Lines whose first non-blank character is ``#`` are YAML comments and are
    returned unchanged.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ValueError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(f"Environment variable {var_name} not found")
        return value

    return "\n".join(
        line if line.lstrip().startswith("#") else re.sub(r"\$\{([^}]+)\}", replacer, line)
        for line in text.split("\n")
    )


def load_config(path: Path) -> BotConfig:
    """
    Load configuration from YAML file with environment variable substitution.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated BotConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If environment variables are missing or config is invalid
        ValidationError: If config doesn't match schema
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open() as f:
        raw_yaml = f.read()

    # Substitute environment variables
    yaml_with_env = substitute_env_vars(raw_yaml)

    # Parse YAML; an empty file means "all defaults"
    config_dict = yaml.safe_load(yaml_with_env) or {}
    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")

    # LARK_BOT_* environment variables fill settings the file leaves unset
    config = BotConfig(**config_dict)

    validate_config(config)

    return config


def validate_config(config: BotConfig) -> None:
    """
    Perform additional cross-field validation.

    Args:
        config: Configuration to validate

    Raises:
        ValueError: If settings conflict with each other
    """
    env_names = [
        config.credentials.app_id_env,
        config.credentials.app_secret_env,
        config.credentials.api_key_env,
    ]
    if len(set(env_names)) != len(env_names):
        raise ValueError("Credential environment variable names must be distinct")

    if config.prompt.bold_marker.strip() == "*":
        raise ValueError("bold_marker must not be a single '*'; it conflicts with Lark markdown")

    if config.server.webhook_path == "/health":
        raise ValueError("webhook_path /health is reserved for the health endpoint")
