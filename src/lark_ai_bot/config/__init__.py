"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    BotConfig,
    CredentialsConfig,
    GeminiConfig,
    LarkConfig,
    LoggingConfig,
    PromptConfig,
    ReactionsConfig,
    RuntimeConfig,
    ServerConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "BotConfig",
    # Provider-specific configs
    "LarkConfig",
    "ReactionsConfig",
    "GeminiConfig",
    # Behaviour
    "PromptConfig",
    "CredentialsConfig",
    "RuntimeConfig",
    # Ambient
    "ServerConfig",
    "LoggingConfig",
]
