"""Utility functions and helpers.

This module provides various utilities for the Lark AI Bot:
- errors: Exception hierarchy
- security: Secret redaction
- logging: Structured logging with secret sanitization
- health: Health check utilities
"""

from lark_ai_bot.utils.errors import (
    AuthenticationError,
    BotError,
    CredentialError,
    DeliveryError,
    GenerationError,
    IngressError,
    MalformedEventError,
    VerificationError,
)
from lark_ai_bot.utils.health import (
    HealthChecker,
    HealthReport,
    HealthStatus,
)
from lark_ai_bot.utils.logging import (
    LogFormat,
    LogLevel,
    bind_context,
    clear_context,
    configure_logging,
    unbind_context,
)
from lark_ai_bot.utils.security import (
    RedactionError,
    SecretRedactor,
    SecurityError,
)

__all__ = [
    # Errors
    "AuthenticationError",
    "BotError",
    "CredentialError",
    "DeliveryError",
    "GenerationError",
    # Health
    "HealthChecker",
    "HealthReport",
    "HealthStatus",
    "IngressError",
    # Logging
    "LogFormat",
    "LogLevel",
    "MalformedEventError",
    # Security
    "RedactionError",
    "SecretRedactor",
    "SecurityError",
    "VerificationError",
    "bind_context",
    "clear_context",
    "configure_logging",
    "unbind_context",
]
