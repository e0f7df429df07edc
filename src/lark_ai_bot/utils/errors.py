"""Exception hierarchy for Lark AI Bot.

Adapters raise these (wrapping the underlying httpx error with ``from``);
only the workflow orchestrator's outer boundary catches them broadly.
"""

from __future__ import annotations


class BotError(Exception):
    """Base exception for all bot errors."""


class CredentialError(BotError):
    """A required secret is missing from the environment."""


class AuthenticationError(BotError):
    """Exchanging app credentials for a tenant access token failed."""


class GenerationError(BotError):
    """The generation API returned an error that escalation cannot handle.

    Attributes:
        status_code: HTTP status of the failed response, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DeliveryError(BotError):
    """Delivering a reply or reaction to the chat platform failed."""


class IngressError(BotError):
    """An inbound webhook request could not be accepted."""


class VerificationError(IngressError):
    """The webhook verification token did not match."""


class MalformedEventError(IngressError):
    """A message event is missing required fields."""
