"""Data models and transfer objects."""

from .generation import (
    NO_RESPONSE_TEXT,
    EscalationResult,
    Exhausted,
    GenerationOutcome,
    Retryable,
    SafetyBlocked,
    Success,
)
from .message import Credentials, IncomingQuery, ReactionState, WorkflowResult

__all__ = [
    # Message models
    "IncomingQuery",
    "Credentials",
    "ReactionState",
    "WorkflowResult",
    # Generation models
    "NO_RESPONSE_TEXT",
    "Success",
    "SafetyBlocked",
    "Retryable",
    "Exhausted",
    "GenerationOutcome",
    "EscalationResult",
]
