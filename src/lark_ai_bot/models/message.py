"""Data models for chat messages and workflow state."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum


@dataclass(frozen=True)
class IncomingQuery:
    """A user message received from Lark, scoped to one workflow run."""

    message_id: str
    text: str
    occurred_at: datetime  # timezone-aware, UTC

    # Correlation only, never used for control flow
    chat_id: str | None = None
    event_id: str | None = None


@dataclass(frozen=True)
class Credentials:
    """Secrets for one workflow run. Never cached, never logged."""

    app_id: str
    app_secret: str = field(repr=False)
    api_key: str = field(repr=False)


class ReactionState(StrEnum):
    """Visible progress state applied to the user's message."""

    THINKING = "THINKING"
    DONE = "DONE"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        """Return True for DONE and ERROR."""
        return self is not ReactionState.THINKING


class WorkflowResult(Enum):
    """Outcome of one workflow run, for observation only."""

    REPLIED = "replied"
    SAFETY_BLOCKED = "safety_blocked"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
