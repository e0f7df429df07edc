"""Data models for model generation outcomes."""

from dataclasses import dataclass

NO_RESPONSE_TEXT = "No response."


@dataclass(frozen=True)
class Success:
    """A tier produced usable reply text."""

    model: str
    text: str


@dataclass(frozen=True)
class SafetyBlocked:
    """A tier refused on content-policy grounds. Terminal."""

    model: str
    reason: str


@dataclass(frozen=True)
class Retryable:
    """A tier is over quota or unavailable; escalate to the next one."""

    model: str
    status_code: int
    reason: str


@dataclass(frozen=True)
class Exhausted:
    """Every configured tier reported a retryable failure."""

    attempts: tuple[Retryable, ...]

    @property
    def models(self) -> tuple[str, ...]:
        """Models that were attempted, in order."""
        return tuple(attempt.model for attempt in self.attempts)


# Classification of a single tier's response
GenerationOutcome = Success | SafetyBlocked | Retryable

# Result of escalating across all tiers
EscalationResult = Success | SafetyBlocked | Exhausted
