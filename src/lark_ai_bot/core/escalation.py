"""Tiered model escalation.

Attempts generation against an ordered list of models, strictly one after
another. The first non-retryable outcome wins and remaining tiers are never
called. If every tier is retryable the result is ``Exhausted``, a distinct
type, so no reply text can ever be mistaken for "all tiers failed".
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from lark_ai_bot.models.generation import (
    EscalationResult,
    Exhausted,
    Retryable,
    SafetyBlocked,
)
from lark_ai_bot.utils.logging import LogEventNames

if TYPE_CHECKING:
    from lark_ai_bot.interfaces.llm import LLMProvider
    from lark_ai_bot.models.message import Credentials

log = structlog.get_logger()


class ModelEscalationClient:
    """Escalates a generation request across prioritized model tiers.

    Example:
        client = ModelEscalationClient(gemini, ["gemini-2.5-flash", "gemma-3-27b-it"])
        result = await client.generate(prompt, credentials)
        if isinstance(result, Exhausted):
            ...
    """

    def __init__(self, llm: LLMProvider, tiers: Sequence[str]) -> None:
        """Initialize the client.

        Args:
            llm: Provider used for each single-model request.
            tiers: Model identifiers, highest preference first.

        Raises:
            ValueError: If no tiers are given.
        """
        if not tiers:
            raise ValueError("At least one model tier is required")
        self._llm = llm
        self._tiers: tuple[str, ...] = tuple(tiers)

    @property
    def tiers(self) -> tuple[str, ...]:
        """Return the configured tiers in priority order."""
        return self._tiers

    async def generate(
        self,
        prompt: str,
        credentials: Credentials,
        tiers: Sequence[str] | None = None,
    ) -> EscalationResult:
        """Generate a reply, escalating through tiers on retryable failures.

        Args:
            prompt: Full prompt text.
            credentials: Credentials for this workflow run.
            tiers: Override for the configured tiers.

        Returns:
            The first Success or SafetyBlocked outcome, or Exhausted.

        Raises:
            GenerationError: If a tier fails in a way escalation cannot handle.
        """
        order = tuple(tiers) if tiers is not None else self._tiers
        attempts: list[Retryable] = []

        for position, model in enumerate(order, start=1):
            log.debug(LogEventNames.TIER_ATTEMPT, model=model, tier=position, tiers=len(order))
            outcome = await self._llm.generate_content(model, prompt, credentials.api_key)

            if isinstance(outcome, Retryable):
                log.info(
                    LogEventNames.TIER_RETRYABLE,
                    model=model,
                    tier=position,
                    status_code=outcome.status_code,
                    reason=outcome.reason,
                )
                attempts.append(outcome)
                continue

            if isinstance(outcome, SafetyBlocked):
                log.info(LogEventNames.TIER_SAFETY_BLOCKED, model=model, reason=outcome.reason)
            else:
                log.info(LogEventNames.TIER_SUCCEEDED, model=model, tier=position)
            return outcome

        log.warning(LogEventNames.TIERS_EXHAUSTED, models=[a.model for a in attempts])
        return Exhausted(tuple(attempts))
