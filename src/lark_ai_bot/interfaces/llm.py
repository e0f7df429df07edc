"""Abstract interface for LLM integrations."""

from typing import Protocol

from ..models.generation import GenerationOutcome


class LLMProvider(Protocol):
    """Abstract interface for generative model backends.

    Implementations issue exactly one request per call and classify the
    response. They never fall back to another model themselves; tier
    escalation lives in ``core.escalation``.
    """

    async def generate_content(
        self,
        model: str,
        prompt: str,
        api_key: str,
    ) -> GenerationOutcome:
        """
        Generate a completion for ``prompt`` with a single model.

        Args:
            model: Model identifier (e.g., "gemini-2.0-flash")
            prompt: Full prompt, context preamble included
            api_key: Backend API key

        Returns:
            Success, SafetyBlocked, or Retryable

        Raises:
            GenerationError: For any error escalation cannot handle
        """
        ...
