"""Google Gemini LLM adapter.

This module implements the LLMProvider protocol against the Gemini
``generateContent`` REST endpoint. Each call hits exactly one model and
classifies the response:

- HTTP 429/503, or an error status of RESOURCE_EXHAUSTED, FAILED_PRECONDITION
  or UNAVAILABLE: ``Retryable`` (quota, region or capacity scoped)
- A candidate stopped for content-policy reasons, or a blocked prompt:
  ``SafetyBlocked``
- Anything else with a body: ``Success``

All other API errors raise ``GenerationError``.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ...config.schema import GeminiConfig
from ...models.generation import (
    NO_RESPONSE_TEXT,
    GenerationOutcome,
    Retryable,
    SafetyBlocked,
    Success,
)
from ...utils.errors import GenerationError

log = structlog.get_logger()

RETRYABLE_STATUS_CODES = frozenset({429, 503})

# google.rpc.Code names reported in error.status
RETRYABLE_ERROR_STATUSES = frozenset({"RESOURCE_EXHAUSTED", "FAILED_PRECONDITION", "UNAVAILABLE"})

SAFETY_FINISH_REASONS = frozenset({"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"})


class GeminiAdapter:
    """Gemini LLM adapter implementing the LLMProvider protocol.

    Example:
        adapter = GeminiAdapter(GeminiConfig())
        outcome = await adapter.generate_content("gemini-2.0-flash", prompt, api_key)
    """

    def __init__(self, config: GeminiConfig, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the Gemini adapter.

        Args:
            config: Gemini-specific configuration.
            client: Shared HTTP client. If None, one is created and owned.
        """
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout)

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    def build_request(self, prompt: str) -> dict[str, Any]:
        """Build the generateContent request body."""
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._config.temperature,
                "maxOutputTokens": self._config.max_output_tokens,
            },
        }

    def endpoint(self, model: str) -> str:
        """Return the model-scoped generateContent URL."""
        return f"{self._config.base_url}/models/{model}:generateContent"

    async def generate_content(
        self,
        model: str,
        prompt: str,
        api_key: str,
    ) -> GenerationOutcome:
        """Issue one generation request and classify the response.

        Args:
            model: Model identifier.
            prompt: Full prompt text.
            api_key: Gemini API key.

        Returns:
            Success, SafetyBlocked, or Retryable.

        Raises:
            GenerationError: If the request fails or the API reports a
                non-retryable error.
        """
        try:
            response = await self._client.post(
                self.endpoint(model),
                json=self.build_request(prompt),
                headers={"x-goog-api-key": api_key},
            )
        except httpx.HTTPError as e:
            log.error("gemini_request_failed", model=model, error=str(e))
            raise GenerationError(f"Gemini request to {model} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            if response.status_code in RETRYABLE_STATUS_CODES:
                return Retryable(model, response.status_code, f"HTTP {response.status_code}")
            raise GenerationError(
                f"Gemini returned a non-JSON body (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise GenerationError(
                "Gemini returned an unexpected payload", status_code=response.status_code
            )

        return self.classify(model, response.status_code, data)

    def classify(self, model: str, status_code: int, data: dict[str, Any]) -> GenerationOutcome:
        """Classify a decoded generateContent response.

        Raises:
            GenerationError: For errors that are neither retryable nor safety related.
        """
        error = data.get("error")
        error = error if isinstance(error, dict) else None

        if error is not None or status_code >= 400:
            error_status = (error or {}).get("status", "")
            message = (error or {}).get("message") or f"HTTP {status_code}"

            if status_code in RETRYABLE_STATUS_CODES or error_status in RETRYABLE_ERROR_STATUSES:
                return Retryable(model, status_code, error_status or message)

            raise GenerationError(f"Gemini API error from {model}: {message}", status_code)

        feedback = data.get("promptFeedback") or {}
        if not isinstance(feedback, dict):
            raise self._malformed(model, "promptFeedback", status_code)
        block_reason = feedback.get("blockReason")
        if block_reason:
            return SafetyBlocked(model, str(block_reason))

        candidates = data.get("candidates") or []
        if not isinstance(candidates, list):
            raise self._malformed(model, "candidates", status_code)
        first = candidates[0] if candidates else {}
        if not isinstance(first, dict):
            raise self._malformed(model, "candidate", status_code)

        finish_reason = first.get("finishReason")
        if finish_reason in SAFETY_FINISH_REASONS:
            return SafetyBlocked(model, str(finish_reason))

        content = first.get("content") or {}
        if not isinstance(content, dict):
            raise self._malformed(model, "content", status_code)
        parts = content.get("parts") or []
        text = parts[0].get("text") if parts and isinstance(parts[0], dict) else None

        return Success(model, text or NO_RESPONSE_TEXT)

    @staticmethod
    def _malformed(model: str, field: str, status_code: int) -> GenerationError:
        return GenerationError(f"Malformed Gemini response from {model}: {field}", status_code)
