"""Cohere generate API provider adapter."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..schemas import GenerationResult, TokenUsage

logger = logging.getLogger("proxy-inference-server.providers.cohere")


class CohereError(Exception):
    """Raised for any failed call to the Cohere API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CohereProvider:
    """Adapter for the Cohere text generation API."""

    DEFAULT_BASE_URL = "https://api.cohere.ai/v1/generate"
    MODELS = ["command", "command-light", "command-nightly", "command-light-nightly"]

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 90,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url or self.DEFAULT_BASE_URL
        self.timeout = timeout
        self._transport = transport

    async def generate(self, prompt: str, model: str, max_tokens: int, temperature: float) -> GenerationResult:
        """
        Call Cohere generate and reshape the first generation.

        Args:
            prompt: Text to complete
            model: Cohere model identifier
            max_tokens: Upper bound for generated tokens
            temperature: Sampling temperature

        Returns:
            GenerationResult with the generated text and billed token counts

        Raises:
            CohereError: On network failure, non-2xx status or an unusable body
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        payload = {
            "model": model,
            "prompt": prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "k": 0,
            "stop_sequences": [],
            "return_likelihoods": "NONE",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.base_url, headers=headers, json=payload)
        except httpx.RequestError as exc:
            raise CohereError(f"Cohere API request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(f"Cohere API error: {response.status_code} - {response.text}")
            raise CohereError(self._error_message(response), status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise CohereError("Cohere API returned a non-JSON response") from exc

        return self._convert_response(body, model)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.text

    @staticmethod
    def _convert_response(body: dict, model: str) -> GenerationResult:
        generations = body.get("generations") or []
        if not generations:
            raise CohereError("No generations in Cohere response")

        billed = (body.get("meta") or {}).get("billed_units") or {}
        return GenerationResult(
            generated_text=generations[0].get("text", ""),
            model=model,
            usage=TokenUsage(
                prompt_tokens=billed.get("input_tokens"),
                completion_tokens=billed.get("output_tokens"),
                total_tokens=billed.get("total_tokens"),
            ),
        )
