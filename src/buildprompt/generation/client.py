"""Client for the OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from buildprompt.config import get_settings
from buildprompt.errors import ModelConfigError, ModelEndpointError, ModelRateLimitError
from buildprompt.generation.models import ModelResponse

if TYPE_CHECKING:
    from buildprompt.config.settings import Settings

logger = logging.getLogger(__name__)


class ModelClient:
    """Calls ``POST {base_url}/chat/completions`` with a system and user prompt.

    Failures are raised as typed errors:
    - ``ModelConfigError`` when no API key is set or the key is rejected
    - ``ModelRateLimitError`` when the endpoint answers 429
    - ``ModelEndpointError`` for other error statuses and transport errors
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the model client.

        Args:
            settings: Application settings.
            http_client: Optional HTTP client for testing.
        """
        self._settings = settings or get_settings()
        self._http_client = http_client

    @property
    def model(self) -> str:
        return self._settings.xai_model

    def ensure_configured(self) -> None:
        """Raise ModelConfigError if the endpoint cannot be called.

        Raises:
            ModelConfigError: If no API key is configured.
        """
        if not self._settings.xai_api_key:
            raise ModelConfigError("XAI_API_KEY is not configured")

    def _build_payload(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None,
        max_tokens: int | None,
    ) -> dict[str, Any]:
        return {
            "model": self._settings.xai_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": (
                temperature if temperature is not None else self._settings.model_temperature
            ),
            "max_tokens": max_tokens or self._settings.model_max_tokens,
        }

    async def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> httpx.Response:
        timeout = self._settings.model_request_timeout_seconds
        if self._http_client:
            return await self._http_client.post(url, json=payload, headers=headers, timeout=timeout)
        async with httpx.AsyncClient() as client:
            return await client.post(url, json=payload, headers=headers, timeout=timeout)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ModelResponse:
        """Request a chat completion.

        Args:
            system_prompt: System instruction.
            user_prompt: User instruction.
            temperature: Sampling temperature (default from settings).
            max_tokens: Completion token cap (default from settings).

        Returns:
            Completion content (None when the model returned nothing) and
            total tokens used.

        Raises:
            ModelConfigError: If the endpoint is not configured or rejects the key.
            ModelRateLimitError: If the endpoint is rate limiting.
            ModelEndpointError: For any other endpoint or transport failure.
        """
        self.ensure_configured()

        url = f"{self._settings.xai_api_base_url.rstrip('/')}/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.xai_api_key}",
        }
        payload = self._build_payload(system_prompt, user_prompt, temperature, max_tokens)

        try:
            response = await self._post(url, payload, headers)
        except httpx.HTTPError as e:
            logger.warning("Model endpoint request failed: %s", e)
            raise ModelEndpointError(f"Model endpoint request failed: {e}") from e

        if response.status_code in (401, 403):
            raise ModelConfigError(
                f"Model endpoint rejected the API key: {response.status_code}",
                details={"body": response.text[:500]},
            )
        if response.status_code == 429:
            raise ModelRateLimitError(
                "Model endpoint rate limit reached",
                endpoint_status=429,
                details={"body": response.text[:500]},
            )
        if response.status_code >= 400:
            raise ModelEndpointError(
                f"Model endpoint error: {response.status_code} - {response.text[:500]}",
                endpoint_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ModelEndpointError("Model endpoint returned invalid JSON") from e

        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        usage = data.get("usage") or {}

        return ModelResponse(
            content=message.get("content"),
            tokens_used=int(usage.get("total_tokens") or 0),
        )
