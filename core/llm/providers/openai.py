import os
import json

import httpx

from config.models import ModelConfig
from core.contracts.provider import LLMProvider
from core.registry import provider_registry
from utils.errors import ProviderError
from utils.logger import logger


@provider_registry.register("openai")
class OpenAIProvider(LLMProvider):
    """
    A provider for the OpenAI chat completions API and compatible servers
    (set `base_url` to point at a local gateway).
    """

    def __init__(self, config: ModelConfig):
        self.config = config
        self._api_key = config.api_key or os.getenv("OPENAI_API_KEY")
        if not self._api_key:
            raise ProviderError("OpenAI API key not found. Please set it in the config or as an environment variable OPENAI_API_KEY.")

        self._client = httpx.AsyncClient(
            base_url=config.base_url or "https://api.openai.com/v1",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.config.timeout_sec,
        )

    async def _request(self, payload: dict) -> httpx.Response:
        attempts = self.config.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.post("/chat/completions", json=payload)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                try:
                    error_details = e.response.json()
                    error_message = error_details.get("error", {}).get("message", e.response.text)
                except json.JSONDecodeError:
                    error_message = e.response.text
                raise ProviderError(f"OpenAI API error ({e.response.status_code}): {error_message}") from e
            except httpx.TimeoutException as e:
                if attempt == attempts:
                    raise ProviderError(f"Request to OpenAI timed out: {e}") from e
                logger.warning(f"OpenAI request timed out (attempt {attempt}/{attempts}), retrying")
            except httpx.RequestError as e:
                if attempt == attempts:
                    raise ProviderError(f"An unexpected network error occurred: {e}") from e
                logger.warning(f"OpenAI request failed (attempt {attempt}/{attempts}): {e}, retrying")
        raise ProviderError("OpenAI request was not attempted")

    def _build_payload(self, prompt: str, model: str) -> dict:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            **self.config.parameters,
        }

    async def generate(self, prompt: str, *, model: str) -> str:
        """
        Generates a chat completion for a single user prompt.
        """
        response = await self._request(self._build_payload(prompt, model))
        data = response.json()
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Unexpected OpenAI response shape: {data}") from e
