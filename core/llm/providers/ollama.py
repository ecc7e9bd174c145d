import os
import json
from typing import List

import httpx

from config.models import ModelConfig
from core.contracts.provider import LLMProvider
from core.registry import provider_registry
from utils.errors import ProviderError
from utils.logger import logger

DEFAULT_BASE_URL = "http://localhost:11434"


@provider_registry.register("ollama")
class OllamaProvider(LLMProvider):
    """
    A provider for a local or remote Ollama server, using the native /api endpoints.
    """

    def __init__(self, config: ModelConfig):
        self.config = config
        self._base_url = (config.base_url or os.getenv("OLLAMA_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Content-Type": "application/json"},
            timeout=self.config.timeout_sec,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Sends an HTTP request, retrying timeouts and network errors up to `max_retries` times.
        """
        attempts = self.config.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                try:
                    error_message = e.response.json().get("error", e.response.text)
                except json.JSONDecodeError:
                    error_message = e.response.text
                raise ProviderError(f"Ollama API error ({e.response.status_code}): {error_message}") from e
            except httpx.TimeoutException as e:
                if attempt == attempts:
                    raise ProviderError(f"Request to Ollama timed out: {e}") from e
                logger.warning(f"Ollama request timed out (attempt {attempt}/{attempts}), retrying")
            except httpx.RequestError as e:
                if attempt == attempts:
                    raise ProviderError(f"Could not reach Ollama at {self._base_url}: {e}") from e
                logger.warning(f"Ollama request failed (attempt {attempt}/{attempts}): {e}, retrying")
        raise ProviderError("Ollama request was not attempted")

    def _build_payload(self, prompt: str, model: str) -> dict:
        return {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": dict(self.config.parameters),
        }

    async def generate(self, prompt: str, *, model: str) -> str:
        """
        Generates a completion with `POST /api/generate`.
        """
        response = await self._request("POST", "/api/generate", json=self._build_payload(prompt, model))
        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise ProviderError(f"Ollama returned invalid JSON: {e}") from e
        if "response" not in data:
            raise ProviderError(f"Ollama response is missing 'response': {data}")
        return data["response"]

    async def list_models(self) -> List[str]:
        """Returns the names of the models installed on the Ollama server."""
        response = await self._request("GET", "/api/tags")
        models = response.json().get("models", [])
        return [m["name"] for m in models if isinstance(m, dict) and "name" in m]
