import asyncio
from typing import List

from config.models import ModelConfig
from core.contracts.provider import LLMProvider
from core.registry import provider_registry


@provider_registry.register("dummy")
class DummyProvider(LLMProvider):
    """An offline provider that always answers with the same message. Useful for dry runs and tests."""

    def __init__(self, config: ModelConfig, response: str = "Update files"):
        self.config = config
        self._response = response

    async def generate(self, prompt: str, *, model: str) -> str:
        await asyncio.sleep(0)
        return self._response

    async def list_models(self) -> List[str]:
        return [self.config.name]
