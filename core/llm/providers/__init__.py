# Importing the provider modules registers them in `provider_registry`.
from core.llm.providers import dummy_provider, ollama, openai

__all__ = ["dummy_provider", "ollama", "openai"]
