from config.models import ModelConfig
import core.llm.providers  # noqa: F401  (registers the built-in providers)
from core.contracts.provider import LLMProvider
from core.registry import provider_registry
from utils.errors import ProviderError


def get_provider(config: ModelConfig) -> LLMProvider:
    """
    Instantiates the provider named by `config.provider`.

    Raises:
        ProviderError: If no such provider exists or its constructor fails.
    """
    if config.provider not in provider_registry:
        raise ProviderError(
            f"Unknown provider '{config.provider}'. Available providers: {provider_registry.names()}"
        )
    try:
        return provider_registry.create(config.provider, config=config)
    except ProviderError:
        raise
    except Exception as e:
        raise ProviderError(f"Failed to create provider '{config.provider}': {e}") from e
