from typing import Optional

from config.models import Config
from core.contracts.models import ChangeKind
from core.contracts.provider import LLMProvider
from core.formatter.jinja_formatter import Jinja2Formatter
from core.formatter.message import clean_message, truncate_diff
from core.llm.router import get_provider
from utils.cache import MessageCache
from utils.errors import FormatterError, ProviderError
from utils.logger import logger


class CommitMessageGenerator:
    """
    Generates a one-line commit message for a change through the configured LLM provider.
    """

    def __init__(
        self,
        config: Config,
        provider: Optional[LLMProvider] = None,
        formatter: Optional[Jinja2Formatter] = None,
    ):
        self.config = config
        self._provider = provider
        self.formatter = formatter or Jinja2Formatter()
        self.cache = MessageCache(
            directory=self.config.cache.directory,
            ttl_sec=self.config.cache.ttl_sec,
        ) if self.config.cache.enabled else None

    @property
    def provider(self) -> LLMProvider:
        """The provider, created from the model configuration on first use."""
        if self._provider is None:
            self._provider = get_provider(self.config.model)
        return self._provider

    async def generate_message(
        self, model: str, file_path: str, diff_text: str, change_kind: ChangeKind
    ) -> str:
        """
        Generates a commit message for one change.

        Raises:
            ProviderError: If the backend fails or returns an empty message.
        """
        diff = truncate_diff(diff_text, self.config.git.max_diff_chars)
        try:
            prompt = self.formatter.render_prompt(change_kind, file_path, diff)
        except FormatterError as e:
            raise ProviderError(f"Could not build prompt for {file_path}: {e}") from e
        logger.debug(f"Prompt for {file_path}:\n{prompt}")

        cache_key = f"{model}\n{prompt}"
        cached = self.cache.lookup(cache_key) if self.cache else None
        if cached:
            logger.info(f"Cache hit for {file_path}")
            return cached

        raw = await self.provider.generate(prompt, model=model)
        message = clean_message(raw)
        if not message:
            raise ProviderError(f"Model '{model}' returned an empty commit message for {file_path}")
        if self.config.git.commit_prefix:
            message = f"{self.config.git.commit_prefix}{message}"

        if self.cache:
            self.cache.store(cache_key, message)
        return message
