from typing import List, Protocol, runtime_checkable

from core.contracts.models import ChangeKind


class LLMProvider(Protocol):
    """A protocol for LLM providers."""

    async def generate(self, prompt: str, *, model: str) -> str:
        """
        Generates a response from the LLM.

        Args:
            prompt: The prompt to send to the LLM.
            model: The backend model to run the prompt against.

        Returns:
            The LLM's raw response text.
        """
        ...


@runtime_checkable
class ModelLister(Protocol):
    """Implemented by providers that can report the models they serve."""

    async def list_models(self) -> List[str]:
        ...


class GenerationClient(Protocol):
    """Turns a single change (or an aggregate of changes) into a commit message."""

    async def generate_message(
        self, model: str, file_path: str, diff_text: str, change_kind: ChangeKind
    ) -> str:
        ...
