from typing import Any, Callable, Dict, List, Type, TypeVar

T = TypeVar("T")


class Registry:
    """
    Maps the names used in configuration files (e.g. `model.provider: ollama`)
    to the classes implementing them.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._entries: Dict[str, Type[Any]] = {}

    def register(self, name: str) -> Callable[[Type[T]], Type[T]]:
        """
        Class decorator adding the decorated class under `name`.

        Raises:
            ValueError: If another class already uses the name.
        """
        def add(cls: Type[T]) -> Type[T]:
            if name in self._entries:
                raise ValueError(f"'{name}' is already registered as a {self.kind}.")
            self._entries[name] = cls
            return cls
        return add

    def get(self, name: str) -> Type[Any]:
        """
        Raises:
            KeyError: If nothing is registered under the name.
        """
        try:
            return self._entries[name]
        except KeyError:
            raise KeyError(f"No {self.kind} registered as '{name}'.") from None

    def create(self, name: str, **kwargs: Any) -> Any:
        return self.get(name)(**kwargs)

    def names(self) -> List[str]:
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries


provider_registry = Registry("provider")
