"""Simple service container for dependency management."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")

Factory = Callable[["ServiceContainer"], Any]


class ServiceContainer:
    """Minimal dependency container with lazy singleton semantics."""

    def __init__(self) -> None:
        """Initialise container storage."""
        self._factories: dict[str, Factory] = {}
        self._instances: dict[str, Any] = {}

    def register(self, key: str, factory: Factory) -> None:
        """Register a factory under a given key, replacing any cached instance."""
        self._factories[key] = factory
        self._instances.pop(key, None)

    def provide(self, key: str, instance: Any) -> None:
        """Register an already built instance, typically a test double."""
        self._factories[key] = lambda _container: instance
        self._instances[key] = instance

    def resolve(self, key: str) -> Any:
        """Resolve a dependency by key, invoking its factory once."""
        if key in self._instances:
            return self._instances[key]
        if key not in self._factories:
            msg = f"Service '{key}' is not registered"
            raise KeyError(msg)
        instance = self._factories[key](self)
        self._instances[key] = instance
        return instance

    def resolve_as(self, key: str, expected: type[T]) -> T:
        """Resolve ``key`` and check the instance type."""
        instance = self.resolve(key)
        if not isinstance(instance, expected):
            msg = f"Service '{key}' is {type(instance).__name__}, not {expected.__name__}"
            raise TypeError(msg)
        return instance


__all__ = ["ServiceContainer"]
