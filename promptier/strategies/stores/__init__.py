"""Template and variable store strategies."""

from promptier.strategies.stores.memory import InMemoryTemplateStore, InMemoryVariableStore

__all__ = [
    "InMemoryTemplateStore",
    "InMemoryVariableStore",
]
