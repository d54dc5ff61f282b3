"""Clipboard sink strategies."""

from promptier.strategies.clipboard.memory import InMemoryClipboard
from promptier.strategies.clipboard.system import SystemClipboard

__all__ = [
    "InMemoryClipboard",
    "SystemClipboard",
]
