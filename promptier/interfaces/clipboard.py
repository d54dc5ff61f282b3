"""Clipboard sink interface."""

from abc import ABC, abstractmethod


class BaseClipboard(ABC):
    """Destination for resolved template text.

    Failures are reported through the return value; callers do not retry.
    """

    @abstractmethod
    async def write_text(self, text: str) -> bool:
        """Write ``text`` to the clipboard.

        Args:
            text: The text to copy.

        Returns:
            True if the write succeeded, False otherwise.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for status messages."""
